# conftest.py
"""
Pytest configuration for the Formqo backend.
Provides the settings the app needs at import time so tests never read a real .env.
"""
import os

TEST_ENV = {
    "SUPABASE_URL": "https://test-project.supabase.co",
    "SUPABASE_SERVICE_ROLE_KEY": "test-service-role-key",
    "SUPABASE_JWT_SECRET": "test-jwt-secret",
    "OPENAI_API_KEY": "sk-test",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value
