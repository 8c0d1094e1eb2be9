# backend/app/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AnyHttpUrl
from typing import List, Optional

class Settings(BaseSettings):
    SUPABASE_URL: str
    SUPABASE_SERVICE_ROLE_KEY: str
    SUPABASE_JWT_SECRET: str
    OPENAI_API_KEY: str
    OPENAI_BASE_URL: Optional[str] = None
    AI_SUGGEST_MODEL: str = "gpt-4o-mini"
    AI_BUILD_MODEL: str = "gpt-4o"
    ALGORITHM: str = "HS256"

    # CORS origins
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    # Public hosts
    SHARE_URL: str = "https://share.formqo.com"
    EMBED_URL: str = "https://embed.formqo.com"
    API_URL: str = "https://api.formqo.com"

    # Submission protocol
    CSRF_TOKEN_TTL_MINUTES: int = 120
    CSRF_TOKEN_RETENTION_MINUTES: int = 240
    SUBMISSION_RATE_LIMIT: int = 10
    RATE_LIMIT_RETENTION_HOURS: int = 24
    MAX_ANSWER_LENGTH: int = 10_000
    SUBMISSION_TIMEOUT_SECONDS: float = 15.0

    # Builder
    AUTOSAVE_DEBOUNCE_SECONDS: float = 1.5

    # Storage
    UPLOAD_BUCKET: str = "form-uploads"
    WELCOME_IMAGE_MAX_BYTES: int = 2 * 1024 * 1024
    WELCOME_IMAGE_EXTENSIONS: List[str] = [".jpg", ".jpeg", ".png", ".webp"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
