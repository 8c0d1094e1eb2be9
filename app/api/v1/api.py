from fastapi import APIRouter
from app.api.v1.endpoints import forms, public, ai, templates

api_router = APIRouter()
api_router.include_router(forms.router, prefix="/forms", tags=["forms"])
api_router.include_router(templates.router, prefix="/templates", tags=["templates"])
api_router.include_router(public.router, prefix="/public", tags=["public"])
api_router.include_router(ai.router, prefix="/ai", tags=["ai"])
