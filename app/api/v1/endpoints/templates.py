# backend/app/api/v1/endpoints/templates.py

from typing import List, Optional

from fastapi import APIRouter

from app.schemas.template import FormTemplate
from app.services.templates import get_template, list_templates

router = APIRouter()


@router.get("/", response_model=List[FormTemplate])
def get_templates(category: Optional[str] = None):
    return list_templates(category)


@router.get("/{template_id}", response_model=FormTemplate)
def get_template_by_id(template_id: str):
    return get_template(template_id)
