# backend/app/schemas/template.py

from typing import List

from pydantic import Field

from app.schemas.form import CamelModel, FormSettings, Question


class FormTemplate(CamelModel):
    id: str
    title: str
    description: str
    category: str
    icon: str
    estimated_time: str
    tags: List[str] = Field(default_factory=list)
    questions: List[Question]
    settings: FormSettings
