# backend/app/schemas/ai.py

from typing import Optional, List, Literal

from pydantic import Field

from app.schemas.form import CamelModel, QuestionType


class Suggestion(CamelModel):
    title: str
    type: QuestionType
    required: bool = False
    options: Optional[List[str]] = None
    description: Optional[str] = None


class SuggestRequest(CamelModel):
    title: str


class SuggestResponse(CamelModel):
    suggestions: List[Suggestion] = Field(default_factory=list)


class ChatMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str


class BuildFormRequest(CamelModel):
    messages: List[ChatMessage]


class GeneratedForm(CamelModel):
    title: str
    description: Optional[str] = None
    questions: List[Suggestion] = Field(default_factory=list)


class BuildFormResponse(CamelModel):
    form: GeneratedForm
