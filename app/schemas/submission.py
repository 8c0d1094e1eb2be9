# backend/app/schemas/submission.py

from typing import Optional, List

from pydantic import Field

from app.schemas.form import Answer, CamelModel


class TokenRequest(CamelModel):
    form_id: Optional[str] = None


class TokenResponse(CamelModel):
    token: str


class SubmitRequest(CamelModel):
    form_id: Optional[str] = None
    answers: List[Answer] = Field(default_factory=list)
    completed: bool = True
    csrf_token: Optional[str] = None
    # Hidden "website" field; humans never fill it in
    honeypot: Optional[str] = None
    referrer: Optional[str] = None


class SubmitResult(CamelModel):
    success: bool = True
