# backend/app/schemas/form.py

from enum import Enum
from datetime import datetime, timezone
from typing import Optional, List, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for shapes stored as camelCase JSON (questions, settings, answers)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionType(str, Enum):
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    MULTIPLE_CHOICE = "multiple_choice"
    RATING = "rating"
    EMAIL = "email"
    YES_NO = "yes_no"
    NUMBER = "number"
    DATE = "date"
    DROPDOWN = "dropdown"
    PHONE = "phone"
    WEBSITE = "website"
    ADDRESS = "address"
    CHECKBOX = "checkbox"
    LEGAL = "legal"
    OPINION_SCALE = "opinion_scale"
    NPS = "nps"
    RANKING = "ranking"
    PICTURE_CHOICE = "picture_choice"
    FILE_UPLOAD = "file_upload"


class FormStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


class QuestionOption(CamelModel):
    id: str
    label: str
    image_url: Optional[str] = None


class ScaleLabels(CamelModel):
    start: Optional[str] = None
    end: Optional[str] = None


class Question(CamelModel):
    id: str
    type: QuestionType
    title: str = ""
    description: Optional[str] = None
    required: bool = False
    placeholder: Optional[str] = None
    options: Optional[List[QuestionOption]] = None
    max_rating: Optional[int] = None
    allow_multiple: Optional[bool] = None
    scale_max: Optional[int] = None
    scale_labels: Optional[ScaleLabels] = None
    max_file_size: Optional[int] = None
    accepted_file_types: Optional[List[str]] = None


class WelcomeScreen(CamelModel):
    enabled: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    button_text: Optional[str] = None


DEFAULT_PRIMARY_COLOR = "hsl(357 95% 22%)"


class FormSettings(CamelModel):
    primary_color: str = DEFAULT_PRIMARY_COLOR
    show_branding: bool = True
    redirect_url: Optional[str] = None
    thank_you_title: Optional[str] = None
    thank_you_message: Optional[str] = None
    close_after_submit: Optional[bool] = None
    welcome_screen: Optional[WelcomeScreen] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Form(CamelModel):
    id: str
    title: str = "Untitled form"
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)
    status: FormStatus = FormStatus.DRAFT
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    # Enforced only at the persistence boundary
    max_responses: Optional[int] = None
    allowed_domains: Optional[List[str]] = None
    user_id: Optional[str] = None

    def question_by_id(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


AnswerValue = Union[int, float, str, List[str]]


class Answer(CamelModel):
    question_id: str
    value: AnswerValue


class FormSave(CamelModel):
    title: str
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)
    status: FormStatus = FormStatus.DRAFT
    max_responses: Optional[int] = None
    allowed_domains: Optional[List[str]] = None


class FormCreate(CamelModel):
    title: Optional[str] = None
    template_id: Optional[str] = None


class FormStatusUpdate(CamelModel):
    status: FormStatus


class FormSummary(CamelModel):
    id: str
    title: str
    status: FormStatus
    question_count: int
    updated_at: datetime


class ResponseRow(CamelModel):
    id: str
    form_id: str
    answers: List[Answer]
    completed: bool
    respondent_email: Optional[str] = None
    metadata: Optional[dict] = None
    created_at: datetime


class ShareLinks(CamelModel):
    share_url: str
    embed_url: str
    embed_snippet: str
