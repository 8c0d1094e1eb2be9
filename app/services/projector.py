# backend/app/services/projector.py

"""
Pure projection of a form definition onto one screen.

The builder's live preview and the public renderer both call project(); it
never touches storage or the network so both get identical screens.
"""

import re
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel

from app.schemas.form import Form, Question, QuestionOption, QuestionType
from app.services.question_types import descriptor

Viewport = Literal["mobile", "desktop"]

DEFAULT_THANK_YOU_TITLE = "Thank you!"
DEFAULT_THANK_YOU_MESSAGE = "Your response has been recorded."
DEFAULT_START_TEXT = "Start"
ESTIMATED_TIME = "~2 min"

_YOUTUBE = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\s]+)")
_VIMEO = re.compile(r"vimeo\.com/(\d+)")


class ScreenKind(str, Enum):
    WELCOME = "welcome"
    QUESTION = "question"
    THANK_YOU = "thank_you"


class Chrome(BaseModel):
    viewport: Viewport
    frame: str
    primary_color: str
    show_branding: bool


class InputDescriptor(BaseModel):
    kind: str
    placeholder: Optional[str] = None
    multiline: bool = False
    options: Optional[List[QuestionOption]] = None
    allow_multiple: bool = False
    scale: Optional[List[int]] = None
    scale_start_label: Optional[str] = None
    scale_end_label: Optional[str] = None
    max_file_size: Optional[int] = None
    accepted_file_types: Optional[List[str]] = None


class WelcomeView(BaseModel):
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    video_embed_url: Optional[str] = None
    button_text: str
    meta: str


class QuestionView(BaseModel):
    id: str
    number: int
    type: QuestionType
    type_label: str
    title: str
    description: Optional[str] = None
    required: bool
    input: InputDescriptor
    progress: int
    is_first: bool
    is_last: bool
    button_label: str
    show_enter_hint: bool


class ThankYouView(BaseModel):
    title: str
    message: str
    redirect_url: Optional[str] = None


class ScreenDescription(BaseModel):
    kind: ScreenKind
    index: int
    total: int
    chrome: Chrome
    welcome: Optional[WelcomeView] = None
    question: Optional[QuestionView] = None
    thank_you: Optional[ThankYouView] = None


def video_embed_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    yt = _YOUTUBE.search(url)
    if yt:
        return f"https://www.youtube.com/embed/{yt.group(1)}"
    vimeo = _VIMEO.search(url)
    if vimeo:
        return f"https://player.vimeo.com/video/{vimeo.group(1)}"
    return url


def input_for(question: Question) -> InputDescriptor:
    d = descriptor(question.type)
    data = {
        "kind": d.input_kind,
        "placeholder": question.placeholder or d.placeholder,
        "multiline": d.multiline,
    }
    if d.has_options:
        data["options"] = question.options or []
        data["allow_multiple"] = bool(question.allow_multiple)
    if question.type == QuestionType.YES_NO:
        data["options"] = [QuestionOption(id="Yes", label="Yes"), QuestionOption(id="No", label="No")]
    if question.type == QuestionType.RATING:
        data["scale"] = list(range(1, (question.max_rating or 5) + 1))
    if question.type in (QuestionType.OPINION_SCALE, QuestionType.NPS):
        low = 0 if question.type == QuestionType.NPS else 1
        data["scale"] = list(range(low, (question.scale_max or 5) + 1))
        labels = question.scale_labels
        data["scale_start_label"] = labels.start if labels else None
        data["scale_end_label"] = labels.end if labels else None
    if question.type == QuestionType.FILE_UPLOAD:
        data["max_file_size"] = question.max_file_size
        data["accepted_file_types"] = question.accepted_file_types
    return InputDescriptor(**data)


def _chrome(form: Form, viewport: Viewport) -> Chrome:
    return Chrome(
        viewport=viewport,
        frame="browser" if viewport == "desktop" else "phone",
        primary_color=form.settings.primary_color,
        show_branding=form.settings.show_branding,
    )


def _question_view(form: Form, index: int) -> QuestionView:
    question = form.questions[index]
    d = descriptor(question.type)
    total = len(form.questions)
    is_last = index == total - 1
    return QuestionView(
        id=question.id,
        number=index + 1,
        type=question.type,
        type_label=d.label,
        title=question.title,
        description=question.description,
        required=question.required,
        input=input_for(question),
        progress=round((index + 1) / total * 100),
        is_first=index == 0,
        is_last=is_last,
        button_label="Submit" if is_last else "OK",
        show_enter_hint=not d.multiline,
    )


def project(form: Form, active_index: int, viewport: Viewport = "mobile") -> ScreenDescription:
    total = len(form.questions)
    welcome = form.settings.welcome_screen
    chrome = _chrome(form, viewport)

    if active_index < 0 and welcome is not None and welcome.enabled:
        return ScreenDescription(
            kind=ScreenKind.WELCOME,
            index=-1,
            total=total,
            chrome=chrome,
            welcome=WelcomeView(
                title=welcome.title or form.title,
                description=welcome.description or form.description,
                image_url=welcome.image_url,
                video_embed_url=video_embed_url(welcome.video_url),
                button_text=welcome.button_text or DEFAULT_START_TEXT,
                meta=f"{total} questions · {ESTIMATED_TIME}",
            ),
        )

    index = max(active_index, 0)
    if index >= total:
        return ScreenDescription(
            kind=ScreenKind.THANK_YOU,
            index=total,
            total=total,
            chrome=chrome,
            thank_you=ThankYouView(
                title=form.settings.thank_you_title or DEFAULT_THANK_YOU_TITLE,
                message=form.settings.thank_you_message or DEFAULT_THANK_YOU_MESSAGE,
                redirect_url=form.settings.redirect_url,
            ),
        )

    return ScreenDescription(
        kind=ScreenKind.QUESTION,
        index=index,
        total=total,
        chrome=chrome,
        question=_question_view(form, index),
    )
