# backend/app/services/form_model.py

import logging
from typing import List, Optional

from app.core.errors import DefinitionError
from app.schemas.form import Form, FormSettings, FormStatus, Question, QuestionOption, ScaleLabels
from app.services.question_types import (
    MIN_OPTIONS,
    TYPE_SPECIFIC_FIELDS,
    descriptor,
    uid,
)

logger = logging.getLogger(__name__)


def new_form(form_id: Optional[str] = None, title: str = "Untitled form") -> Form:
    return Form(
        id=form_id or uid(),
        title=title,
        questions=[],
        settings=FormSettings(),
        status=FormStatus.DRAFT,
    )


def _padded_options(options: List[QuestionOption]) -> List[QuestionOption]:
    padded = list(options)
    while len(padded) < MIN_OPTIONS:
        padded.append(QuestionOption(id=uid(), label=f"Option {len(padded) + 1}"))
    return padded


def _merge_scale_labels(current: Optional[ScaleLabels], default: ScaleLabels) -> ScaleLabels:
    if current is None:
        return default
    return ScaleLabels(
        start=current.start if current.start is not None else default.start,
        end=current.end if current.end is not None else default.end,
    )


def normalize(question: Question) -> Question:
    """
    Re-establish the type/shape invariant of a question.

    Fields the type does not use are dropped, fields it needs but lacks are
    filled from the type's defaults, and the author's text (title,
    description, placeholder) plus the required flag are kept as they are.
    Applying it twice gives the same question as applying it once.
    """
    d = descriptor(question.type)
    defaults = d.default_fields()
    updates = {}

    for field in TYPE_SPECIFIC_FIELDS:
        current = getattr(question, field)
        if field not in defaults:
            updates[field] = None
            continue
        if field == "options":
            updates[field] = defaults[field] if not current else _padded_options(current)
        elif field == "scale_labels":
            updates[field] = _merge_scale_labels(current, defaults[field])
        elif current is None:
            updates[field] = defaults[field]

    return question.model_copy(update=updates)


def question_problems(question: Question) -> List[str]:
    d = descriptor(question.type)
    defaults = d.default_fields()
    problems = []
    prefix = f"question {question.id} ({question.type.value})"

    for field in TYPE_SPECIFIC_FIELDS:
        present = getattr(question, field) is not None
        if field in defaults and not present:
            problems.append(f"{prefix} is missing {field}")
        elif field not in defaults and present:
            problems.append(f"{prefix} must not carry {field}")

    if question.options is not None and d.has_options:
        if len(question.options) < MIN_OPTIONS:
            problems.append(f"{prefix} needs at least {MIN_OPTIONS} options")
        option_ids = [o.id for o in question.options]
        if len(set(option_ids)) != len(option_ids):
            problems.append(f"{prefix} has duplicate option ids")

    if question.scale_labels is not None:
        if question.scale_labels.start is None or question.scale_labels.end is None:
            problems.append(f"{prefix} needs both scale labels")

    return problems


def validate_question(question: Question) -> Question:
    problems = question_problems(question)
    if problems:
        raise DefinitionError(problems)
    return question


def validate_form(form: Form) -> Form:
    problems = []
    seen = set()
    for question in form.questions:
        if question.id in seen:
            problems.append(f"duplicate question id {question.id}")
        seen.add(question.id)
        problems.extend(question_problems(question))
    if problems:
        logger.warning(f"Form {form.id} failed validation: {problems}")
        raise DefinitionError(problems)
    return form
