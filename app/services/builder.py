# backend/app/services/builder.py

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from app.core.errors import DefinitionError
from app.schemas.ai import GeneratedForm, Suggestion
from app.schemas.form import (
    Form,
    FormStatus,
    Question,
    QuestionOption,
    QuestionType,
    ScaleLabels,
    WelcomeScreen,
    utcnow,
)
from app.services.autosave import AutoSaver
from app.services.form_model import normalize, validate_question
from app.services.question_types import MIN_OPTIONS, TYPE_SPECIFIC_FIELDS, defaults_for, descriptor, uid

logger = logging.getLogger(__name__)

OptionInput = Union[QuestionOption, Dict[str, Any], str]

EDITABLE_FIELDS = {"title", "description", "required", "placeholder"} | set(TYPE_SPECIFIC_FIELDS)
SETTINGS_FIELDS = {
    "primary_color",
    "show_branding",
    "redirect_url",
    "thank_you_title",
    "thank_you_message",
    "close_after_submit",
}
WELCOME_FIELDS = {"title", "description", "image_url", "video_url", "button_text"}


class FormBuilder:
    """
    In-memory editing session over a single form.

    Every mutation replaces `form` with a new value and schedules an
    autosave. Index-based operations with an out-of-range index leave the
    form untouched and schedule nothing.

    Args:
        form (Form): The form being edited.
        autosaver (AutoSaver): Optional debounced writer. Needs a running
            event loop when present.
    """

    def __init__(self, form: Form, autosaver: Optional[AutoSaver] = None):
        self.form = form
        self.autosaver = autosaver
        self.active_index = 0
        self._listeners: List[Callable[[Form], None]] = []

    def subscribe(self, listener: Callable[[Form], None]) -> None:
        self._listeners.append(listener)

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self.form.questions)

    def _commit(self, **changes) -> Form:
        changes["updated_at"] = utcnow()
        self.form = self.form.model_copy(update=changes)
        for listener in self._listeners:
            listener(self.form)
        if self.autosaver is not None:
            self.autosaver.schedule(self.form)
        return self.form

    def _replace_question(self, index: int, question: Question) -> Form:
        questions = list(self.form.questions)
        questions[index] = question
        return self._commit(questions=questions)

    @property
    def active_question(self) -> Optional[Question]:
        if self._in_range(self.active_index):
            return self.form.questions[self.active_index]
        return None

    def select(self, index: int) -> int:
        """Select a question, or -1 for the welcome screen / len for thank-you."""
        self.active_index = max(-1, min(index, len(self.form.questions)))
        return self.active_index

    def add_question(self, question_type: QuestionType) -> Form:
        question = defaults_for(question_type)
        form = self._commit(questions=self.form.questions + [question])
        self.active_index = len(form.questions) - 1
        logger.info(f"Added {question.type.value} question {question.id} to form {form.id}")
        return form

    def retype(self, index: int, new_type: QuestionType) -> Form:
        if not self._in_range(index):
            logger.debug(f"retype ignored, index {index} out of range")
            return self.form
        old = self.form.questions[index]
        question = normalize(old.model_copy(update={"type": QuestionType(new_type)}))
        return self._replace_question(index, question)

    def move_question(self, from_index: int, to_index: int) -> Form:
        if not self._in_range(from_index) or not self._in_range(to_index):
            logger.debug(f"move ignored, {from_index} -> {to_index} out of range")
            return self.form
        questions = list(self.form.questions)
        moved = questions.pop(from_index)
        questions.insert(to_index, moved)
        self.active_index = to_index
        return self._commit(questions=questions)

    def delete_question(self, index: int) -> Form:
        if not self._in_range(index):
            logger.debug(f"delete ignored, index {index} out of range")
            return self.form
        questions = list(self.form.questions)
        removed = questions.pop(index)
        if index == self.active_index:
            self.active_index = max(0, index - 1)
        elif index < self.active_index:
            self.active_index -= 1
        self.active_index = max(0, min(self.active_index, len(questions) - 1))
        logger.info(f"Deleted question {removed.id} from form {self.form.id}")
        return self._commit(questions=questions)

    def update_question(self, index: int, **fields) -> Form:
        """
        Edit fields of one question. A `type` change goes through retype so
        the shape invariant is re-established first. Every field is checked
        against the resulting type before anything changes.
        """
        if not self._in_range(index):
            return self.form
        new_type = fields.pop("type", None)
        current_type = self.form.questions[index].type
        target_type = QuestionType(new_type) if new_type is not None else current_type

        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise DefinitionError([f"unknown question field {name}" for name in sorted(unknown)])
        d = descriptor(target_type)
        options = fields.pop("options", None)
        if options is not None:
            options = list(options)
            if d.has_options and len(options) < MIN_OPTIONS:
                raise DefinitionError([f"{target_type.value} questions need at least {MIN_OPTIONS} options"])
        problems = []
        for name, value in fields.items():
            if name in TYPE_SPECIFIC_FIELDS and name not in d.field_names:
                problems.append(f"{name} is not used by {target_type.value} questions")
            choices = d.affordances.get(name)
            if isinstance(choices, list) and value not in choices:
                problems.append(f"{name} must be one of {choices}")
        if problems:
            raise DefinitionError(problems)

        if target_type != current_type:
            self.retype(index, target_type)
        if options is not None:
            self.edit_options(index, options)
        if not fields:
            return self.form

        question = self.form.questions[index]
        if isinstance(fields.get("scale_labels"), dict):
            fields["scale_labels"] = ScaleLabels(**fields["scale_labels"])

        updated = validate_question(question.model_copy(update=fields))
        return self._replace_question(index, updated)

    def set_required(self, index: int, required: bool) -> Form:
        return self.update_question(index, required=required)

    def edit_options(self, index: int, options: Iterable[OptionInput]) -> Form:
        """
        Replace the option list of a choice question.

        Existing option ids survive a relabel: an entry keeps its id when it
        names it, when its label matches an existing option, or when it sits
        at the position of an existing option that nothing else claimed.
        """
        if not self._in_range(index):
            return self.form
        question = self.form.questions[index]
        if not descriptor(question.type).has_options:
            logger.debug(f"edit_options ignored for {question.type.value} question {question.id}")
            return self.form

        entries = [_option_entry(item) for item in options]
        if len(entries) < MIN_OPTIONS:
            raise DefinitionError([f"{question.type.value} questions need at least {MIN_OPTIONS} options"])

        existing = question.options or []
        existing_ids = {o.id for o in existing}
        ids: List[Optional[str]] = [None] * len(entries)
        used = set()

        for pos, entry in enumerate(entries):
            if entry["id"] and entry["id"] not in used:
                ids[pos] = entry["id"]
                used.add(entry["id"])
        for pos, entry in enumerate(entries):
            if ids[pos] is None:
                match = next((o for o in existing if o.id not in used and o.label == entry["label"]), None)
                if match is not None:
                    ids[pos] = match.id
                    used.add(match.id)
        for pos in range(len(entries)):
            if ids[pos] is None and pos < len(existing) and existing[pos].id not in used:
                ids[pos] = existing[pos].id
                used.add(existing[pos].id)

        new_options = []
        for pos, entry in enumerate(entries):
            option_id = ids[pos] or uid()
            new_options.append(QuestionOption(id=option_id, label=entry["label"], image_url=entry["image_url"]))

        kept = len(existing_ids & {o.id for o in new_options})
        logger.debug(f"Question {question.id}: {kept} option ids kept, {len(new_options) - kept} new")
        return self._replace_question(index, question.model_copy(update={"options": new_options}))

    def add_option(self, index: int, label: Optional[str] = None) -> Form:
        if not self._in_range(index):
            return self.form
        question = self.form.questions[index]
        if not descriptor(question.type).has_options:
            return self.form
        options = list(question.options or [])
        options.append(QuestionOption(id=uid(), label=label or f"Option {len(options) + 1}"))
        return self._replace_question(index, question.model_copy(update={"options": options}))

    def remove_option(self, index: int, option_id: str) -> Form:
        if not self._in_range(index):
            return self.form
        question = self.form.questions[index]
        options = [o for o in (question.options or []) if o.id != option_id]
        if len(options) == len(question.options or []) or len(options) < MIN_OPTIONS:
            return self.form
        return self._replace_question(index, question.model_copy(update={"options": options}))

    def set_title(self, title: str) -> Form:
        return self._commit(title=title)

    def set_description(self, description: Optional[str]) -> Form:
        return self._commit(description=description)

    def set_status(self, status: FormStatus) -> Form:
        return self._commit(status=FormStatus(status))

    def set_submission_limits(self, max_responses: Optional[int] = None,
                              allowed_domains: Optional[List[str]] = None) -> Form:
        if max_responses is not None and max_responses < 0:
            raise DefinitionError(["max_responses must not be negative"])
        domains = [d.strip().lower() for d in allowed_domains or [] if d.strip()] or None
        return self._commit(max_responses=max_responses or None, allowed_domains=domains)

    def update_settings(self, **fields) -> Form:
        unknown = set(fields) - SETTINGS_FIELDS
        if unknown:
            raise DefinitionError([f"unknown settings field {name}" for name in sorted(unknown)])
        return self._commit(settings=self.form.settings.model_copy(update=fields))

    def set_welcome_screen_enabled(self, enabled: bool) -> Form:
        current = self.form.settings.welcome_screen
        if current is None:
            welcome = WelcomeScreen(enabled=enabled)
        else:
            welcome = current.model_copy(update={"enabled": enabled})
        return self._commit(settings=self.form.settings.model_copy(update={"welcome_screen": welcome}))

    def update_welcome_screen(self, **fields) -> Form:
        unknown = set(fields) - WELCOME_FIELDS
        if unknown:
            raise DefinitionError([f"unknown welcome screen field {name}" for name in sorted(unknown)])
        current = self.form.settings.welcome_screen or WelcomeScreen()
        welcome = current.model_copy(update={**fields, "enabled": True})
        return self._commit(settings=self.form.settings.model_copy(update={"welcome_screen": welcome}))

    def apply_suggestions(self, suggestions: Iterable[Suggestion]) -> Form:
        new_questions = [question_from_suggestion(s) for s in suggestions]
        if not new_questions:
            return self.form
        form = self._commit(questions=self.form.questions + new_questions)
        self.active_index = len(form.questions) - 1
        logger.info(f"Added {len(new_questions)} suggested questions to form {form.id}")
        return form

    def apply_generated_form(self, generated: GeneratedForm) -> Form:
        questions = [question_from_suggestion(s) for s in generated.questions]
        form = self._commit(title=generated.title, description=generated.description, questions=questions)
        self.active_index = 0
        logger.info(f"Form {form.id} replaced with {len(questions)} generated questions")
        return form


def _option_entry(item: OptionInput) -> Dict[str, Any]:
    if isinstance(item, QuestionOption):
        return {"id": item.id, "label": item.label, "image_url": item.image_url}
    if isinstance(item, str):
        return {"id": None, "label": item, "image_url": None}
    return {
        "id": item.get("id"),
        "label": item.get("label", ""),
        "image_url": item.get("image_url", item.get("imageUrl")),
    }


def question_from_suggestion(suggestion: Suggestion) -> Question:
    """Turn one AI suggestion into a question that satisfies its type's shape."""
    question = defaults_for(suggestion.type)
    updates = {"title": suggestion.title, "required": suggestion.required}
    if suggestion.description:
        updates["description"] = suggestion.description
    if suggestion.options and descriptor(suggestion.type).has_options:
        updates["options"] = [QuestionOption(id=uid(), label=label) for label in suggestion.options]
    return validate_question(normalize(question.model_copy(update=updates)))
