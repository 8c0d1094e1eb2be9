# backend/app/services/collection.py

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.errors import (
    AnswerValidationError,
    ClosedError,
    FormqoError,
    NetworkError,
    NotFoundError,
    ProtocolError,
)
from app.schemas.form import Answer, Form, FormStatus, Question
from app.services.projector import ScreenDescription, Viewport, project
from app.services.question_types import descriptor, has_value, value_matches_shape

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    WELCOME = "welcome"
    QUESTION = "question"
    SUBMITTING = "submitting"
    SUBMISSION_FAILED = "submission_failed"
    THANK_YOU = "thank_you"
    NOT_FOUND = "not_found"
    CLOSED = "closed"


TERMINAL_STATES = {SessionState.THANK_YOU, SessionState.NOT_FOUND, SessionState.CLOSED}


def is_complete(form: Form, answers: List[Answer]) -> bool:
    """True when every required question of `form` has an answer with a value."""
    by_id = {a.question_id: a.value for a in answers}
    return all(has_value(q, by_id.get(q.id)) for q in form.questions if q.required)


class CollectionSession:
    """
    Drives one respondent through a form.

    Welcome -> Question(0..N-1) -> Submitting -> ThankYou, with
    SubmissionFailed as a recoverable detour back to the last question.
    Progress lives only in this object; nothing is persisted before submit.

    Args:
        form (Form): The form, or None when the id did not resolve.
        submitter: Object with `async submit(answers, completed)`; see
            SubmissionClient. Never called in preview mode.
        preview (bool): Skip the status check and the whole submission
            protocol, finishing with a synthetic success.
    """

    def __init__(self, form: Optional[Form], submitter=None, preview: bool = False):
        self.form = form
        self.submitter = submitter
        self.preview = preview
        self.index = 0
        self.answers: List[Answer] = []
        self.last_error: Optional[FormqoError] = None
        self.submitted: Optional[Dict[str, Any]] = None
        self.state = self._initial_state()

    def _initial_state(self) -> SessionState:
        if self.form is None:
            self.last_error = NotFoundError()
            return SessionState.NOT_FOUND
        if self.form.status != FormStatus.ACTIVE and not self.preview:
            self.last_error = ClosedError()
            return SessionState.CLOSED
        welcome = self.form.settings.welcome_screen
        if welcome is not None and welcome.enabled:
            return SessionState.WELCOME
        if not self.form.questions:
            return SessionState.THANK_YOU
        return SessionState.QUESTION

    @property
    def total(self) -> int:
        return len(self.form.questions) if self.form else 0

    @property
    def current_question(self) -> Optional[Question]:
        if self.state in (SessionState.QUESTION, SessionState.SUBMITTING, SessionState.SUBMISSION_FAILED):
            return self.form.questions[self.index]
        return None

    def answer_for(self, question_id: str) -> Any:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer.value
        return None

    def can_proceed(self) -> bool:
        question = self.current_question
        if question is None or self.state != SessionState.QUESTION:
            return False
        return not question.required or has_value(question, self.answer_for(question.id))

    @property
    def error_message(self) -> Optional[str]:
        return self.last_error.message if self.last_error else None

    def screen(self, viewport: Viewport = "mobile") -> Optional[ScreenDescription]:
        if self.form is None or self.state in (SessionState.NOT_FOUND, SessionState.CLOSED):
            return None
        if self.state == SessionState.WELCOME:
            return project(self.form, -1, viewport)
        if self.state == SessionState.THANK_YOU:
            return project(self.form, self.total, viewport)
        return project(self.form, self.index, viewport)

    def set_answer(self, question_id: str, value: Any) -> bool:
        if self.state in TERMINAL_STATES or self.state == SessionState.SUBMITTING:
            return False
        question = self.form.question_by_id(question_id)
        if question is None:
            logger.debug(f"Answer for unknown question {question_id} ignored")
            return False
        if value is None:
            self.remove_question_answers(question_id)
            return True
        if not value_matches_shape(question, value):
            raise AnswerValidationError(question_id, "Unexpected answer format.")
        for pos, answer in enumerate(self.answers):
            if answer.question_id == question_id:
                self.answers[pos] = Answer(question_id=question_id, value=value)
                break
        else:
            self.answers.append(Answer(question_id=question_id, value=value))
        return True

    def remove_question_answers(self, question_id: str) -> None:
        self.answers = [a for a in self.answers if a.question_id != question_id]

    def sync_form(self, form: Form) -> None:
        """Follow author edits: drop answers to removed questions and clamp position."""
        ids = {q.id for q in form.questions}
        for answer in list(self.answers):
            if answer.question_id not in ids:
                self.remove_question_answers(answer.question_id)
        self.form = form
        if self.index >= len(form.questions):
            self.index = max(0, len(form.questions) - 1)

    def start(self) -> bool:
        if self.state != SessionState.WELCOME:
            return False
        if not self.form.questions:
            self.state = SessionState.THANK_YOU
            return True
        self.state = SessionState.QUESTION
        self.index = 0
        return True

    async def next(self) -> bool:
        if self.state == SessionState.SUBMISSION_FAILED:
            return await self.retry()
        if self.state != SessionState.QUESTION:
            return False
        question = self.current_question
        if not self.can_proceed():
            self.last_error = AnswerValidationError(question.id)
            return False
        self.last_error = None
        if self.index < self.total - 1:
            self.index += 1
            return True
        return await self.submit()

    def prev(self) -> bool:
        if self.state != SessionState.QUESTION or self.index == 0:
            return False
        self.index -= 1
        self.last_error = None
        return True

    def jump_to(self, index: int) -> bool:
        """Move to any screen without re-validating skipped questions."""
        if self.state in (SessionState.SUBMITTING, SessionState.NOT_FOUND, SessionState.CLOSED):
            return False
        if self.state == SessionState.THANK_YOU and not self.preview:
            return False
        if index < 0:
            welcome = self.form.settings.welcome_screen
            if welcome is None or not welcome.enabled:
                return False
            self.state = SessionState.WELCOME
            return True
        if index >= self.total:
            if not self.preview:
                return False
            self.state = SessionState.THANK_YOU
            return True
        self.state = SessionState.QUESTION
        self.index = index
        self.last_error = None
        return True

    async def handle_key(self, key: str, shift: bool = False) -> bool:
        if key != "Enter" or shift:
            return False
        if self.state == SessionState.WELCOME:
            return self.start()
        question = self.current_question
        if self.state == SessionState.QUESTION and descriptor(question.type).multiline:
            return False
        return await self.next()

    async def submit(self) -> bool:
        if self.state not in (SessionState.QUESTION, SessionState.SUBMISSION_FAILED):
            return False
        self.index = self.total - 1
        answers = self._payload_answers()
        completed = is_complete(self.form, answers)
        self.state = SessionState.SUBMITTING
        self.last_error = None

        if self.preview:
            logger.debug(f"Preview submission for form {self.form.id}, nothing sent")
        else:
            try:
                await self.submitter.submit(answers, completed)
            except (NotFoundError, ClosedError) as e:
                self.last_error = e
                self.state = SessionState.NOT_FOUND if isinstance(e, NotFoundError) else SessionState.CLOSED
                logger.warning(f"Submission for form {self.form.id} refused: {e.kind}")
                return False
            except (ProtocolError, NetworkError) as e:
                self.last_error = e
                self.state = SessionState.SUBMISSION_FAILED
                logger.warning(f"Submission for form {self.form.id} failed: {e.kind}")
                return False
            except Exception as e:
                self.last_error = NetworkError()
                self.state = SessionState.SUBMISSION_FAILED
                logger.error(f"Submission for form {self.form.id} failed unexpectedly: {str(e)}")
                return False

        self.submitted = {"answers": answers, "completed": completed}
        self.state = SessionState.THANK_YOU
        return True

    async def retry(self) -> bool:
        if self.state != SessionState.SUBMISSION_FAILED:
            return False
        return await self.submit()

    def dismiss_error(self) -> bool:
        if self.state != SessionState.SUBMISSION_FAILED:
            return False
        self.state = SessionState.QUESTION
        self.index = self.total - 1
        return True

    def _payload_answers(self) -> List[Answer]:
        questions = {q.id: q for q in self.form.questions}
        return [
            a for a in self.answers
            if a.question_id in questions and has_value(questions[a.question_id], a.value)
        ]
