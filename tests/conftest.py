# backend/tests/conftest.py

import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.core.errors import PersistenceError
from app.db.repository import FormRepository
from app.db.session import get_repository
from app.main import app
from app.schemas.form import Form, FormStatus, Question, QuestionType, ResponseRow, utcnow
from app.schemas.user import User
from app.services.form_model import normalize


class Clock:
    def __init__(self):
        self.current = utcnow()

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


class InMemoryFormRepository(FormRepository):
    """Stand-in for the Supabase tables, keyed the same way the real ones are."""

    def __init__(self, now=utcnow):
        self.client = None
        self.now = now
        self.forms: Dict[str, Form] = {}
        self.responses: List[Dict[str, Any]] = []
        self.tokens: Dict[str, Dict[str, Any]] = {}
        self.rate_limits: List[Dict[str, Any]] = []
        self.fail_saves = False
        self.saved: List[Form] = []

    def add(self, form: Form, user_id: str = "user-1") -> Form:
        self.forms[form.id] = form.model_copy(update={"user_id": user_id}, deep=True)
        return self.forms[form.id]

    def get_form(self, form_id: str) -> Optional[Form]:
        form = self.forms.get(form_id)
        return form.model_copy(deep=True) if form else None

    def list_forms(self, user_id: str) -> List[Form]:
        forms = [f for f in self.forms.values() if f.user_id == user_id]
        return sorted(forms, key=lambda f: f.updated_at, reverse=True)

    def create_form(self, form: Form, user_id: str) -> Form:
        return self.add(form, user_id)

    def save_form(self, form: Form) -> Form:
        if self.fail_saves or form.id not in self.forms:
            raise PersistenceError(f"Form {form.id} was not saved")
        self.forms[form.id] = form.model_copy(deep=True)
        self.saved.append(form)
        return self.get_form(form.id)

    def delete_form(self, form_id: str) -> None:
        self.forms.pop(form_id, None)

    def insert_response(self, form_id, answers, completed, metadata):
        row = {
            "id": uuid.uuid4().hex,
            "form_id": form_id,
            "answers": answers,
            "completed": completed,
            "metadata": metadata,
            "respondent_email": None,
            "created_at": self.now(),
        }
        self.responses.append(row)
        return row

    def count_responses(self, form_id: str) -> int:
        return len([r for r in self.responses if r["form_id"] == form_id])

    def list_responses(self, form_id: str) -> List[ResponseRow]:
        rows = [r for r in self.responses if r["form_id"] == form_id]
        return [ResponseRow.model_validate(r) for r in reversed(rows)]

    def insert_token(self, token: str, form_id: str) -> None:
        self.tokens[token] = {"token": token, "form_id": form_id, "created_at": self.now(), "used": False}

    def get_token(self, token: str, form_id: str) -> Optional[Dict[str, Any]]:
        row = self.tokens.get(token)
        if row is None or row["form_id"] != form_id:
            return None
        return dict(row)

    def mark_token_used(self, token: str) -> None:
        self.tokens[token]["used"] = True

    def purge_tokens(self, older_than) -> None:
        self.tokens = {k: v for k, v in self.tokens.items() if v["created_at"] >= older_than}

    def count_recent_submissions(self, form_id: str, ip_hash: str, since) -> int:
        return len([
            r for r in self.rate_limits
            if r["form_id"] == form_id and r["ip_hash"] == ip_hash and r["submitted_at"] >= since
        ])

    def record_submission(self, form_id: str, ip_hash: str) -> None:
        self.rate_limits.append({"form_id": form_id, "ip_hash": ip_hash, "submitted_at": self.now()})

    def purge_rate_limits(self, older_than) -> None:
        self.rate_limits = [r for r in self.rate_limits if r["submitted_at"] >= older_than]


def build_question(question_id: str, question_type: QuestionType, title: str = "", required: bool = False,
                  **fields) -> Question:
    return normalize(Question(id=question_id, type=question_type, title=title, required=required, **fields))


@pytest.fixture
def make_question():
    return build_question


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def repository(clock):
    return InMemoryFormRepository(now=clock)


@pytest.fixture
def contact_form():
    """Active form: a required email question followed by an optional rating."""
    return Form(
        id="form-1",
        title="Contact",
        status=FormStatus.ACTIVE,
        questions=[
            build_question("q-email", QuestionType.EMAIL, "Your email", required=True),
            build_question("q-rating", QuestionType.RATING, "How did we do?"),
        ],
    )


@pytest.fixture
def current_user():
    return User(id="user-1", email="author@example.com")


@pytest.fixture
def client(repository, current_user):
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[deps.get_current_user] = lambda: current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
