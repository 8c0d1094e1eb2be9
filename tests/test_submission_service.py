# backend/tests/test_submission_service.py

import pytest

from app.core.errors import BadRequestError, ClosedError, NotFoundError, ProtocolError
from app.schemas.form import Answer, FormStatus
from app.schemas.submission import SubmitRequest
from app.services.submission_service import SubmissionService, hash_ip, referrer_allowed, sanitize


@pytest.fixture
def service(repository, clock, contact_form):
    repository.add(contact_form)
    return SubmissionService(repository, now=clock)


def request_for(token, **fields):
    data = {
        "form_id": "form-1",
        "answers": [Answer(question_id="q-email", value="a@b.co")],
        "csrf_token": token,
        "referrer": "https://shop.example.com/contact",
    }
    data.update(fields)
    return SubmitRequest(**data)


def test_issue_token(service, repository):
    token = service.issue_token("form-1")
    assert len(token) == 64
    assert repository.tokens[token]["used"] is False


def test_issue_token_checks_form(service):
    with pytest.raises(BadRequestError):
        service.issue_token(None)
    with pytest.raises(NotFoundError):
        service.issue_token("missing")


def test_accepted_submission_is_recorded(service, repository):
    token = service.issue_token("form-1")
    result = service.submit(request_for(token), client_ip="203.0.113.9")
    assert result.success is True

    row = repository.responses[0]
    assert row["answers"] == [{"questionId": "q-email", "value": "a@b.co"}]
    assert row["completed"] is True
    assert row["metadata"]["ip_hash"] == hash_ip("203.0.113.9", "form-1")
    assert row["metadata"]["referrer"] == "https://shop.example.com/contact"
    assert repository.tokens[token]["used"] is True
    assert len(repository.rate_limits) == 1


def test_missing_form_id(service):
    with pytest.raises(BadRequestError):
        service.submit(request_for("t", form_id=None))


def test_honeypot_looks_successful_but_records_nothing(service, repository):
    result = service.submit(request_for(None, honeypot="http://spam.example"))
    assert result.success is True
    assert repository.responses == []


@pytest.mark.parametrize("token", [None, "", "not-a-token"])
def test_bad_tokens_rejected(service, token):
    with pytest.raises(ProtocolError) as exc_info:
        service.submit(request_for(token))
    assert exc_info.value.kind == "TokenInvalid"
    assert exc_info.value.status_code == 403


def test_token_is_single_use(service, repository):
    token = service.issue_token("form-1")
    service.submit(request_for(token))
    with pytest.raises(ProtocolError, match="already used"):
        service.submit(request_for(token))
    assert len(repository.responses) == 1


def test_token_for_other_form_rejected(service, repository, contact_form):
    repository.add(contact_form.model_copy(update={"id": "form-2"}))
    token = service.issue_token("form-2")
    with pytest.raises(ProtocolError, match="Invalid CSRF token"):
        service.submit(request_for(token))


def test_expired_token_rejected(service, clock):
    token = service.issue_token("form-1")
    clock.advance(hours=2, seconds=1)
    with pytest.raises(ProtocolError, match="expired"):
        service.submit(request_for(token))


def test_token_spent_even_when_form_closed(service, repository, contact_form):
    token = service.issue_token("form-1")
    repository.add(contact_form.model_copy(update={"status": FormStatus.CLOSED}))
    with pytest.raises(ClosedError) as exc_info:
        service.submit(request_for(token))
    assert exc_info.value.status_code == 403
    assert repository.tokens[token]["used"] is True


def test_domain_allowlist(service, repository, contact_form):
    repository.add(contact_form.model_copy(update={"allowed_domains": ["example.com"]}))
    service.submit(request_for(service.issue_token("form-1"), referrer="https://www.example.com/page"))

    with pytest.raises(ProtocolError) as exc_info:
        service.submit(request_for(service.issue_token("form-1"), referrer="https://evil.io/"))
    assert exc_info.value.kind == "DomainRejected"

    with pytest.raises(ProtocolError) as exc_info:
        service.submit(request_for(service.issue_token("form-1"), referrer="not a url"))
    assert exc_info.value.kind == "InvalidReferrer"
    assert exc_info.value.status_code == 400

    with pytest.raises(ProtocolError) as exc_info:
        service.submit(request_for(service.issue_token("form-1"), referrer="http://[::1"))
    assert exc_info.value.kind == "InvalidReferrer"


def test_allowlist_accepts_missing_referrer(service, repository, contact_form):
    repository.add(contact_form.model_copy(update={"allowed_domains": ["example.com"]}))
    service.submit(request_for(service.issue_token("form-1"), referrer=""))
    assert len(repository.responses) == 1
    assert repository.responses[0]["metadata"]["referrer"] is None


def test_response_cap(service, repository, contact_form):
    repository.add(contact_form.model_copy(update={"max_responses": 1}))
    service.submit(request_for(service.issue_token("form-1"), referrer=""))
    with pytest.raises(ClosedError) as exc_info:
        service.submit(request_for(service.issue_token("form-1"), referrer=""))
    assert exc_info.value.status_code == 429
    assert len(repository.responses) == 1


def test_rate_limit_per_ip(service, repository, clock):
    for _ in range(10):
        service.submit(request_for(service.issue_token("form-1")), client_ip="198.51.100.1")
    with pytest.raises(ProtocolError) as exc_info:
        service.submit(request_for(service.issue_token("form-1")), client_ip="198.51.100.1")
    assert exc_info.value.kind == "RateLimited"
    assert exc_info.value.status_code == 429

    # Another address is unaffected, and the window slides
    service.submit(request_for(service.issue_token("form-1")), client_ip="198.51.100.2")
    clock.advance(hours=1, seconds=1)
    service.submit(request_for(service.issue_token("form-1")), client_ip="198.51.100.1")
    assert len(repository.responses) == 12


def test_old_rows_are_purged(service, repository, clock):
    stale = service.issue_token("form-1")
    service.submit(request_for(service.issue_token("form-1")))
    clock.advance(hours=25)
    service.submit(request_for(service.issue_token("form-1")))
    assert stale not in repository.tokens
    assert len(repository.rate_limits) == 1


def test_answers_are_sanitized_and_filtered(service, repository):
    answers = [
        Answer(question_id="q-email", value="  a@b.co\0  "),
        Answer(question_id="ghost", value="dropped"),
        Answer(question_id="q-rating", value=5),
    ]
    service.submit(request_for(service.issue_token("form-1"), answers=answers))
    assert repository.responses[0]["answers"] == [
        {"questionId": "q-email", "value": "a@b.co"},
        {"questionId": "q-rating", "value": 5},
    ]


def test_sanitize_caps_length():
    assert len(sanitize("x" * 20_000)) == 10_000
    assert sanitize(["  a ", "b\0"]) == ["a", "b"]
    assert sanitize(3) == 3


def test_referrer_allowed():
    assert referrer_allowed(None, None) is True
    assert referrer_allowed("https://anything.io", []) is True
    assert referrer_allowed("https://app.example.com/x", ["www.example.com"]) is True
    assert referrer_allowed("https://notexample.com", ["example.com"]) is False
    assert referrer_allowed("", ["example.com"]) is True
    assert referrer_allowed(None, ["example.com"]) is True
