# backend/app/services/submission_service.py

"""
Server side of the public submission protocol.

issue_token() hands out single-use csrf tokens; submit() runs every check a
public submission has to pass before a response row is written: honeypot,
token, form status, domain allowlist, response cap and per-IP rate limit.
"""

import hashlib
import logging
from datetime import timedelta
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

from app.core.config import settings
from app.core.errors import (
    DOMAIN_REJECTED,
    INVALID_REFERRER,
    RATE_LIMITED,
    TOKEN_INVALID,
    BadRequestError,
    ClosedError,
    NotFoundError,
    protocol_error,
)
from app.db.repository import FormRepository
from app.schemas.form import Form, FormStatus, utcnow
from app.schemas.submission import SubmitRequest, SubmitResult
from app.services.link_generator import generate_csrf_token

logger = logging.getLogger(__name__)


def hash_ip(ip: str, form_id: str) -> str:
    return hashlib.sha256((ip + form_id).encode("utf-8")).hexdigest()


def sanitize(value: Any, max_length: Optional[int] = None) -> Any:
    """Strip NUL bytes, cap the length and trim strings, recursing into lists."""
    limit = max_length or settings.MAX_ANSWER_LENGTH
    if isinstance(value, str):
        return value.replace("\0", "")[:limit].strip()
    if isinstance(value, list):
        return [sanitize(v, limit) for v in value]
    return value


def _bare_host(host: str) -> str:
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def referrer_allowed(referrer: Optional[str], allowed_domains: Optional[List[str]]) -> bool:
    """
    Check a referrer against a form's domain allowlist. A host matches a
    domain when it equals it or is a subdomain of it, ignoring a leading www.
    An empty allowlist or an unknown referrer allows everything.
    """
    if not allowed_domains or not referrer:
        return True
    try:
        host = urlparse(str(referrer)).hostname
    except ValueError:
        raise protocol_error(INVALID_REFERRER)
    if not host:
        raise protocol_error(INVALID_REFERRER)
    host = _bare_host(host)
    for domain in allowed_domains:
        domain = _bare_host(domain.strip())
        if host == domain or host.endswith("." + domain):
            return True
    return False


class SubmissionService:
    def __init__(self, repository: FormRepository, now: Callable = utcnow):
        self.repository = repository
        self.now = now

    def issue_token(self, form_id: Optional[str]) -> str:
        if not form_id or not isinstance(form_id, str):
            raise BadRequestError("formId required")
        if self.repository.get_form(form_id) is None:
            raise NotFoundError("Form not found")
        token = generate_csrf_token()
        self.repository.insert_token(token, form_id)
        logger.info(f"Issued csrf token for form {form_id}")
        return token

    def submit(self, request: SubmitRequest, client_ip: str = "unknown") -> SubmitResult:
        form_id = request.form_id
        if not form_id:
            raise BadRequestError("formId is required")

        if request.honeypot and request.honeypot.strip():
            # Looks like success to the bot, nothing is recorded
            logger.warning(f"Honeypot triggered for form {form_id}")
            return SubmitResult(success=True)

        self._consume_token(form_id, request.csrf_token)

        form = self.repository.get_form(form_id)
        if form is None:
            raise NotFoundError("Form not found")
        if form.status != FormStatus.ACTIVE:
            raise ClosedError("This form is not accepting responses")

        if not referrer_allowed(request.referrer, form.allowed_domains):
            logger.warning(f"Referrer {request.referrer} rejected for form {form_id}")
            raise protocol_error(DOMAIN_REJECTED)

        if form.max_responses:
            if self.repository.count_responses(form_id) >= form.max_responses:
                logger.warning(f"Form {form_id} reached its cap of {form.max_responses}")
                error = ClosedError("This form has reached its response limit")
                error.status_code = 429
                raise error

        ip_hash = hash_ip(client_ip, form_id)
        since = self.now() - timedelta(hours=1)
        if self.repository.count_recent_submissions(form_id, ip_hash, since) >= settings.SUBMISSION_RATE_LIMIT:
            logger.warning(f"Rate limit hit for form {form_id}")
            raise protocol_error(RATE_LIMITED)

        answers = self._clean_answers(form, request)
        self.repository.insert_response(
            form_id,
            answers,
            request.completed,
            {
                "submitted_via": urlparse(settings.SHARE_URL).hostname,
                "referrer": request.referrer or None,
                "ip_hash": ip_hash,
            },
        )
        self.repository.record_submission(form_id, ip_hash)
        logger.info(f"Recorded response with {len(answers)} answers for form {form_id}")

        now = self.now()
        self.repository.purge_rate_limits(now - timedelta(hours=settings.RATE_LIMIT_RETENTION_HOURS))
        self.repository.purge_tokens(now - timedelta(minutes=settings.CSRF_TOKEN_RETENTION_MINUTES))
        return SubmitResult(success=True)

    def _consume_token(self, form_id: str, token: Optional[str]) -> None:
        if not token:
            raise protocol_error(TOKEN_INVALID, "Missing CSRF token")
        row = self.repository.get_token(token, form_id)
        if row is None:
            raise protocol_error(TOKEN_INVALID, "Invalid CSRF token")
        if row["used"]:
            raise protocol_error(TOKEN_INVALID, "CSRF token already used")
        if self.now() - row["created_at"] > timedelta(minutes=settings.CSRF_TOKEN_TTL_MINUTES):
            raise protocol_error(TOKEN_INVALID, "CSRF token expired")
        # Spent before any further check so it can never be replayed
        self.repository.mark_token_used(token)

    def _clean_answers(self, form: Form, request: SubmitRequest) -> List[dict]:
        known = {q.id for q in form.questions}
        cleaned = []
        for answer in request.answers:
            if answer.question_id not in known:
                logger.debug(f"Dropping answer for unknown question {answer.question_id}")
                continue
            cleaned.append({"questionId": answer.question_id, "value": sanitize(answer.value)})
        return cleaned
