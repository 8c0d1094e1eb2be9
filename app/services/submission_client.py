# backend/app/services/submission_client.py

"""
Respondent side of the submission protocol.

The client only carries evidence (token, referrer, honeypot field). Every
decision about accepting a response is made by the server.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import (
    PROTOCOL_MESSAGES,
    ClosedError,
    FormqoError,
    NetworkError,
    NotFoundError,
    ProtocolError,
    protocol_error,
)
from app.schemas.form import Answer
from app.schemas.submission import SubmitRequest
from app.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)


def error_from_response(status_code: int, body: Dict[str, Any]) -> FormqoError:
    kind = body.get("kind")
    message = body.get("error") or body.get("detail")
    if not isinstance(message, str):
        message = None
    if kind == "NotFound" or status_code == 404:
        return NotFoundError(message)
    if kind == "Closed":
        return ClosedError(message)
    if kind in PROTOCOL_MESSAGES:
        return protocol_error(kind, message)
    if status_code >= 500:
        return NetworkError()
    return ProtocolError(message, kind=kind or "Protocol")


class SubmissionGateway:
    """Transport to the token and submit endpoints."""

    async def issue_token(self, form_id: str) -> str:
        raise NotImplementedError

    async def submit(self, payload: SubmitRequest) -> None:
        raise NotImplementedError


class HttpSubmissionGateway(SubmissionGateway):
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.timeout = timeout or settings.SUBMISSION_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/api/v1/public/{path}"
        try:
            response = self.session.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise NetworkError()
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code != 200:
            raise error_from_response(response.status_code, data)
        return data

    async def issue_token(self, form_id: str) -> str:
        data = await run_in_threadpool(self._post, "issue-csrf", {"formId": form_id})
        token = data.get("token")
        if not token:
            raise NetworkError()
        return token

    async def submit(self, payload: SubmitRequest) -> None:
        await run_in_threadpool(self._post, "submit-form", payload.model_dump(by_alias=True, mode="json"))


class LocalSubmissionGateway(SubmissionGateway):
    """Calls the submission service in-process, e.g. for server-rendered forms."""

    def __init__(self, service: SubmissionService, client_ip: str = "unknown"):
        self.service = service
        self.client_ip = client_ip

    async def issue_token(self, form_id: str) -> str:
        return await run_in_threadpool(self.service.issue_token, form_id)

    async def submit(self, payload: SubmitRequest) -> None:
        await run_in_threadpool(self.service.submit, payload, self.client_ip)


class SubmissionClient:
    """
    Carries one respondent's submission to the server.

    Args:
        gateway (SubmissionGateway): Transport to the public endpoints.
        form_id (str): Form being answered.
        referrer (str): Page the form is embedded in. Always sent, as an
            empty string when unknown.
        preview (bool): Never talk to the gateway; every submit succeeds.
    """

    def __init__(self, gateway: Optional[SubmissionGateway], form_id: str, referrer: Optional[str] = "",
                 preview: bool = False):
        self.gateway = gateway
        self.form_id = form_id
        self.referrer = referrer or ""
        self.preview = preview
        self.token: Optional[str] = None

    async def prefetch_token(self) -> Optional[str]:
        if self.preview:
            return None
        self.token = await self.gateway.issue_token(self.form_id)
        return self.token

    async def submit(self, answers: List[Answer], completed: bool, honeypot: str = "") -> None:
        if self.preview:
            logger.debug(f"Preview mode, submission for form {self.form_id} not sent")
            return
        if not self.token:
            # Covers sessions that idled past token expiry
            await self.prefetch_token()
        payload = SubmitRequest(
            form_id=self.form_id,
            answers=answers,
            completed=completed,
            csrf_token=self.token,
            honeypot=honeypot,
            referrer=self.referrer,
        )
        # Tokens are single use whatever the outcome
        self.token = None
        await self.gateway.submit(payload)
        logger.info(f"Submitted {len(answers)} answers for form {self.form_id}")
