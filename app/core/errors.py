# backend/app/core/errors.py

from typing import List, Optional


class FormqoError(Exception):
    """
    Base class for errors raised by the form services.

    Attributes:
        kind (str): Stable machine-readable code.
        message (str): Copy shown to the user.
        status_code (int): HTTP status used when the error crosses the API.
    """
    kind = "Error"
    status_code = 500
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, kind: Optional[str] = None):
        self.message = message or self.default_message
        if kind is not None:
            self.kind = kind
        super().__init__(self.message)


class BadRequestError(FormqoError):
    kind = "BadRequest"
    status_code = 400
    default_message = "Invalid request."


class AnswerValidationError(FormqoError):
    """A required question has no answer. Blocks a transition, never fatal."""
    kind = "Validation"
    status_code = 422
    default_message = "Please fill this in."

    def __init__(self, question_id: str, message: Optional[str] = None):
        self.question_id = question_id
        super().__init__(message)


class NotFoundError(FormqoError):
    kind = "NotFound"
    status_code = 404
    default_message = "Form not found. This form doesn't exist or has been removed."


class ClosedError(FormqoError):
    kind = "Closed"
    status_code = 403
    default_message = "This form is closed. It is no longer accepting responses."


class ProtocolError(FormqoError):
    """Submission rejected by the protocol checks. The respondent may retry."""
    kind = "Protocol"
    status_code = 403
    default_message = "Your response could not be accepted."


class NetworkError(FormqoError):
    kind = "NetworkError"
    status_code = 503
    default_message = "We couldn't reach the server. Check your connection and try again."


class DefinitionError(FormqoError):
    """A form definition violates a shape invariant."""
    kind = "Definition"
    status_code = 422
    default_message = "The form definition is invalid."

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


class PersistenceError(FormqoError):
    kind = "Persistence"
    status_code = 500
    default_message = "Save failed."


class AIServiceError(FormqoError):
    kind = "AIError"
    status_code = 500
    default_message = "Could not load suggestions."


class AIRateLimitError(AIServiceError):
    kind = "AIRateLimited"
    status_code = 429
    default_message = "Rate limit exceeded. Please try again shortly."


class AIQuotaError(AIServiceError):
    kind = "AIQuota"
    status_code = 402
    default_message = "AI usage limit reached. Please add credits."


# Protocol error kinds
TOKEN_INVALID = "TokenInvalid"
DOMAIN_REJECTED = "DomainRejected"
INVALID_REFERRER = "InvalidReferrer"
RATE_LIMITED = "RateLimited"

PROTOCOL_MESSAGES = {
    TOKEN_INVALID: "Your session has expired. Please try submitting again.",
    DOMAIN_REJECTED: "Submissions from this domain are not permitted.",
    INVALID_REFERRER: "Invalid referrer.",
    RATE_LIMITED: "Too many submissions. Please try again later.",
}

PROTOCOL_STATUS = {
    TOKEN_INVALID: 403,
    DOMAIN_REJECTED: 403,
    INVALID_REFERRER: 400,
    RATE_LIMITED: 429,
}


def protocol_error(kind: str, message: Optional[str] = None) -> ProtocolError:
    error = ProtocolError(message or PROTOCOL_MESSAGES.get(kind), kind=kind)
    error.status_code = PROTOCOL_STATUS.get(kind, 403)
    return error
