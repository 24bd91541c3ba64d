# =============================================================================
# support_chatbot/exceptions.py - Error Types and Translation
# =============================================================================
# Centralized error handling for the API.
#
# Every error that reaches a client goes through translate_exception(), so
# the wire format is always {"error": <message>} with a status code taken
# from the error's kind. Clients never see tracebacks.
# =============================================================================

from enum import Enum
from typing import Any

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

DEFAULT_ERROR_MESSAGE = "Internal server error"

NOT_FOUND_PAYLOAD = {"error": "Route not found"}


class ErrorKind(str, Enum):
    """Discriminator for every error the API can report."""
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_DEPENDENCY = "upstream_dependency"
    INTERNAL = "internal"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INTERNAL: 500,
    ErrorKind.UPSTREAM_DEPENDENCY: 503,
}


class ChatbotError(Exception):
    """
    Base exception for the Support ChatBot API.

    All custom exceptions inherit from this class. The status code comes
    from STATUS_BY_KIND unless an explicit one is given.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "",
        kind: ErrorKind | None = None,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.status_code = status_code or STATUS_BY_KIND[self.kind]
        self.headers = headers or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        return error_payload(self.message)


class ValidationError(ChatbotError):
    """Malformed or missing request input."""
    kind = ErrorKind.VALIDATION


class UnauthorizedError(ChatbotError):
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(ChatbotError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(ChatbotError):
    kind = ErrorKind.NOT_FOUND


class PayloadTooLargeError(ChatbotError):
    kind = ErrorKind.PAYLOAD_TOO_LARGE


class RateLimitedError(ChatbotError):
    """Raised when a client exceeds its request budget."""
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, retry_after: int):
        super().__init__(
            f"Rate limit exceeded. Please try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


class UpstreamDependencyError(ChatbotError):
    """A collaborator the request depends on is unavailable."""
    kind = ErrorKind.UPSTREAM_DEPENDENCY


class DatabaseConnectionError(UpstreamDependencyError):
    """Raised when the PostgreSQL connection test fails."""


class ConfigurationError(Exception):
    """
    Raised at start-up when environment configuration is invalid.

    Not HTTP facing: it stops the process before the listener exists.
    """

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []


# =============================================================================
# Translation
# =============================================================================

def error_payload(message: str | None) -> dict[str, str]:
    """The only error body shape the API emits."""
    return {"error": message or DEFAULT_ERROR_MESSAGE}


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def translate_exception(exc: Exception) -> tuple[int, dict[str, str], dict[str, str]]:
    """
    Map any exception to (status_code, body, headers).

    - ChatbotError: its own status and message
    - HTTPException: its status and detail
    - RequestValidationError: 400 with a flattened message
    - anything else: 500 with its message, or the generic fallback
    """
    if isinstance(exc, ChatbotError):
        return exc.status_code, exc.to_dict(), exc.headers

    if isinstance(exc, StarletteHTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else None
        return exc.status_code, error_payload(detail), dict(exc.headers or {})

    if isinstance(exc, RequestValidationError):
        return 400, error_payload(_validation_message(exc)), {}

    status_code = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if not isinstance(status_code, int) or not 400 <= status_code <= 599:
        status_code = 500
    return status_code, error_payload(str(exc)), {}
