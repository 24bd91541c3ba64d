# =============================================================================
# support_chatbot/middleware/shared_secret.py - Shared Secret Guard
# =============================================================================
# Chat endpoints are called by a trusted front end that sends a shared
# secret, either as the X-Shared-Secret header or as "sharedSecret" in the
# request body.
# =============================================================================

import hmac
import logging

from fastapi import Request

from support_chatbot.exceptions import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)


def _provided_secret(request: Request) -> str | None:
    header = request.headers.get("x-shared-secret")
    if header:
        return header

    body = getattr(request.state, "body", None)
    if isinstance(body, dict):
        value = body.get("sharedSecret")
        if isinstance(value, str) and value:
            return value
    return None


async def validate_shared_secret(request: Request) -> None:
    """
    FastAPI dependency rejecting requests without the configured secret.

    Raises:
        UnauthorizedError: 401 if no secret was sent
        ForbiddenError: 403 if the secret does not match
    """
    expected = request.app.state.settings.CHAT_SHARED_SECRET
    provided = _provided_secret(request)

    if not provided:
        raise UnauthorizedError("Shared secret is required")

    if not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning(f"Invalid shared secret on {request.url.path}")
        raise ForbiddenError("Invalid shared secret")
