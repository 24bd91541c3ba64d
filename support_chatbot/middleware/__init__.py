# =============================================================================
# support_chatbot/middleware/ - Request Processing
# =============================================================================
# - body_parsing.py: JSON / urlencoded parsing into request.state.body
# - rate_limit.py: in-memory per-client rate limiter (FastAPI dependency)
# - shared_secret.py: X-Shared-Secret guard for chat endpoints
# =============================================================================

from support_chatbot.middleware.body_parsing import BodyParsingMiddleware
from support_chatbot.middleware.rate_limit import RateLimiter
from support_chatbot.middleware.shared_secret import validate_shared_secret

__all__ = [
    "BodyParsingMiddleware",
    "RateLimiter",
    "validate_shared_secret",
]
