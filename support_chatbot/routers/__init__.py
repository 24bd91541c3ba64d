# =============================================================================
# support_chatbot/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Liveness probe at /health
# - test.py: API smoke test, mounted at /api/test
# - auth.py: Mount point for the auth service, mounted at /api/auth
# - chat.py: Chat endpoints, mounted at /api/chat
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import test
from . import auth
from . import chat

__all__ = [
    "health",
    "test",
    "auth",
    "chat",
]
