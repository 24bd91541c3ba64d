# =============================================================================
# support_chatbot/sockets/ - Socket.IO Layer
# =============================================================================
# Usage:
#   from support_chatbot.sockets import init_socket, wrap_asgi
#
#   sio = init_socket(settings, registry)
#   asgi_app = wrap_asgi(sio, fastapi_app)
# =============================================================================

from support_chatbot.sockets.registry import ConnectionRegistry
from support_chatbot.sockets.server import get_io, init_socket, wrap_asgi

__all__ = [
    "ConnectionRegistry",
    "get_io",
    "init_socket",
    "wrap_asgi",
]
