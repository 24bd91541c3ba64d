# =============================================================================
# support_chatbot/sockets/server.py - Socket.IO Server
# =============================================================================
# Creates the Socket.IO server and mounts it in front of the FastAPI app so
# both share the same listener.
#
# Events:
#   - connect / disconnect: tracked in the ConnectionRegistry
#   - ping -> pong {"message": "Server is alive", "timestamp": ...}
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone

import socketio
from starlette.types import ASGIApp

from support_chatbot.config import Settings
from support_chatbot.sockets.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "socket.io"

_io: socketio.AsyncServer | None = None


def _cors_allowed_origins(origin: str) -> str | list[str]:
    return "*" if origin == "*" else [origin]


def init_socket(
    settings: Settings,
    registry: ConnectionRegistry | None = None,
) -> socketio.AsyncServer:
    """
    Create the Socket.IO server and register its handlers.

    Keepalive timing comes from settings (milliseconds) and is converted to
    the seconds python-socketio expects. Registration does not suspend.

    Args:
        settings: Application settings
        registry: Where connections are tracked (a new one if omitted)

    Returns:
        socketio.AsyncServer: The initialized server
    """
    global _io

    registry = registry if registry is not None else ConnectionRegistry()

    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=_cors_allowed_origins(settings.cors.origin),
        cors_credentials=settings.cors.credentials,
        ping_timeout=settings.socketio.ping_timeout / 1000,
        ping_interval=settings.socketio.ping_interval / 1000,
        logger=False,
        engineio_logger=False,
    )

    async def connect(sid, environ, auth=None):
        registry.add(sid)

    async def disconnect(sid, *args):
        registry.remove(sid)

    async def ping(sid, data=None):
        await sio.emit(
            "pong",
            {
                "message": "Server is alive",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            to=sid,
        )

    sio.on("connect", connect)
    sio.on("disconnect", disconnect)
    sio.on("ping", ping)

    _io = sio
    logger.info("Socket.IO initialized")
    return sio


def get_io() -> socketio.AsyncServer:
    """
    Get the server created by init_socket().

    Raises:
        RuntimeError: If init_socket() has not run yet
    """
    if _io is None:
        raise RuntimeError("Socket.IO not initialized. Call init_socket first.")
    return _io


def wrap_asgi(sio: socketio.AsyncServer, app: ASGIApp) -> socketio.ASGIApp:
    """Serve Socket.IO at /socket.io and hand every other request to app."""
    return socketio.ASGIApp(sio, other_asgi_app=app, socketio_path=SOCKETIO_PATH)
