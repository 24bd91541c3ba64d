# =============================================================================
# support_chatbot/routers/chat.py - Chat Endpoints
# =============================================================================
# Mounted at /api/chat behind the per-client rate limiter. Every endpoint
# here also requires the shared secret.
#
# Conversation handling itself runs in the chat service; this router only
# exposes what the bootstrap layer knows about: socket connections.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from support_chatbot.middleware.shared_secret import validate_shared_secret

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(validate_shared_secret)])


class ChatStatusResponse(BaseModel):
    """Socket connection statistics."""
    total_connections: int
    connected_clients: list[str]


@router.get("/status", response_model=ChatStatusResponse)
async def chat_status(request: Request):
    """
    Get Socket.IO connection statistics.

    Returns:
        ChatStatusResponse: Connection count and connected client ids
    """
    registry = request.app.state.socket_registry
    return ChatStatusResponse(
        total_connections=registry.get_connection_count(),
        connected_clients=registry.get_connected_clients(),
    )
