# =============================================================================
# support_chatbot/sockets/registry.py - Socket Connection Registry
# =============================================================================
# Tracks which Socket.IO clients are connected, for status reporting.
#
# Usage:
#   registry = ConnectionRegistry()
#   registry.add(sid)
#   registry.get_connection_count()
#   registry.remove(sid)
# =============================================================================

import logging
from typing import Set

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Set of connected Socket.IO session ids.

    A client reconnecting gets a new sid, so each entry is one live
    connection.
    """

    def __init__(self):
        self.connections: Set[str] = set()

    def add(self, sid: str) -> None:
        self.connections.add(sid)
        logger.info(f"Client connected: {sid}. Total connections: {len(self.connections)}")

    def remove(self, sid: str) -> None:
        self.connections.discard(sid)
        logger.info(f"Client disconnected: {sid}. Total connections: {len(self.connections)}")

    def get_connection_count(self) -> int:
        return len(self.connections)

    def get_connected_clients(self) -> list[str]:
        """
        Get connected sids in a stable order.

        Returns:
            list[str]: Sorted session ids
        """
        return sorted(self.connections)
