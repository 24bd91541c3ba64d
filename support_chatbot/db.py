# =============================================================================
# support_chatbot/db.py - PostgreSQL Connection Pool
# =============================================================================
# This module owns the connection pool and the start-up connection test.
# It wraps a SQLAlchemy AsyncEngine on the asyncpg driver; the engine is
# created lazily, so constructing a Database never touches the network.
#
# The rest of the service treats the database as a soft dependency: a
# failed connect_db() is logged by the bootstrap and the server keeps
# running without it.
#
# Usage:
#   from support_chatbot.db import Database
#   database = Database(settings)
#   await database.connect_db()
#   rows = await database.query("SELECT id FROM users WHERE email = :email", {"email": e})
# =============================================================================

from __future__ import annotations

import logging
import ssl
import time
from typing import Any, Mapping

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from support_chatbot.config import Settings
from support_chatbot.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

POOL_SIZE = 10
MAX_OVERFLOW = 10
POOL_RECYCLE_SECONDS = 30 * 60


def _ssl_context() -> ssl.SSLContext:
    """TLS without certificate verification, as hosted Postgres providers expect."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class Database:
    """
    Lazily created async connection pool.

    One instance is built per application and handed to whatever needs
    it; nothing reads the environment directly.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._engine: AsyncEngine | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the pooled engine."""
        if self._engine is None:
            connect_args: dict[str, Any] = {
                "timeout": self.settings.DB_CONNECT_TIMEOUT_MS / 1000,
            }
            if self.settings.db_ssl_required:
                connect_args["ssl"] = _ssl_context()

            self._engine = create_async_engine(
                self.settings.database_url,
                pool_size=POOL_SIZE,
                max_overflow=MAX_OVERFLOW,
                pool_recycle=POOL_RECYCLE_SECONDS,
                pool_pre_ping=True,
                connect_args=connect_args,
            )
            logger.debug(
                f"Database engine created for {self.settings.db.host}:{self.settings.db.port}/"
                f"{self.settings.db.database}"
            )
        return self._engine

    async def connect_db(self) -> bool:
        """
        Open one pooled connection and run a trivial query.

        No retry is attempted.

        Returns:
            bool: True when the database answered

        Raises:
            DatabaseConnectionError: If the connection or query fails
        """
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(text("SELECT NOW()"))
                server_time = result.scalar()
            logger.info(f"Database connection test successful: {server_time}")
            return True
        except Exception as e:
            logger.error(f"Database connection error: {e}")
            raise DatabaseConnectionError(f"Database connection failed: {e}") from e

    async def query(
        self,
        sql: str,
        params: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute a statement and return the rows as dicts.

        Statements that return no rows yield an empty list. The statement
        runs in its own transaction, committed on success.
        """
        start = time.perf_counter()
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(text(sql), dict(params or {}))
                rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
        except Exception as e:
            logger.error(f"Query error: {e}")
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Executed query in {duration_ms:.1f}ms, rows={len(rows)}: {sql}")
        return rows

    async def dispose(self) -> None:
        """Close every pooled connection."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Database pool closed")
