# =============================================================================
# support_chatbot/middleware/rate_limit.py - Per-Client Rate Limiting
# =============================================================================
# Simple in-memory fixed-window limiter used as a FastAPI dependency on the
# chat mount. Counters live in process memory, so limits are per worker.
#
# Usage:
#   limiter = RateLimiter(window_ms=60000, max_requests=10)
#   app.include_router(chat.router, dependencies=[Depends(limiter)])
# =============================================================================

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict

from fastapi import Request, Response

from support_chatbot.config import Settings
from support_chatbot.exceptions import RateLimitedError

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 5 * 60


@dataclass
class _Window:
    count: int
    reset_time: float


def client_identifier(request: Request, trust_proxy: bool = False) -> str:
    """
    The socket peer address, or "unknown" when the server gives none.

    X-Forwarded-For is client controlled, so its first hop is only used
    when trust_proxy is set.
    """
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        if forwarded:
            return forwarded
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiter:
    """
    Fixed-window request counter keyed by client identifier.

    Each client gets max_requests per window_ms. The window starts with the
    client's first request and resets once it expires.
    """

    def __init__(
        self,
        window_ms: int = 60 * 1000,
        max_requests: int = 10,
        enabled: bool = True,
        trust_proxy: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.window_seconds = window_ms / 1000
        self.max_requests = max_requests
        self.enabled = enabled
        self.trust_proxy = trust_proxy
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._last_cleanup = clock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        return cls(
            window_ms=settings.RATE_LIMIT_WINDOW_MS,
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            enabled=not settings.TEST_MODE,
            trust_proxy=settings.TRUST_PROXY,
        )

    def hit(self, key: str) -> _Window:
        """
        Count one request for key.

        Raises:
            RateLimitedError: If the key is over its budget for this window
        """
        now = self._clock()
        self._cleanup(now)

        window = self._windows.get(key)
        if window is None or window.reset_time < now:
            window = _Window(count=0, reset_time=now + self.window_seconds)
            self._windows[key] = window

        window.count += 1

        if window.count > self.max_requests:
            retry_after = max(1, math.ceil(window.reset_time - now))
            logger.warning(f"Rate limit exceeded for {key}, retry in {retry_after}s")
            raise RateLimitedError(retry_after)

        return window

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return
        expired = [key for key, w in self._windows.items() if w.reset_time < now]
        for key in expired:
            del self._windows[key]
        self._last_cleanup = now

    async def __call__(self, request: Request, response: Response) -> None:
        if not self.enabled:
            return

        window = self.hit(f"ratelimit:{client_identifier(request, self.trust_proxy)}")

        reset = datetime.fromtimestamp(window.reset_time, tz=timezone.utc)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.max_requests - window.count))
        response.headers["X-RateLimit-Reset"] = reset.isoformat()
