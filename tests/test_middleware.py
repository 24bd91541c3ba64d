# =============================================================================
# tests/test_middleware.py - Request Middleware Tests
# =============================================================================
# Tests for:
# - JSON / urlencoded body parsing, malformed and oversized bodies
# - The per-client rate limiter (unit and on the /api/chat mount)
# - The shared secret guard on chat endpoints
# =============================================================================

import pytest
from fastapi import APIRouter, Depends, Request

from support_chatbot.exceptions import RateLimitedError, ValidationError
from support_chatbot.middleware.body_parsing import parse_form_body, parse_json_body
from support_chatbot.middleware.rate_limit import RateLimiter
from support_chatbot.middleware.shared_secret import validate_shared_secret


def _echo_router() -> APIRouter:
    router = APIRouter()

    @router.post("/echo")
    async def echo(request: Request):
        return {"body": request.state.body}

    return router


def _guarded_router() -> APIRouter:
    router = APIRouter(dependencies=[Depends(validate_shared_secret)])

    @router.post("/start")
    async def start():
        return {"started": True}

    return router


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# =============================================================================
# Body Parsing
# =============================================================================

class TestBodyParsers:
    """Pure parsing helpers."""

    def test_json(self):
        assert parse_json_body(b'{"email": "a@b.co"}') == {"email": "a@b.co"}

    def test_empty_json_body(self):
        assert parse_json_body(b"  ") == {}

    def test_malformed_json(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_json_body(b'{"email": ')

        assert exc_info.value.status_code == 400
        assert exc_info.value.message.startswith("Malformed JSON body")

    def test_form_with_repeated_keys(self):
        body = parse_form_body(b"name=Ann+Lee&tag=a&tag=b&tag=c&empty=")

        assert body == {"name": "Ann Lee", "tag": ["a", "b", "c"], "empty": ""}


class TestBodyParsingMiddleware:
    """Parsing in front of the routers."""

    @pytest.fixture
    def echo(self, make_client):
        return make_client(routers={"test": _echo_router()})

    def test_json_body(self, echo):
        response = echo.post("/api/test/echo", json={"email": "a@b.co", "n": 2})

        assert response.json() == {"body": {"email": "a@b.co", "n": 2}}

    def test_urlencoded_body(self, echo):
        response = echo.post("/api/test/echo", data={"email": "a@b.co"})

        assert response.json() == {"body": {"email": "a@b.co"}}

    def test_other_content_type(self, echo):
        response = echo.post(
            "/api/test/echo",
            content=b"plain text",
            headers={"Content-Type": "text/plain"},
        )

        assert response.json() == {"body": {}}

    def test_malformed_json_is_400(self, echo):
        response = echo.post(
            "/api/test/echo",
            content=b'{"email": ',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Malformed JSON body")

    def test_oversized_body_is_413(self, make_client, make_settings):
        client = make_client(
            settings=make_settings(BODY_LIMIT_BYTES=32),
            routers={"test": _echo_router()},
        )

        response = client.post("/api/test/echo", json={"message": "x" * 100})

        assert response.status_code == 413
        assert response.json() == {"error": "request entity too large"}


# =============================================================================
# Rate Limiting
# =============================================================================

class TestRateLimiter:
    """Fixed-window counting."""

    def test_allows_up_to_limit(self):
        limiter = RateLimiter(window_ms=1000, max_requests=2, clock=FakeClock())

        assert limiter.hit("ip").count == 1
        assert limiter.hit("ip").count == 2

    def test_rejects_over_limit(self):
        clock = FakeClock()
        limiter = RateLimiter(window_ms=10_000, max_requests=1, clock=clock)
        limiter.hit("ip")
        clock.now += 2.5

        with pytest.raises(RateLimitedError) as exc_info:
            limiter.hit("ip")

        assert exc_info.value.retry_after == 8

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(window_ms=1000, max_requests=1, clock=clock)
        limiter.hit("ip")

        clock.now += 1.5

        assert limiter.hit("ip").count == 1

    def test_clients_are_independent(self):
        limiter = RateLimiter(window_ms=1000, max_requests=1, clock=FakeClock())
        limiter.hit("a")

        assert limiter.hit("b").count == 1

    def test_expired_windows_are_purged(self):
        clock = FakeClock()
        limiter = RateLimiter(window_ms=1000, max_requests=5, clock=clock)
        limiter.hit("a")

        clock.now += 10 * 60
        limiter.hit("b")

        assert "a" not in limiter._windows

    def test_from_settings_respects_test_mode(self, make_settings):
        assert RateLimiter.from_settings(make_settings(TEST_MODE=True)).enabled is False
        assert RateLimiter.from_settings(make_settings()).enabled is True

    def test_proxy_header_ignored_by_default(self, make_settings):
        assert RateLimiter.from_settings(make_settings()).trust_proxy is False
        assert RateLimiter.from_settings(make_settings(TRUST_PROXY=True)).trust_proxy is True


class TestChatRateLimit:
    """The limiter guards the /api/chat mount."""

    @pytest.fixture
    def headers(self, shared_secret):
        return {"X-Shared-Secret": shared_secret}

    def _status(self, client, headers):
        return client.get("/api/chat/status", headers=headers)

    def test_limit_exceeded(self, make_client, make_settings, headers):
        client = make_client(settings=make_settings(RATE_LIMIT_MAX_REQUESTS=2))

        first = self._status(client, headers)
        self._status(client, headers)
        third = self._status(client, headers)

        assert first.status_code == 200
        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert "X-RateLimit-Reset" in first.headers
        assert third.status_code == 429
        assert third.json()["error"].startswith("Rate limit exceeded")
        assert int(third.headers["Retry-After"]) >= 1

    def test_disabled_in_test_mode(self, make_client, make_settings, headers):
        client = make_client(settings=make_settings(RATE_LIMIT_MAX_REQUESTS=1, TEST_MODE=True))

        responses = [self._status(client, headers) for _ in range(3)]

        assert [r.status_code for r in responses] == [200, 200, 200]

    def test_other_groups_are_not_limited(self, make_client, make_settings):
        client = make_client(settings=make_settings(RATE_LIMIT_MAX_REQUESTS=1))

        assert [client.get("/api/test").status_code for _ in range(3)] == [200, 200, 200]

    def test_rotating_forwarded_for_does_not_reset_count(self, make_client, make_settings, headers):
        client = make_client(settings=make_settings(RATE_LIMIT_MAX_REQUESTS=2))

        responses = [
            client.get("/api/chat/status", headers={**headers, "X-Forwarded-For": f"10.0.0.{i}"})
            for i in range(5)
        ]

        assert [r.status_code for r in responses] == [200, 200, 429, 429, 429]
        assert list(client.app.state.rate_limiter._windows) == ["ratelimit:testclient"]

    def test_forwarded_for_used_behind_trusted_proxy(self, make_client, make_settings, headers):
        client = make_client(settings=make_settings(RATE_LIMIT_MAX_REQUESTS=1, TRUST_PROXY=True))

        a = client.get("/api/chat/status", headers={**headers, "X-Forwarded-For": "10.0.0.1"})
        b = client.get("/api/chat/status", headers={**headers, "X-Forwarded-For": "10.0.0.2, 1.1.1.1"})
        again = client.get("/api/chat/status", headers={**headers, "X-Forwarded-For": "10.0.0.1"})

        assert a.status_code == 200
        assert b.status_code == 200
        assert again.status_code == 429


# =============================================================================
# Shared Secret
# =============================================================================

class TestSharedSecret:
    """Chat endpoints need X-Shared-Secret or sharedSecret in the body."""

    def test_missing_secret(self, client):
        response = client.get("/api/chat/status")

        assert response.status_code == 401
        assert response.json() == {"error": "Shared secret is required"}

    def test_wrong_secret(self, client):
        response = client.get("/api/chat/status", headers={"X-Shared-Secret": "guess"})

        assert response.status_code == 403
        assert response.json() == {"error": "Invalid shared secret"}

    def test_valid_secret(self, client, shared_secret):
        response = client.get("/api/chat/status", headers={"X-Shared-Secret": shared_secret})

        assert response.status_code == 200
        assert response.json() == {"total_connections": 0, "connected_clients": []}

    def test_secret_in_json_body(self, make_client, shared_secret):
        client = make_client(routers={"chat": _guarded_router()})

        response = client.post("/api/chat/start", json={"sharedSecret": shared_secret})

        assert response.status_code == 200
        assert response.json() == {"started": True}

    def test_wrong_secret_in_form_body(self, make_client):
        client = make_client(routers={"chat": _guarded_router()})

        response = client.post("/api/chat/start", data={"sharedSecret": "nope"})

        assert response.status_code == 403
