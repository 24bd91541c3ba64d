# =============================================================================
# support_chatbot/middleware/body_parsing.py - JSON / Form Body Parsing
# =============================================================================
# Parses JSON and application/x-www-form-urlencoded request bodies once,
# before routing, and exposes the result as request.state.body.
#
# The raw bytes are replayed to the downstream app, so FastAPI body models
# still work. Malformed JSON and oversized bodies are answered here with
# the same {"error": ...} shape the exception handlers use.
# =============================================================================

import json
import logging
from typing import Any
from urllib.parse import parse_qsl

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from support_chatbot.exceptions import (
    ChatbotError,
    PayloadTooLargeError,
    ValidationError,
    translate_exception,
)

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def parse_json_body(raw: bytes) -> Any:
    """Decode a JSON body; an empty body parses to an empty dict."""
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"Malformed JSON body: {e}")


def parse_form_body(raw: bytes) -> dict[str, Any]:
    """
    Decode a urlencoded body.

    Repeated keys collect into a list: "tag=a&tag=b" -> {"tag": ["a", "b"]}.
    """
    try:
        pairs = parse_qsl(raw.decode("utf-8"), keep_blank_values=True)
    except UnicodeDecodeError as e:
        raise ValidationError(f"Malformed form body: {e}")

    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            existing = result[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [existing, value]
        else:
            result[key] = value
    return result


class BodyParsingMiddleware:
    """
    Pure ASGI middleware that buffers and parses request bodies.

    Only requests with a JSON or urlencoded content type are buffered;
    everything else streams through untouched with an empty parsed body.
    """

    def __init__(self, app: ASGIApp, limit_bytes: int = 100 * 1024):
        self.app = app
        self.limit_bytes = limit_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        content_type = Headers(scope=scope).get("content-type", "")
        media_type = content_type.split(";")[0].strip().lower()

        if media_type not in (JSON_CONTENT_TYPE, FORM_CONTENT_TYPE):
            state["body"] = {}
            await self.app(scope, receive, send)
            return

        try:
            raw, replay = await self._buffer(receive)
            if media_type == JSON_CONTENT_TYPE:
                state["body"] = parse_json_body(raw)
            else:
                state["body"] = parse_form_body(raw)
        except ChatbotError as e:
            logger.warning(f"Rejected request body on {scope.get('path')}: {e.message}")
            status_code, payload, headers = translate_exception(e)
            response = JSONResponse(payload, status_code=status_code, headers=headers)
            await response(scope, receive, send)
            return

        await self.app(scope, replay, send)

    async def _buffer(self, receive: Receive) -> tuple[bytes, Receive]:
        """Read the whole body, enforcing the size limit."""
        chunks: list[bytes] = []
        size = 0
        more_body = True

        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit_bytes:
                raise PayloadTooLargeError("request entity too large")
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        raw = b"".join(chunks)
        sent = False

        async def replay() -> Message:
            nonlocal sent
            if not sent:
                sent = True
                return {"type": "http.request", "body": raw, "more_body": False}
            return await receive()

        return raw, replay
