# =============================================================================
# support_chatbot/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Support ChatBot API.
# It assembles the FastAPI application from an ordered list of bootstrap
# stages, wires the database start-up attempt into the lifespan, and puts
# the Socket.IO server in front of it on the same listener.
#
# Usage:
#   uvicorn support_chatbot.main:app --port 3000
#   python scripts/start_server.py
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Sequence

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware import Middleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from support_chatbot.config import Settings, get_settings
from support_chatbot.db import Database
from support_chatbot.exceptions import (
    ChatbotError,
    NOT_FOUND_PAYLOAD,
    translate_exception,
)
from support_chatbot.logging_config import configure_logging
from support_chatbot.middleware import BodyParsingMiddleware, RateLimiter
from support_chatbot.routers import auth, chat, health, test
from support_chatbot.sockets import ConnectionRegistry, init_socket, wrap_asgi

logger = logging.getLogger(__name__)

ConnectDB = Callable[[], Awaitable[object]]

# Route groups and their prefixes, in mount order
ROUTE_PREFIXES: dict[str, str] = {
    "test": "/api/test",
    "auth": "/api/auth",
    "chat": "/api/chat",
}

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


@dataclass(frozen=True)
class BootstrapContext:
    """Everything the bootstrap stages need, passed explicitly."""
    settings: Settings
    routers: Mapping[str, APIRouter]
    rate_limiter: RateLimiter


Stage = Callable[[FastAPI, BootstrapContext], None]


# =============================================================================
# Error Translation
# =============================================================================

def _log_error(request: Request | None, status_code: int, exc: Exception) -> None:
    path = request.url.path if request is not None else "?"
    if status_code >= 500:
        logger.exception(f"Error handling {path}: {exc}", exc_info=exc)
    else:
        logger.warning(f"Request to {path} failed with {status_code}: {exc}")


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    """Log any error, then answer with its status and {"error": message}."""
    status_code, payload, headers = translate_exception(exc)
    _log_error(request, status_code, exc)
    return JSONResponse(status_code=status_code, content=payload, headers=headers or None)


class ErrorTranslationMiddleware:
    """
    Last line of defense for exceptions no handler claimed.

    Sits directly outside FastAPI's exception middleware, so nothing raised
    by a route escapes to the server as a traceback. It never re-raises.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                logger.exception(f"Error after response started on {scope.get('path')}: {exc}")
                return
            response = await handle_exception(Request(scope), exc)
            await response(scope, receive, send)


# =============================================================================
# Bootstrap Stages
# =============================================================================
# Starlette's add_middleware() prepends, so stages append to user_middleware
# directly: the list is outermost-first, matching stage order.

def install_cors(app: FastAPI, ctx: BootstrapContext) -> None:
    origin = ctx.settings.cors.origin
    app.user_middleware.append(
        Middleware(
            CORSMiddleware,
            allow_origins=["*"] if origin == "*" else [origin],
            allow_credentials=ctx.settings.cors.credentials,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    )


def install_body_parsing(app: FastAPI, ctx: BootstrapContext) -> None:
    app.user_middleware.append(
        Middleware(BodyParsingMiddleware, limit_bytes=ctx.settings.BODY_LIMIT_BYTES)
    )


def register_health(app: FastAPI, ctx: BootstrapContext) -> None:
    app.include_router(health.router, tags=["Health"])


def mount_routers(app: FastAPI, ctx: BootstrapContext) -> None:
    app.include_router(ctx.routers["test"], prefix=ROUTE_PREFIXES["test"], tags=["Test"])
    app.include_router(ctx.routers["auth"], prefix=ROUTE_PREFIXES["auth"], tags=["Auth"])
    app.include_router(
        ctx.routers["chat"],
        prefix=ROUTE_PREFIXES["chat"],
        tags=["Chat"],
        dependencies=[Depends(ctx.rate_limiter)],
    )


def register_not_found(app: FastAPI, ctx: BootstrapContext) -> None:
    """Catch-all for every path and method no earlier route claimed."""

    @app.api_route("/{full_path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def route_not_found(full_path: str):
        return JSONResponse(status_code=404, content=NOT_FOUND_PAYLOAD)


def register_error_translation(app: FastAPI, ctx: BootstrapContext) -> None:
    app.add_exception_handler(ChatbotError, handle_exception)
    app.add_exception_handler(StarletteHTTPException, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)
    app.user_middleware.append(Middleware(ErrorTranslationMiddleware))


BOOTSTRAP_STAGES: tuple[Stage, ...] = (
    install_cors,
    install_body_parsing,
    register_health,
    mount_routers,
    register_not_found,
    register_error_translation,
)

TERMINAL_STAGES: tuple[Stage, ...] = (register_not_found, register_error_translation)


def check_stage_order(stages: Sequence[Stage]) -> None:
    """
    Reject stage lists where the 404 catch-all and error translation are
    not the final two steps, or appear more than once.

    Raises:
        ValueError: If the terminal stages are misplaced
    """
    if tuple(stages[-2:]) != TERMINAL_STAGES:
        raise ValueError(
            "register_not_found and register_error_translation must be the last two stages"
        )
    for stage in TERMINAL_STAGES:
        if list(stages).count(stage) != 1:
            raise ValueError(f"{stage.__name__} must appear exactly once")


# =============================================================================
# Lifespan
# =============================================================================

async def attempt_database_connection(connect_db: ConnectDB, timeout_seconds: float) -> bool:
    """
    Try the database once, bounded by timeout_seconds.

    Failure is logged and reported as False; it never stops the server.
    """
    try:
        await asyncio.wait_for(connect_db(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(
            f"Database connection timed out after {timeout_seconds:g}s. "
            "Server will continue without database connection."
        )
        return False
    except Exception as e:
        logger.warning(
            f"Database connection failed ({e}). Server will start without database connection."
        )
        logger.warning(
            "Ensure PostgreSQL is running and connection settings are correct in .env file"
        )
        return False

    logger.info("Database connected successfully")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    - Startup: kick off the database attempt in the background so a slow
      database never delays the listener
    - Shutdown: cancel a pending attempt, close the pool
    """
    settings: Settings = app.state.settings
    logger.info(
        f"Application startup: {settings.app.name} v{settings.app.version} "
        f"({settings.NODE_ENV}), configured for port {settings.PORT}"
    )

    app.state.database_connected = False

    async def _connect() -> None:
        app.state.database_connected = await attempt_database_connection(
            app.state.connect_db,
            settings.DB_CONNECT_TIMEOUT_MS / 1000,
        )

    database_task = asyncio.create_task(_connect())
    app.state.database_task = database_task

    yield

    logger.info(f"Shutting down {settings.app.name}")

    if not database_task.done():
        database_task.cancel()
        try:
            await database_task
        except asyncio.CancelledError:
            pass

    await app.state.database.dispose()


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    settings: Settings | None = None,
    *,
    connect_db: ConnectDB | None = None,
    routers: Mapping[str, APIRouter] | None = None,
    stages: Sequence[Stage] = BOOTSTRAP_STAGES,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration; the process-wide instance when omitted
        connect_db: Start-up connection test; Database.connect_db by default
        routers: Replacements for the "test", "auth" and "chat" routers
        stages: Bootstrap stages; must end with the two terminal stages

    Returns:
        FastAPI: The assembled (not yet listening) application
    """
    check_stage_order(stages)

    if settings is None:
        settings = get_settings()
    database = Database(settings)
    rate_limiter = RateLimiter.from_settings(settings)

    route_groups = {"test": test.router, "auth": auth.router, "chat": chat.router}
    route_groups.update(routers or {})

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description="Support ChatBot API: health, test, auth and chat route groups plus Socket.IO.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.connect_db = connect_db or database.connect_db
    app.state.rate_limiter = rate_limiter
    app.state.socket_registry = ConnectionRegistry()

    ctx = BootstrapContext(settings=settings, routers=route_groups, rate_limiter=rate_limiter)
    for stage in stages:
        stage(app, ctx)

    return app


def create_asgi_app(settings: Settings | None = None, **kwargs) -> ASGIApp:
    """
    Build the FastAPI app and put Socket.IO in front of it.

    Both share one listener: /socket.io goes to Socket.IO, everything else
    (lifespan included) to FastAPI.
    """
    if settings is None:
        settings = get_settings()
    fastapi_app = create_app(settings, **kwargs)
    sio = init_socket(settings, fastapi_app.state.socket_registry)
    fastapi_app.state.sio = sio
    return wrap_asgi(sio, fastapi_app)


settings = get_settings()
configure_logging(settings)

app = create_asgi_app(settings)
