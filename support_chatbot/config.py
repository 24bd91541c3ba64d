# =============================================================================
# support_chatbot/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single, frozen Settings class with all configuration values.
#
# Usage:
#   from support_chatbot.config import get_settings
#   settings = get_settings()
#   print(settings.PORT, settings.db.host)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# Empty variables fall back to the default. Malformed values (e.g. a
# non-numeric SOCKET_PING_TIMEOUT) stop the process at load time with a
# ConfigurationError instead of leaking into the socket or database layers.
# =============================================================================

from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from support_chatbot.exceptions import ConfigurationError


# =============================================================================
# Grouped Views
# =============================================================================

class DatabaseConfig(BaseModel):
    """Connection parameters for PostgreSQL. Not validated beyond type."""
    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    database: str
    user: str
    password: str


class CorsConfig(BaseModel):
    """Allowed origin (single string, not split) and the fixed credentials flag."""
    model_config = ConfigDict(frozen=True)

    origin: str
    credentials: bool = True


class SocketIOConfig(BaseModel):
    """WebSocket keepalive tuning, in milliseconds."""
    model_config = ConfigDict(frozen=True)

    ping_timeout: int
    ping_interval: int


class AppInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    The instance is frozen: no field changes after construction.
    """

    # -------------------------------------------------------------------------
    # Server
    # -------------------------------------------------------------------------

    PORT: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="HTTP listen port"
    )

    HOST: str = Field(
        default="0.0.0.0",
        description="Interface to bind the listener to"
    )

    NODE_ENV: str = Field(
        default="development",
        description="Deployment mode label (development, staging, production)"
    )

    BODY_LIMIT_BYTES: int = Field(
        default=100 * 1024,
        ge=1,
        description="Maximum accepted JSON / urlencoded request body size"
    )

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------
    # DATABASE_URL wins over the individual DB_* parts when set

    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Full PostgreSQL connection string (optional)"
    )

    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=5432)
    DB_NAME: str = Field(default="support_chatbot")
    DB_USER: str = Field(default="postgres")
    DB_PASSWORD: str = Field(default="")

    DB_SSL: bool = Field(
        default=False,
        description="Require SSL when connecting with the DB_* parts"
    )

    DB_CONNECT_TIMEOUT_MS: int = Field(
        default=10000,
        ge=1,
        description="Upper bound for the start-up database connection attempt"
    )

    # -------------------------------------------------------------------------
    # CORS / Socket.IO
    # -------------------------------------------------------------------------

    CORS_ORIGIN: str = Field(
        default="*",
        description="Allowed CORS origin for HTTP and Socket.IO"
    )

    SOCKET_PING_TIMEOUT: int = Field(
        default=60000,
        ge=1,
        description="Socket.IO ping timeout in ms"
    )

    SOCKET_PING_INTERVAL: int = Field(
        default=25000,
        ge=1,
        description="Socket.IO ping interval in ms"
    )

    # -------------------------------------------------------------------------
    # Application Metadata
    # -------------------------------------------------------------------------

    APP_NAME: str = Field(default="Support ChatBot")
    APP_VERSION: str = Field(default="1.0.0")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    LOG_LEVEL: Optional[str] = Field(
        default=None,
        description="Root log level; DEBUG in development, INFO otherwise"
    )

    ENABLE_LOGGING: bool = Field(
        default=True,
        description="Set to false to silence application logging"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    TEST_MODE: bool = Field(
        default=False,
        description="Disables rate limiting for automated test runs"
    )

    TRUST_PROXY: bool = Field(
        default=False,
        description="Key rate limits on the first X-Forwarded-For hop (only behind a trusted proxy)"
    )

    RATE_LIMIT_WINDOW_MS: int = Field(
        default=60000,
        ge=1,
        description="Rate limit window for /api/chat in ms"
    )

    RATE_LIMIT_MAX_REQUESTS: int = Field(
        default=10,
        ge=1,
        description="Requests allowed per client per window"
    )

    CHAT_SHARED_SECRET: str = Field(
        default="default-secret-change-in-production",
        description="Secret expected in X-Shared-Secret for chat endpoints"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Empty values behave like unset ones
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def db(self) -> DatabaseConfig:
        return DatabaseConfig(
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            user=self.DB_USER,
            password=self.DB_PASSWORD,
        )

    @property
    def cors(self) -> CorsConfig:
        return CorsConfig(origin=self.CORS_ORIGIN)

    @property
    def socketio(self) -> SocketIOConfig:
        return SocketIOConfig(
            ping_timeout=self.SOCKET_PING_TIMEOUT,
            ping_interval=self.SOCKET_PING_INTERVAL,
        )

    @property
    def app(self) -> AppInfo:
        return AppInfo(name=self.APP_NAME, version=self.APP_VERSION)

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy URL for the asyncpg driver.

        Uses DATABASE_URL when provided (rewriting the scheme for asyncpg),
        otherwise assembles one from the DB_* parts.
        """
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            for prefix in ("postgres://", "postgresql://"):
                if url.startswith(prefix):
                    return "postgresql+asyncpg://" + url[len(prefix):]
            return url

        credentials = quote_plus(self.DB_USER)
        if self.DB_PASSWORD:
            credentials += ":" + quote_plus(self.DB_PASSWORD)
        return (
            f"postgresql+asyncpg://{credentials}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def db_ssl_required(self) -> bool:
        """Supabase and production connection strings always use SSL."""
        if self.DATABASE_URL:
            return "supabase.co" in self.DATABASE_URL or self.is_production
        return self.DB_SSL

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "DEBUG" if self.is_development else "INFO"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.NODE_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.NODE_ENV == "production"


def load_settings(**overrides) -> Settings:
    """
    Build a Settings instance, converting validation failures into
    ConfigurationError.

    Keyword overrides are passed straight to Settings (tests use
    ``_env_file=None`` to ignore a developer's local .env).
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise ConfigurationError(
            f"Invalid configuration for {', '.join(fields) or 'settings'}: {e}",
            fields=fields,
        ) from e


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once per
    process. Components receive this instance explicitly instead of
    reading the environment themselves.

    Returns:
        Settings: The application settings instance

    Raises:
        ConfigurationError: If any variable fails validation
    """
    return load_settings()
