# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up environment variables before any imports
# - Builds apps with a fake database connection so no PostgreSQL is needed
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# support_chatbot.main builds the module-level app on import

os.environ.setdefault("NODE_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("CHAT_SHARED_SECRET", "test-shared-secret")

import pytest
from fastapi.testclient import TestClient

from support_chatbot.config import load_settings
from support_chatbot.main import create_app

SHARED_SECRET = "test-shared-secret"


async def _connect_db_ok():
    return True


async def _connect_db_refused():
    raise ConnectionRefusedError("connection refused")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def make_settings():
    """Factory for Settings that ignores any local .env file."""
    def _make(**overrides):
        overrides.setdefault("CHAT_SHARED_SECRET", SHARED_SECRET)
        return load_settings(_env_file=None, **overrides)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def shared_secret():
    return SHARED_SECRET


@pytest.fixture
def connect_db_refused():
    """Start-up connection test that always fails."""
    return _connect_db_refused


@pytest.fixture
def make_client(make_settings):
    """
    Factory for a TestClient around create_app().

    The client is entered, so the lifespan runs; it is closed after the test.
    """
    clients = []

    def _make(settings=None, connect_db=_connect_db_ok, **kwargs):
        app = create_app(settings or make_settings(), connect_db=connect_db, **kwargs)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
