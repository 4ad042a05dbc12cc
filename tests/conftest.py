"""Shared test fixtures and configuration.

Sets up fake environment variables before any wedding_manager import, and
provides common fixtures: an in-memory credential store, a mocked RemoteAPI
and builders for httpx-backed clients.
"""

import os

# Patch env vars BEFORE any wedding_manager imports
os.environ.setdefault("API_BASE_URL", "http://api.test")
os.environ.setdefault("API_ENDPOINT_SUFFIX", ".php")
os.environ.setdefault("CSRF_ENDPOINT", "")
os.environ.setdefault("CREDENTIAL_NAMESPACE", "WeddingManagerTests")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest


@pytest.fixture
def credentials():
    """Return an empty in-memory CredentialStore."""
    from wedding_manager.adapters.credential_stores import MemoryCredentialStore
    return MemoryCredentialStore()


@pytest.fixture
def api():
    """Return a RemoteAPI double whose operations are AsyncMocks."""
    mock = MagicMock()
    for name in (
        "login", "register", "refresh_token",
        "load_guests", "add_guest", "update_guest",
        "load_budget", "save_budget",
        "load_gifts", "save_gifts",
        "load_tasks", "save_tasks",
    ):
        setattr(mock, name, AsyncMock())
    return mock


@pytest.fixture
def make_http_api():
    """Factory for HttpRemoteAPI instances backed by an httpx.MockTransport."""
    from wedding_manager.adapters.http_api import HttpRemoteAPI

    def _make(handler, token=None, **kwargs):
        return HttpRemoteAPI(
            "http://api.test",
            endpoint_suffix=kwargs.pop("endpoint_suffix", ".php"),
            csrf_endpoint=kwargs.pop("csrf_endpoint", ""),
            token_provider=lambda: token,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return _make


def at(day: int, hour: int = 12) -> datetime:
    """A UTC timestamp in June 2026, for readable fixtures."""
    return datetime(2026, 6, day, hour, 0, tzinfo=timezone.utc)


USER_JSON = {
    "id": 1,
    "email": "a@b.com",
    "name": "Alice",
    "created_at": "2026-01-15T10:00:00Z",
}
