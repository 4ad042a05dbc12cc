"""Credential port — abstract interface for persisting the session secrets.

The session store depends on this protocol, never on a specific platform
keychain. Values are opaque strings scoped to the store's namespace.
"""

from __future__ import annotations

from typing import Protocol


class CredentialError(Exception):
    """Raised when the underlying credential storage cannot be read or written."""


class CredentialStore(Protocol):
    """Namespaced key/value storage for the auth token and cached profile."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...
