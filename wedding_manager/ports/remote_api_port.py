"""Remote API port — abstract interface for the wedding planning server.

The stores depend on this protocol, never on the HTTP client directly.
Every failure surfaces as one of the ApiError subclasses below.
"""

from __future__ import annotations

from typing import Protocol

from wedding_manager.data.models import (
    AuthResponse,
    BudgetData,
    GiftData,
    Guest,
    TaskData,
)


class ApiError(Exception):
    """Base class for every remote API failure."""


class InvalidEndpointError(ApiError):
    """The endpoint could not be turned into a valid URL (programmer error)."""

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"Invalid endpoint URL: {endpoint!r}")


class MalformedResponseError(ApiError):
    """The server answered with something that is not a usable HTTP response."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        message = "Invalid response from server"
        super().__init__(f"{message}: {detail}" if detail else message)


class TransportError(ApiError):
    """Connectivity failure before a response was received."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Network error: {message}")


class ServerStatusError(ApiError):
    """HTTP status outside 200-299."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Server error: {status_code}")


class DecodeFailureError(ApiError):
    """The JSON body did not match the expected shape."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Decoding error: {message}")


class RemoteAPI(Protocol):
    """Typed operations consumed by the session and data stores."""

    async def login(self, email: str, password: str) -> AuthResponse: ...

    async def register(self, email: str, password: str, name: str) -> AuthResponse: ...

    async def refresh_token(self) -> AuthResponse: ...

    async def load_guests(self) -> list[Guest]: ...

    async def add_guest(self, guest: Guest) -> Guest: ...

    async def update_guest(self, guest: Guest) -> Guest: ...

    async def load_budget(self) -> BudgetData: ...

    async def save_budget(self, budget: BudgetData) -> bool: ...

    async def load_gifts(self) -> GiftData: ...

    async def save_gifts(self, gifts: GiftData) -> bool: ...

    async def load_tasks(self) -> TaskData: ...

    async def save_tasks(self, tasks: TaskData) -> bool: ...
