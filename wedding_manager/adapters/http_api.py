"""HTTP adapter — implements RemoteAPI against the wedding planning server.

All transport details live here: URL construction, auth/CSRF headers,
JSON encoding and decoding, and the mapping of httpx failures onto the
ApiError taxonomy. No retries are attempted; callers decide what to do
with a failure.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import BaseModel, Field, ValidationError

from wedding_manager.data.models import (
    AuthResponse,
    BudgetData,
    GiftData,
    Guest,
    GuestsResponse,
    LoginRequest,
    RegisterRequest,
    SaveResponse,
    TaskData,
    WireModel,
)
from wedding_manager.ports.remote_api_port import (
    DecodeFailureError,
    InvalidEndpointError,
    MalformedResponseError,
    ServerStatusError,
    TransportError,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

TokenProvider = Callable[[], Optional[str]]

_MUTATING_METHODS = {"POST", "PUT", "DELETE"}
_ALLOWED_METHODS = {"GET"} | _MUTATING_METHODS


class _CsrfResponse(WireModel):
    csrf_token: str | None = Field(default=None, alias="csrf_token")
    token: str | None = None


class HttpRemoteAPI:
    """httpx implementation of RemoteAPI.

    The bearer token is read from ``token_provider`` on every request and is
    never stored by this class.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        endpoint_suffix: str | None = None,
        csrf_endpoint: str | None = None,
        timeout: float | None = None,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        from wedding_manager.config import settings

        self._base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._suffix = settings.API_ENDPOINT_SUFFIX if endpoint_suffix is None else endpoint_suffix
        self._csrf_endpoint = settings.CSRF_ENDPOINT if csrf_endpoint is None else csrf_endpoint
        self._token_provider = token_provider
        self._csrf_warned = False

        if timeout is None:
            timeout = settings.HTTP_TIMEOUT_SECONDS
        client_kwargs: dict[str, Any] = {"transport": transport}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._client = httpx.AsyncClient(**client_kwargs)

    def set_token_provider(self, provider: TokenProvider | None) -> None:
        self._token_provider = provider

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpRemoteAPI:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Generic request
    # ------------------------------------------------------------------

    def _build_url(self, endpoint: str) -> httpx.URL:
        if not endpoint or endpoint != endpoint.strip() or "://" in endpoint:
            raise InvalidEndpointError(endpoint)
        raw = f"{self._base_url}/{endpoint.lstrip('/')}{self._suffix}"
        try:
            url = httpx.URL(raw)
        except httpx.InvalidURL as exc:
            raise InvalidEndpointError(endpoint) from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidEndpointError(endpoint)
        return url

    def _base_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(
        self,
        method: str,
        endpoint: str,
        headers: dict[str, str],
        content: str | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        url = self._build_url(endpoint)
        logger.debug("%s %s", method, endpoint)

        try:
            resp = await self._client.request(method, url, headers=headers, content=content)
        except httpx.InvalidURL as exc:
            raise InvalidEndpointError(endpoint) from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, endpoint, exc)
            raise TransportError(str(exc) or type(exc).__name__) from exc
        except httpx.HTTPError as exc:
            raise MalformedResponseError(str(exc)) from exc

        if not resp.is_success:
            logger.warning("%s %s returned HTTP %d", method, endpoint, resp.status_code)
            raise ServerStatusError(resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedResponseError("response body is not JSON") from exc

    async def _get_csrf_token(self) -> str | None:
        if not self._csrf_endpoint:
            if not self._csrf_warned:
                logger.warning("CSRF_ENDPOINT not configured; X-CSRF-TOKEN header will not be sent")
                self._csrf_warned = True
            return None

        data = await self._send("GET", self._csrf_endpoint, self._base_headers())
        try:
            parsed = _CsrfResponse.model_validate(data)
        except ValidationError as exc:
            raise DecodeFailureError(str(exc)) from exc
        csrf = parsed.csrf_token or parsed.token
        if not csrf:
            raise DecodeFailureError("CSRF response carried no token")
        return csrf

    async def request(
        self,
        endpoint: str,
        response_model: type[ModelT],
        method: str = "GET",
        body: WireModel | dict | None = None,
    ) -> ModelT:
        """Perform one API call and validate the response into *response_model*.

        Raises:
            ApiError: one of the taxonomy subclasses on any failure.
        """
        method = method.upper()
        if method not in _ALLOWED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method!r}")

        headers = self._base_headers()
        if method in _MUTATING_METHODS:
            csrf = await self._get_csrf_token()
            if csrf:
                headers["X-CSRF-TOKEN"] = csrf

        content = None
        if body is not None:
            payload = body.to_wire() if isinstance(body, WireModel) else body
            content = json.dumps(payload)

        data = await self._send(method, endpoint, headers, content)
        try:
            return response_model.model_validate(data)
        except ValidationError as exc:
            logger.warning("Unexpected payload from %s: %s", endpoint, exc)
            raise DecodeFailureError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResponse:
        return await self.request(
            "auth/login", AuthResponse, "POST",
            LoginRequest(email=email, password=password),
        )

    async def register(self, email: str, password: str, name: str) -> AuthResponse:
        return await self.request(
            "auth/register", AuthResponse, "POST",
            RegisterRequest(email=email, password=password, name=name),
        )

    async def refresh_token(self) -> AuthResponse:
        return await self.request("auth/refresh", AuthResponse, "POST")

    # ------------------------------------------------------------------
    # Guests
    # ------------------------------------------------------------------

    async def load_guests(self) -> list[Guest]:
        response = await self.request("load_rsvps", GuestsResponse)
        return list(response.guests)

    async def add_guest(self, guest: Guest) -> Guest:
        return await self.request("guest_add", Guest, "POST", guest)

    async def update_guest(self, guest: Guest) -> Guest:
        return await self.request("guest_update", Guest, "POST", guest)

    # ------------------------------------------------------------------
    # Budget, gifts, tasks: bulk load/save
    # ------------------------------------------------------------------

    async def load_budget(self) -> BudgetData:
        return await self.request("budget_load", BudgetData)

    async def save_budget(self, budget: BudgetData) -> bool:
        response = await self.request("budget_save", SaveResponse, "POST", budget)
        return response.success

    async def load_gifts(self) -> GiftData:
        return await self.request("gifts_load", GiftData)

    async def save_gifts(self, gifts: GiftData) -> bool:
        response = await self.request("gifts_save", SaveResponse, "POST", gifts)
        return response.success

    async def load_tasks(self) -> TaskData:
        return await self.request("tasks_load", TaskData)

    async def save_tasks(self, tasks: TaskData) -> bool:
        response = await self.request("tasks_save", SaveResponse, "POST", tasks)
        return response.success
