"""
Wedding Manager — Session Store.

Holds the authenticated identity (token + profile) and drives the
SIGNED_OUT → AUTHENTICATING → SIGNED_IN state machine. The token and the
JSON-serialised profile are persisted through the injected CredentialStore;
the API client reads the token back through ``current_token``.

Caller contract: login/register/refresh_session must not run concurrently
on the same store. Nothing here locks against it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable

from pydantic import ValidationError

from wedding_manager.core.observable import Observable
from wedding_manager.data.models import AuthResponse, Session, UserProfile
from wedding_manager.ports.credential_port import CredentialError
from wedding_manager.ports.remote_api_port import ApiError

if TYPE_CHECKING:
    from wedding_manager.ports.credential_port import CredentialStore
    from wedding_manager.ports.remote_api_port import RemoteAPI

logger = logging.getLogger(__name__)

TOKEN_KEY = "AuthToken"
USER_KEY = "CurrentUser"


class SessionState(Enum):
    SIGNED_OUT = "signed_out"
    AUTHENTICATING = "authenticating"
    SIGNED_IN = "signed_in"


class SessionStore(Observable):
    """Owns the Session; the only component that writes credentials."""

    def __init__(self, api: RemoteAPI, credentials: CredentialStore) -> None:
        super().__init__()
        self._api = api
        self._credentials = credentials

        self.session: Session | None = None
        self.error_message: str | None = None
        self.is_loading = False

        if self.current_token():
            # Validated by start() → refresh_session()
            self.state = SessionState.AUTHENTICATING
            self.current_user: UserProfile | None = self._stored_user()
        else:
            self.state = SessionState.SIGNED_OUT
            self.current_user = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.SIGNED_IN

    def current_token(self) -> str | None:
        """Token for outgoing requests, read fresh from the credential store."""
        return self._credentials.get(TOKEN_KEY) or None

    # ------------------------------------------------------------------
    # Credential persistence
    # ------------------------------------------------------------------

    def _stored_user(self) -> UserProfile | None:
        raw = self._credentials.get(USER_KEY)
        if not raw:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cached profile: %s", exc)
            return None

    def _store(self, session: Session) -> None:
        self._credentials.set(TOKEN_KEY, session.token)
        self._credentials.set(USER_KEY, session.user.model_dump_json(by_alias=True))

    def _clear_stored(self) -> None:
        self._credentials.delete(TOKEN_KEY)
        self._credentials.delete(USER_KEY)

    def _install(self, session: Session) -> None:
        self._store(session)
        self._set(
            session=session,
            current_user=session.user,
            state=SessionState.SIGNED_IN,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Validate a token restored from storage, if any."""
        if self.state is SessionState.AUTHENTICATING:
            await self.refresh_session()

    async def _authenticate(
        self, action: str, call: Callable[[], Awaitable[AuthResponse]]
    ) -> bool:
        self._set(state=SessionState.AUTHENTICATING, is_loading=True, error_message=None)
        try:
            response = await call()
            if response.success and response.user is not None and response.token:
                self._install(Session(token=response.token, user=response.user))
                logger.info("%s succeeded for user #%d", action, response.user.id)
                return True
            logger.info("%s rejected: %s", action, response.message)
            error = response.message or f"{action} failed"
        except (ApiError, CredentialError) as exc:
            logger.warning("%s failed: %s", action, exc)
            error = str(exc)
        finally:
            self._set(is_loading=False)

        self._set(
            state=SessionState.SIGNED_OUT,
            session=None,
            current_user=None,
            error_message=error,
        )
        return False

    async def login(self, email: str, password: str) -> bool:
        return await self._authenticate(
            "Login", lambda: self._api.login(email, password)
        )

    async def register(self, email: str, password: str, name: str) -> bool:
        return await self._authenticate(
            "Registration", lambda: self._api.register(email, password, name)
        )

    async def refresh_session(self) -> bool:
        """Re-validate the stored token. Any failure forces a logout."""
        try:
            return await self._refresh()
        except (ApiError, CredentialError) as exc:
            self._force_logout(str(exc))
            return False

    async def _refresh(self) -> bool:
        old_token = self.current_token()
        if not old_token:
            self._set(state=SessionState.SIGNED_OUT, session=None, current_user=None)
            return False

        response = await self._api.refresh_token()
        if not response.success or response.user is None:
            self._force_logout(response.message or "Session expired")
            return False

        self._install(Session(token=response.token or old_token, user=response.user))
        logger.info("Session refreshed for user #%d", response.user.id)
        return True

    def _force_logout(self, reason: str) -> None:
        logger.warning("Session refresh failed, signing out: %s", reason)
        try:
            self.logout()
        except CredentialError as exc:
            logger.error("Could not clear stored credentials: %s", exc)
        self._set(error_message=reason)

    def logout(self) -> None:
        """Sign out. In-memory state is cleared even if storage fails."""
        try:
            self._clear_stored()
        finally:
            self._set(
                session=None,
                current_user=None,
                state=SessionState.SIGNED_OUT,
                error_message=None,
            )
        logger.info("Signed out")

    def clear_error(self) -> None:
        self._set(error_message=None)
