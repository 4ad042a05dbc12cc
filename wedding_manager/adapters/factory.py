"""App factory — wires the API client, credential store and both stores.

Construct once at process start and hand the resulting AppContext to
whatever needs it; nothing in the core reaches for a global instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from wedding_manager.adapters.credential_stores import FileCredentialStore
from wedding_manager.adapters.http_api import HttpRemoteAPI
from wedding_manager.core.data_store import DataStore
from wedding_manager.core.session_store import SessionStore
from wedding_manager.ports.credential_port import CredentialStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    api: HttpRemoteAPI
    session: SessionStore
    data: DataStore

    async def aclose(self) -> None:
        await self.api.aclose()


def create_app(
    credentials: CredentialStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppContext:
    """Build the object graph.

    Args:
        credentials: Storage for the token/profile. Defaults to the JSON file
            at CREDENTIAL_STORE_PATH.
        transport: Optional httpx transport (tests pass a MockTransport).
    """
    from wedding_manager.config import settings

    if credentials is None:
        credentials = FileCredentialStore()

    api = HttpRemoteAPI(transport=transport)
    session = SessionStore(api, credentials)
    # The client asks the session for the token on each request
    api.set_token_provider(session.current_token)
    data = DataStore(api)

    logger.info("App wired against %s", settings.API_BASE_URL)
    return AppContext(api=api, session=session, data=data)
