"""Persisted authentication state for the map annotation service.

The store only answers queries against credential material handed to it
by the external authorization flow; it never talks to the network.
A credential is usable when an access token is present. Without a refresh
token it stays usable but cannot be renewed.
"""

import logging

from voicenotes.core.config import get_settings
from voicenotes.core.models import Credential
from voicenotes.services.storage.database import get_session
from voicenotes.services.storage.repository import CredentialRepository

logger = logging.getLogger(__name__)

KEY_ACCESS_TOKEN = "access_token"
KEY_REFRESH_TOKEN = "refresh_token"
KEY_DISPLAY_NAME = "display_name"


class CredentialStore:
    """Key/value credential record for one identity provider.

    Every call opens its own short transaction. Storage failures propagate
    as :class:`~voicenotes.core.exceptions.StorageError`; there is no retry
    at this layer.

    Args:
        provider: Scope key for the stored rows (defaults to settings).
    """

    def __init__(self, provider: str | None = None) -> None:
        self.provider = provider or get_settings().credential_provider

    async def is_authenticated(self) -> bool:
        """Return True iff an access token is stored."""
        return bool(await self.get_access_token())

    async def get_access_token(self) -> str | None:
        """Return the stored access token, or ``None``."""
        async with get_session() as session:
            repo = CredentialRepository(session, self.provider)
            return await repo.get(KEY_ACCESS_TOKEN)

    async def get_credential(self) -> Credential | None:
        """Return the full credential record, or ``None`` when unusable."""
        async with get_session() as session:
            repo = CredentialRepository(session, self.provider)
            values = await repo.get_all()
        if not values.get(KEY_ACCESS_TOKEN):
            return None
        return Credential(
            access_token=values[KEY_ACCESS_TOKEN],
            refresh_token=values.get(KEY_REFRESH_TOKEN),
            display_name=values.get(KEY_DISPLAY_NAME),
        )

    async def save_credential(
        self,
        access_token: str,
        refresh_token: str | None = None,
        display_name: str | None = None,
    ) -> None:
        """Store a credential, replacing any previous one entirely."""
        async with get_session() as session:
            repo = CredentialRepository(session, self.provider)
            await repo.replace(
                {
                    KEY_ACCESS_TOKEN: access_token,
                    KEY_REFRESH_TOKEN: refresh_token,
                    KEY_DISPLAY_NAME: display_name,
                }
            )
        logger.info(
            "Saved %s credential (display_name=%s, refreshable=%s)",
            self.provider,
            display_name,
            refresh_token is not None,
        )

    async def clear(self) -> None:
        """Remove all stored credential fields."""
        async with get_session() as session:
            repo = CredentialRepository(session, self.provider)
            await repo.clear()
        logger.info("Cleared %s credential", self.provider)
