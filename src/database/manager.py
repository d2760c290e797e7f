"""Database setup and lifecycle for the store handles."""

import asyncio
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from database.conversation_store.conversation_manager import ConversationManager
from database.credential_store.credential_manager import CredentialManager
from database.credential_store.encryption import SecretCipher
from utils.logging import logger


class DatabaseManager:
    """Owns the MongoDB client and the managers built on it.

    Created once at application startup and closed at shutdown; handlers receive it
    through dependencies rather than reaching for a global.
    """

    def __init__(
        self,
        client: AsyncIOMotorClient,
        cipher: SecretCipher,
        database_name: Optional[str] = None,
        default_title: Optional[str] = None,
    ):
        self._client = client
        self._cipher = cipher
        self._database_name = database_name
        self._default_title = default_title
        self._conversation_manager: Optional[ConversationManager] = None
        self._credential_manager: Optional[CredentialManager] = None

    @classmethod
    def from_settings(cls, settings) -> "DatabaseManager":
        logger.info("Initializing DatabaseManager")
        client = AsyncIOMotorClient(settings.database_connection_string, tz_aware=True)
        client.get_io_loop = asyncio.get_running_loop
        cipher = SecretCipher.from_hex(settings.credential_encryption_key)
        return cls(client, cipher, settings.database_name, settings.default_conversation_title)

    async def setup_conversation_manager(self) -> ConversationManager:
        """Initialize and return the conversation manager."""
        if self._conversation_manager is None:
            logger.info("Setting up conversation manager")
            self._conversation_manager = await ConversationManager.setup(self._client, self._database_name, self._default_title)
        return self._conversation_manager

    async def setup_credential_manager(self) -> CredentialManager:
        """Initialize and return the credential manager."""
        if self._credential_manager is None:
            logger.info("Setting up credential manager")
            self._credential_manager = CredentialManager(self._client, self._cipher, self._database_name)
        return self._credential_manager

    async def setup(self) -> "DatabaseManager":
        await self.setup_conversation_manager()
        await self.setup_credential_manager()
        return self

    def close(self):
        """Close database connection."""
        logger.info("Closing database connection")
        if self._client:
            self._client.close()
