"""Manager for the per-user encrypted OpenRouter API key."""

from typing import Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)

from database.credential_store.encryption import SecretCipher
from database.credential_store.exceptions import (
    ConfigurationError,
    CredentialStoreError,
    InvalidCredentialError,
)
from models.base import utc_now
from utils.logging import logger


class CredentialManager:
    """Stores one encrypted API key per user. Updates overwrite, there is no versioning."""

    DATABASE: str = "kronos"
    COLLECTION_USERS: str = "users"
    FIELD_SECRET: str = "api_key_encrypted"

    def __init__(self, mongodb_client: AsyncIOMotorClient, cipher: SecretCipher, database_name: Optional[str] = None) -> None:
        self.client = mongodb_client
        self.cipher = cipher
        self._db: AsyncIOMotorDatabase = self.client.get_database(database_name or self.DATABASE)
        self._users: AsyncIOMotorCollection = self._db.get_collection(self.COLLECTION_USERS)

    async def get_encrypted_secret(self, user_id: str) -> Optional[str]:
        logger.debug(f"Getting stored API key for user {user_id}")
        try:
            doc = await self._users.find_one({"_id": user_id}, projection={self.FIELD_SECRET: 1})
        except Exception as e:
            raise CredentialStoreError(f"Failed to read stored API key: {str(e)}")
        if not doc:
            return None
        return doc.get(self.FIELD_SECRET) or None

    async def has_secret(self, user_id: str) -> bool:
        return await self.get_encrypted_secret(user_id) is not None

    async def get_secret(self, user_id: str) -> str:
        """Return the user's decrypted API key.

        Raises:
            ConfigurationError: no key stored for the user
            DecryptionError: the stored blob cannot be decrypted
        """
        blob = await self.get_encrypted_secret(user_id)
        if blob is None:
            raise ConfigurationError("OpenRouter API key not configured")
        return self.cipher.decrypt(blob)

    async def set_secret(self, user_id: str, secret: str) -> None:
        if not isinstance(secret, str) or not secret.strip():
            raise InvalidCredentialError("Valid API key is required")

        logger.info(f"Storing API key for user {user_id}")
        blob = self.cipher.encrypt(secret.strip())
        try:
            await self._users.update_one(
                {"_id": user_id},
                {"$set": {self.FIELD_SECRET: blob, "updated_at": utc_now()}},
                upsert=True,
            )
        except Exception as e:
            raise CredentialStoreError(f"Failed to store API key: {str(e)}")

    async def delete_secret(self, user_id: str) -> None:
        logger.info(f"Removing API key for user {user_id}")
        try:
            await self._users.update_one(
                {"_id": user_id},
                {"$unset": {self.FIELD_SECRET: ""}, "$set": {"updated_at": utc_now()}},
            )
        except Exception as e:
            raise CredentialStoreError(f"Failed to remove API key: {str(e)}")
