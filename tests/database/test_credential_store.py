"""Tests for API key encryption and the credential manager."""

import base64

import pytest

from database.credential_store.credential_manager import CredentialManager
from database.credential_store.encryption import SecretCipher
from database.credential_store.exceptions import (
    ConfigurationError,
    DecryptionError,
    InvalidCredentialError,
)


class TestSecretCipher:
    def test_roundtrip(self, cipher: SecretCipher):
        blob = cipher.encrypt("sk-or-v1-abc123")
        assert blob != "sk-or-v1-abc123"
        assert "sk-or-v1-abc123" not in blob
        assert cipher.decrypt(blob) == "sk-or-v1-abc123"

    def test_same_plaintext_encrypts_differently(self, cipher: SecretCipher):
        assert cipher.encrypt("same") != cipher.encrypt("same")

    def test_tampered_blob_fails(self, cipher: SecretCipher):
        raw = bytearray(base64.b64decode(cipher.encrypt("sk-or-v1-abc123")))
        raw[-1] ^= 0x01
        tampered = base64.b64encode(bytes(raw)).decode("ascii")

        with pytest.raises(DecryptionError):
            cipher.decrypt(tampered)

    def test_wrong_key_fails(self, cipher: SecretCipher):
        other = SecretCipher.from_hex(SecretCipher.generate_key())
        with pytest.raises(DecryptionError):
            other.decrypt(cipher.encrypt("sk-or-v1-abc123"))

    @pytest.mark.parametrize("blob", ["", "not base64 at all!", "c2hvcnQ="])
    def test_garbage_fails(self, cipher: SecretCipher, blob: str):
        with pytest.raises(DecryptionError):
            cipher.decrypt(blob)

    def test_key_validation(self):
        with pytest.raises(ValueError):
            SecretCipher.from_hex("")
        with pytest.raises(ValueError):
            SecretCipher.from_hex("zz" * 32)
        with pytest.raises(ValueError):
            SecretCipher.from_hex("ab" * 16)
        assert len(SecretCipher.generate_key()) == 64


@pytest.mark.asyncio
async def test_no_key_stored(credential_db: CredentialManager, user_id: str):
    assert not await credential_db.has_secret(user_id)
    assert await credential_db.get_encrypted_secret(user_id) is None
    with pytest.raises(ConfigurationError):
        await credential_db.get_secret(user_id)


@pytest.mark.asyncio
async def test_set_get_and_overwrite(credential_db: CredentialManager, user_id: str, other_user_id: str):
    await credential_db.set_secret(user_id, "  sk-or-first  ")
    assert await credential_db.has_secret(user_id)
    assert await credential_db.get_secret(user_id) == "sk-or-first"

    await credential_db.set_secret(user_id, "sk-or-second")
    assert await credential_db.get_secret(user_id) == "sk-or-second"

    assert not await credential_db.has_secret(other_user_id)


@pytest.mark.asyncio
async def test_key_is_stored_encrypted(credential_db: CredentialManager, user_id: str):
    await credential_db.set_secret(user_id, "sk-or-plain")

    doc = await credential_db._users.find_one({"_id": user_id})
    assert doc["api_key_encrypted"] != "sk-or-plain"
    assert "sk-or-plain" not in str(doc)


@pytest.mark.asyncio
@pytest.mark.parametrize("secret", ["", "   ", None])
async def test_blank_key_rejected(credential_db: CredentialManager, user_id: str, secret):
    with pytest.raises(InvalidCredentialError):
        await credential_db.set_secret(user_id, secret)
    assert not await credential_db.has_secret(user_id)


@pytest.mark.asyncio
async def test_delete_secret(credential_db: CredentialManager, user_id: str):
    await credential_db.set_secret(user_id, "sk-or-gone")
    await credential_db.delete_secret(user_id)

    assert not await credential_db.has_secret(user_id)
    with pytest.raises(ConfigurationError):
        await credential_db.get_secret(user_id)


@pytest.mark.asyncio
async def test_undecryptable_blob(credential_db: CredentialManager, user_id: str):
    await credential_db._users.insert_one({"_id": user_id, "api_key_encrypted": "bm90IGEgcmVhbCBibG9i"})

    assert await credential_db.has_secret(user_id)
    with pytest.raises(DecryptionError):
        await credential_db.get_secret(user_id)
