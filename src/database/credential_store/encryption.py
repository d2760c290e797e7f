"""Symmetric encryption of per-user API keys."""

import binascii

import nacl.exceptions
import nacl.secret
import nacl.utils
from nacl.encoding import Base64Encoder, HexEncoder

from database.credential_store.exceptions import DecryptionError


class SecretCipher:
    """Encrypts secrets with XSalsa20-Poly1305.

    Blobs are base64 text holding the 24-byte nonce followed by the authenticated
    ciphertext, so any tampering is detected on decrypt.
    """

    KEY_SIZE = nacl.secret.SecretBox.KEY_SIZE

    def __init__(self, key: bytes):
        if len(key) != self.KEY_SIZE:
            raise ValueError(f"Encryption key must be {self.KEY_SIZE} bytes, got {len(key)}")
        self._box = nacl.secret.SecretBox(key)

    @classmethod
    def from_hex(cls, hex_key: str) -> "SecretCipher":
        if not hex_key:
            raise ValueError("Credential encryption key is not configured")
        try:
            key = HexEncoder.decode(hex_key.strip().encode("ascii"))
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Credential encryption key is not valid hex: {str(e)}")
        return cls(key)

    @staticmethod
    def generate_key() -> str:
        """Return a fresh random key, hex encoded, suitable for CREDENTIAL_ENCRYPTION_KEY."""
        return nacl.utils.random(nacl.secret.SecretBox.KEY_SIZE).hex()

    def encrypt(self, plaintext: str) -> str:
        return self._box.encrypt(plaintext.encode("utf-8"), encoder=Base64Encoder).decode("ascii")

    def decrypt(self, blob: str) -> str:
        try:
            plaintext = self._box.decrypt(blob.encode("ascii"), encoder=Base64Encoder)
            return plaintext.decode("utf-8")
        except (nacl.exceptions.CryptoError, binascii.Error, UnicodeError, ValueError) as e:
            raise DecryptionError(f"Failed to decrypt secret: {type(e).__name__}")
