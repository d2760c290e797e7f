"""Exceptions for stored API key operations."""


class CredentialStoreError(Exception):
    """Base exception for credential store errors."""

    pass


class ConfigurationError(CredentialStoreError):
    """Raised when the user has no OpenRouter API key stored."""

    pass


class DecryptionError(CredentialStoreError):
    """Raised when a stored key cannot be decrypted (corrupted blob or rotated key material)."""

    pass


class InvalidCredentialError(CredentialStoreError):
    """Raised when a key to be stored is invalid."""

    pass
