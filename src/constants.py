"""Constants for the application."""

import logging
import os
from typing import Set

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

IS_LOCAL = os.environ.get("IS_LOCAL", "true").lower() in ("true", "1", "t", "yes", "y")

# Define configuration keys and secrets
APP_CONFIG_KEYS: Set[str] = {
    "LOGGING_LEVEL",
    "ENVIRONMENT",
    "DATABASE_NAME",
    "OPENROUTER_API_URL",
    "OPENROUTER_REFERER",
    "DEFAULT_MODEL",
}

KEY_VAULT_SECRETS: Set[str] = {"mongodb-atlas-connection-string", "credential-encryption-key"}

if IS_LOCAL:
    config = None
else:
    from utils.azure_config import AzureConfigProvider

    # Initialize the Azure Configuration Provider
    config = AzureConfigProvider(
        app_config_keys=APP_CONFIG_KEYS,
        key_vault_secrets=KEY_VAULT_SECRETS,
    )


def _config(key: str, default=None):
    if config is None:
        return os.environ.get(key, default)
    return config.get_config(key, default)


def _secret(name: str, env_key: str, default=None):
    if config is None:
        return os.environ.get(env_key, default)
    return config.get_secret(name, os.environ.get(env_key, default))


# App settings
ENVIRONMENT = _config("ENVIRONMENT", "local")
LOGGING_LEVEL = getattr(logging, str(_config("LOGGING_LEVEL", "INFO")).upper(), logging.INFO)

# MongoDB settings
DATABASE_CONNECTION_STRING = _secret("mongodb-atlas-connection-string", "DATABASE_CONNECTION_STRING", "mongodb://localhost:27017")
DATABASE_NAME = _config("DATABASE_NAME", "kronos")

# Key material for stored OpenRouter API keys (hex encoded, 32 bytes)
CREDENTIAL_ENCRYPTION_KEY = _secret("credential-encryption-key", "CREDENTIAL_ENCRYPTION_KEY", "")

# OpenRouter settings
OPENROUTER_API_URL = _config("OPENROUTER_API_URL", "https://openrouter.ai/api/v1")
OPENROUTER_REFERER = _config("OPENROUTER_REFERER", "http://localhost:3000")
DEFAULT_MODEL = _config("DEFAULT_MODEL", "openai/gpt-4o-mini")
