"""Azure Configuration Provider.

Resolves deployment configuration for Kronos: plain settings (database name,
OpenRouter endpoint, default model) come from Azure App Configuration, secrets
(MongoDB connection string, credential encryption key) from Azure Key Vault.
Every key falls back to an environment variable of the same name.
"""

import asyncio
import os
from typing import Any, Dict, Optional, Set

from azure.appconfiguration.aio import AzureAppConfigurationClient
from azure.core.exceptions import ResourceNotFoundError
from azure.keyvault.secrets.aio import SecretClient

from utils.azure_auth import get_azure_credential
from utils.logging import logger


class AzureConfigProvider:
    """Loads configuration values and secrets once, at construction time."""

    def __init__(
        self,
        app_config_keys: Set[str],
        key_vault_secrets: Set[str],
        app_config_uri: Optional[str] = None,
        key_vault_uri: Optional[str] = None,
    ):
        self.app_config_base_url = app_config_uri or os.environ["APP_CONFIG_URI"]
        self.key_vault_url = key_vault_uri or os.environ["KEY_VAULT_URI"]

        self.config_values: Dict[str, Any] = {}
        self.secrets: Dict[str, Any] = {}

        # Constants are resolved at import time, before any event loop is running
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(self._load_all(app_config_keys, key_vault_secrets))
        finally:
            loop.close()

    async def _load_all(self, app_config_keys: Set[str], key_vault_secrets: Set[str]) -> None:
        """Fetch every configuration key and secret concurrently."""
        credential = get_azure_credential(do_async=True)
        app_config_client = AzureAppConfigurationClient(base_url=self.app_config_base_url, credential=credential)
        key_vault_client = SecretClient(vault_url=self.key_vault_url, credential=credential)

        try:
            tasks = [self._load_config(app_config_client, key) for key in app_config_keys]
            tasks += [self._load_secret(key_vault_client, name) for name in key_vault_secrets]
            if tasks:
                await asyncio.gather(*tasks)
        finally:
            await app_config_client.close()
            await key_vault_client.close()
            await credential.close()

    async def _load_config(self, client: AzureAppConfigurationClient, key: str) -> None:
        try:
            result = await client.get_configuration_setting(key=key)
            self.config_values[key] = result.value
            logger.debug(f"Loaded configuration value: {key}")
        except ResourceNotFoundError:
            self._load_from_env(key, self.config_values, "configuration value")
        except Exception as e:
            logger.error(f"Error loading configuration value {key}: {str(e)}")
            self._load_from_env(key, self.config_values, "configuration value")

    async def _load_secret(self, client: SecretClient, name: str) -> None:
        try:
            result = await client.get_secret(name)
            self.secrets[name] = result.value
            logger.debug(f"Loaded secret: {name}")
        except ResourceNotFoundError:
            self._load_from_env(name, self.secrets, "secret")
        except Exception as e:
            logger.error(f"Error loading secret {name}: {str(e)}")
            self._load_from_env(name, self.secrets, "secret")

    def _load_from_env(self, key: str, store_dict: Dict[str, Any], source_name: str) -> None:
        """Load a value from environment variables as fallback."""
        env_value = os.environ.get(key)
        if env_value is not None:
            store_dict[key] = env_value
            logger.debug(f"Using environment variable for {source_name}: {key}")
        else:
            logger.warning(f"{source_name.capitalize()} not found: {key}")

    def get_config(self, key: str, default: Any = None) -> Any:
        return self.config_values.get(key, os.environ.get(key, default))

    def get_secret(self, name: str, default: Any = None) -> Any:
        return self.secrets.get(name, default)
