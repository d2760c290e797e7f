"""Azure credential selection for configuration and secret loading."""

import os

from azure import identity
from azure.identity import aio as identity_async

from utils.logging import logger


def get_azure_credential(do_async: bool = False):
    """Return a service principal credential when its variables are set, else a managed identity."""
    module = identity_async if do_async else identity

    tenant_id = os.environ.get("AZURE_TENANT_ID")
    client_id = os.environ.get("AZURE_CLIENT_ID")
    client_secret = os.environ.get("AZURE_CLIENT_SECRET")

    if tenant_id and client_id and client_secret:
        logger.info("Using Service Principal authentication")
        return module.ClientSecretCredential(tenant_id=tenant_id, client_id=client_id, client_secret=client_secret)

    if client_id:
        logger.info(f"Using User Managed Identity authentication with client ID: {client_id}")
        return module.ManagedIdentityCredential(client_id=client_id)

    logger.info("Using User Managed Identity authentication without client ID")
    return module.ManagedIdentityCredential()
