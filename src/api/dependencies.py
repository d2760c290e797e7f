"""API dependencies."""

from typing import Optional
from uuid import UUID

import httpx
from fastapi import Depends, Header, HTTPException, Request, status

from database.conversation_store.conversation_manager import ConversationManager
from database.credential_store.credential_manager import CredentialManager
from database.manager import DatabaseManager
from relay.catalog import ModelCatalog
from relay.chat_relay import ChatRelay
from settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database_manager(request: Request) -> DatabaseManager:
    return request.app.state.database_manager


def get_upstream_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.upstream_client


async def get_conversation_db(db_manager: DatabaseManager = Depends(get_database_manager)) -> ConversationManager:
    """Dependency for getting conversation manager."""
    return await db_manager.setup_conversation_manager()


async def get_credential_db(db_manager: DatabaseManager = Depends(get_database_manager)) -> CredentialManager:
    """Dependency for getting credential manager."""
    return await db_manager.setup_credential_manager()


async def get_chat_relay(
    http_client: httpx.AsyncClient = Depends(get_upstream_client),
    conversation_db: ConversationManager = Depends(get_conversation_db),
    credential_db: CredentialManager = Depends(get_credential_db),
    settings: Settings = Depends(get_settings),
) -> ChatRelay:
    return ChatRelay(
        http_client,
        conversation_db,
        credential_db,
        max_tokens=settings.chat_max_tokens,
        temperature=settings.chat_temperature,
        referer=settings.openrouter_referer,
        app_title=settings.openrouter_app_title,
    )


def get_model_catalog(
    http_client: httpx.AsyncClient = Depends(get_upstream_client),
    settings: Settings = Depends(get_settings),
) -> ModelCatalog:
    return ModelCatalog(http_client, timeout=settings.catalog_timeout)


async def get_current_user(x_user_id: Optional[str] = Header(None)) -> str:
    """Resolve the authenticated user.

    The session gateway in front of the API authenticates the browser session and
    forwards the user id in ``X-User-Id``. Swap this dependency to plug in another
    identity provider.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return x_user_id.strip()


def parse_conversation_id(conversation_id: str) -> UUID:
    """Path ids that are not UUIDs cannot exist, so they are reported as not found."""
    try:
        return UUID(conversation_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
