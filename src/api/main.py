"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import chat, conversation, user_settings
from database.manager import DatabaseManager
from settings import Settings
from settings import settings as default_settings
from utils.logging import logger


def create_upstream_client(settings: Settings) -> httpx.AsyncClient:
    """HTTP client for OpenRouter. The read timeout bounds the gap between streamed chunks."""
    timeout = httpx.Timeout(settings.upstream_read_timeout, connect=settings.upstream_connect_timeout)
    return httpx.AsyncClient(base_url=settings.openrouter_api_url, timeout=timeout)


def create_app(
    settings: Optional[Settings] = None,
    database_manager: Optional[DatabaseManager] = None,
    upstream_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Create FastAPI application.

    Store and upstream handles are built at startup from ``settings`` unless given,
    and only the ones built here are closed at shutdown.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_database = database_manager is None
        owns_upstream = upstream_client is None

        app.state.settings = settings
        app.state.database_manager = database_manager or DatabaseManager.from_settings(settings)
        app.state.upstream_client = upstream_client or create_upstream_client(settings)
        await app.state.database_manager.setup()
        logger.info("Kronos API started")

        yield

        if owns_upstream:
            await app.state.upstream_client.aclose()
        if owns_database:
            app.state.database_manager.close()
        logger.info("Kronos API stopped")

    app = FastAPI(title=settings.api_title, version=settings.api_version, description=settings.api_description, lifespan=lifespan)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add routers
    app.include_router(conversation.router)
    app.include_router(chat.router)
    app.include_router(user_settings.router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
