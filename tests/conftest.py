"""Shared fixtures: an in-memory MongoDB and a scripted OpenRouter."""

import asyncio
import json
from typing import List, Optional

import httpx
import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from database.conversation_store.conversation_manager import ConversationManager
from database.credential_store.credential_manager import CredentialManager
from database.credential_store.encryption import SecretCipher
from database.manager import DatabaseManager

TEST_DATABASE = "kronos_test"
OPENROUTER_URL = "https://openrouter.test/api/v1"


def sse_frame(content: str) -> bytes:
    """One streamed chat-completion frame carrying a text delta."""
    payload = json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False)
    return f"data: {payload}\n\n".encode("utf-8")


DONE_FRAME = b"data: [DONE]\n\n"


class FakeOpenRouter:
    """Scripted stand-in for the OpenRouter HTTP API, mounted through httpx.MockTransport."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.chat_chunks: List[bytes] = [sse_frame("Hel"), sse_frame("lo"), DONE_FRAME]
        self.chat_status = 200
        self.chat_error_body: Optional[dict] = None
        self.fail_midstream = False
        self.models_status = 200
        self.models: List[dict] = [
            {"id": "mistralai/mistral-7b-instruct", "name": "Mistral 7B Instruct", "pricing": {"prompt": "0.0000001", "completion": "0.0000001"}},
            {"id": "openai/gpt-4o", "name": "GPT-4o", "context_length": 128000},
            {"id": "anthropic/claude-3-haiku", "name": "Claude 3 Haiku"},
        ]

    @property
    def chat_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/chat/completions")]

    async def _stream(self):
        for chunk in self.chat_chunks:
            yield chunk
            await asyncio.sleep(0)
        if self.fail_midstream:
            raise httpx.ReadError("connection lost")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/chat/completions"):
            if self.chat_status != 200:
                return httpx.Response(self.chat_status, json=self.chat_error_body or {"error": {"message": "Upstream failure"}})
            return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=self._stream())
        if request.url.path.endswith("/models"):
            if self.models_status != 200:
                return httpx.Response(self.models_status, text="unavailable")
            return httpx.Response(200, json={"data": self.models})
        return httpx.Response(404)


@pytest.fixture
def user_id() -> str:
    """Test user ID."""
    return "test_user"


@pytest.fixture
def other_user_id() -> str:
    """A second user who must never see the first user's data."""
    return "other_user"


@pytest.fixture
def mongo_client() -> AsyncMongoMockClient:
    return AsyncMongoMockClient(tz_aware=True)


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher.from_hex(SecretCipher.generate_key())


@pytest_asyncio.fixture
async def conversation_db(mongo_client) -> ConversationManager:
    return await ConversationManager.setup(mongo_client, TEST_DATABASE)


@pytest.fixture
def credential_db(mongo_client, cipher) -> CredentialManager:
    return CredentialManager(mongo_client, cipher, TEST_DATABASE)


@pytest.fixture
def database_manager(mongo_client, cipher) -> DatabaseManager:
    return DatabaseManager(mongo_client, cipher, TEST_DATABASE)


@pytest.fixture
def openrouter() -> FakeOpenRouter:
    return FakeOpenRouter()


@pytest.fixture
def upstream_client(openrouter: FakeOpenRouter) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(openrouter), base_url=OPENROUTER_URL)
