"""Tests for the client-side turn protocol."""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List, Optional
from unittest.mock import AsyncMock
from uuid import uuid4

import httpx
import pytest

from conftest import DONE_FRAME, sse_frame
from orchestrator.conversation_orchestrator import (
    GENERIC_ERROR,
    SAVE_ERROR,
    ConversationOrchestrator,
    describe_error,
)
from orchestrator.exceptions import ChatClientError, StreamError
from orchestrator.state import ConfirmedMessage, PendingMessage, TurnState

MODEL = "openai/gpt-4o-mini"


class FakeApiClient:
    """Records persisted messages and replays a scripted chat stream."""

    def __init__(self):
        self.conversations: List[Dict] = []
        self.messages: Dict[str, List[Dict]] = {}
        self.appended: List[tuple] = []
        self.chunks: List[bytes] = [sse_frame("Hel"), sse_frame("lo"), DONE_FRAME]
        self.stream_calls: List[Dict] = []
        self.stream_error: Optional[Exception] = None
        self.fail_roles: Dict[str, Exception] = {}
        self.stream_started = asyncio.Event()
        self.release: Optional[asyncio.Event] = None

    async def list_conversations(self, search=None):
        return [dict(c) for c in self.conversations]

    async def create_conversation(self, title=None):
        conversation = {"id": str(uuid4()), "title": title or "New Conversation", "updated_at": "2024-01-01T00:00:00Z", "message_count": 0}
        self.conversations.insert(0, conversation)
        self.messages[conversation["id"]] = []
        return dict(conversation)

    async def rename_conversation(self, conversation_id, title):
        for conversation in self.conversations:
            if conversation["id"] == conversation_id:
                conversation["title"] = title
        return {}

    async def delete_conversation(self, conversation_id):
        self.conversations = [c for c in self.conversations if c["id"] != conversation_id]
        self.messages.pop(conversation_id, None)

    async def list_messages(self, conversation_id):
        return list(self.messages.get(conversation_id, []))

    async def append_message(self, conversation_id, role, content, model_used=None):
        if role in self.fail_roles:
            raise self.fail_roles[role]
        self.appended.append((role, content, model_used))
        message = {
            "id": str(uuid4()),
            "conversation_id": conversation_id,
            "role": role,
            "content": content,
            "model_used": model_used,
            "created_at": "2024-01-01T00:00:00Z",
        }
        self.messages.setdefault(conversation_id, []).append(message)
        return message

    @asynccontextmanager
    async def stream_chat(self, messages, model, conversation_id=None, timeout=None):
        self.stream_calls.append({"messages": list(messages), "model": model, "conversation_id": conversation_id})
        if self.stream_error is not None:
            raise self.stream_error
        yield self._chunks()

    async def _chunks(self):
        self.stream_started.set()
        for index, chunk in enumerate(self.chunks):
            if index == 1 and self.release is not None:
                await self.release.wait()
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


@pytest.fixture
def client() -> FakeApiClient:
    return FakeApiClient()


@pytest.fixture
def updates() -> List[List[str]]:
    return []


@pytest.fixture
def orchestrator(client: FakeApiClient, updates) -> ConversationOrchestrator:
    def on_update(view):
        updates.append([m.content for m in view.messages])

    return ConversationOrchestrator(client, model=MODEL, on_update=on_update)


@pytest.fixture
def conversation_id(client: FakeApiClient) -> str:
    conversation_id = str(uuid4())
    client.messages[conversation_id] = []
    return conversation_id


@pytest.mark.asyncio
async def test_turn_streams_and_persists_reply(orchestrator, client: FakeApiClient, updates, conversation_id: str):
    result = await orchestrator.submit(conversation_id, "  Hi  ")

    assert isinstance(result, ConfirmedMessage)
    assert result.content == "Hello"
    assert result.model_used == MODEL
    assert client.appended == [("user", "Hi", None), ("assistant", "Hello", MODEL)]
    assert client.stream_calls == [{"messages": [{"role": "user", "content": "Hi"}], "model": MODEL, "conversation_id": conversation_id}]

    view = orchestrator.views[conversation_id]
    assert [type(m) for m in view.messages] == [ConfirmedMessage, ConfirmedMessage]
    assert [m.content for m in view.messages] == ["Hi", "Hello"]
    assert view.state == TurnState.IDLE
    assert view.error is None
    assert not orchestrator.is_busy(conversation_id)

    # The reply grows in place as deltas arrive
    assert ["Hi", "Hel"] in updates
    assert ["Hi", "Hello"] in updates


@pytest.mark.asyncio
async def test_history_includes_earlier_messages(orchestrator, client: FakeApiClient, conversation_id: str):
    await orchestrator.submit(conversation_id, "Hi")
    client.chunks = [sse_frame("Fine"), DONE_FRAME]

    await orchestrator.submit(conversation_id, "How are you?", model="anthropic/claude-3-haiku")

    assert client.stream_calls[-1]["messages"] == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
        {"role": "user", "content": "How are you?"},
    ]
    assert client.stream_calls[-1]["model"] == "anthropic/claude-3-haiku"
    assert client.appended[-1] == ("assistant", "Fine", "anthropic/claude-3-haiku")


@pytest.mark.asyncio
async def test_malformed_frame_is_tolerated(orchestrator, client: FakeApiClient, conversation_id: str):
    client.chunks = [sse_frame("Hel"), b"data: {oops\n\n", sse_frame("lo"), DONE_FRAME]

    result = await orchestrator.submit(conversation_id, "Hi")

    assert result.content == "Hello"
    assert orchestrator.views[conversation_id].error is None


@pytest.mark.asyncio
async def test_blank_input_is_ignored(orchestrator, client: FakeApiClient, conversation_id: str):
    assert await orchestrator.submit(conversation_id, "   ") is None
    assert client.appended == []
    assert client.stream_calls == []


@pytest.mark.asyncio
async def test_relay_failure_keeps_user_message(orchestrator, client: FakeApiClient, conversation_id: str):
    client.stream_error = ChatClientError(502, "OpenRouter API error (401): Invalid API key")

    assert await orchestrator.submit(conversation_id, "Hi") is None

    view = orchestrator.views[conversation_id]
    assert client.appended == [("user", "Hi", None)]
    assert [(type(m), m.content) for m in view.messages] == [(ConfirmedMessage, "Hi")]
    assert view.error == "OpenRouter API error (401): Invalid API key"
    assert view.state == TurnState.IDLE


@pytest.mark.asyncio
async def test_missing_api_key_message(orchestrator, client: FakeApiClient, conversation_id: str):
    client.stream_error = ChatClientError(400, "OpenRouter API key not configured")

    await orchestrator.submit(conversation_id, "Hi")

    assert "Settings" in orchestrator.views[conversation_id].error


@pytest.mark.asyncio
async def test_error_frame_aborts_turn(orchestrator, client: FakeApiClient, conversation_id: str):
    client.chunks = [sse_frame("Hel"), b'data: {"error": {"message": "Provider overloaded"}}\n\n', sse_frame("lo")]

    assert await orchestrator.submit(conversation_id, "Hi") is None

    view = orchestrator.views[conversation_id]
    assert client.appended == [("user", "Hi", None)]
    assert [m.content for m in view.messages] == ["Hi"]
    assert "Provider overloaded" in view.error


@pytest.mark.asyncio
async def test_user_persist_failure_skips_relay(orchestrator, client: FakeApiClient, conversation_id: str):
    client.fail_roles["user"] = ChatClientError(500, "Internal server error")

    assert await orchestrator.submit(conversation_id, "Hi") is None

    view = orchestrator.views[conversation_id]
    assert client.stream_calls == []
    assert [(type(m), m.content) for m in view.messages] == [(PendingMessage, "Hi")]
    assert view.error == SAVE_ERROR
    assert not view.busy


@pytest.mark.asyncio
async def test_assistant_persist_failure(orchestrator, client: FakeApiClient, conversation_id: str):
    client.fail_roles["assistant"] = ChatClientError(500, "Internal server error")

    assert await orchestrator.submit(conversation_id, "Hi") is None

    view = orchestrator.views[conversation_id]
    assert [m.content for m in view.messages] == ["Hi"]
    assert view.error == SAVE_ERROR


@pytest.mark.asyncio
async def test_empty_reply_is_not_persisted(orchestrator, client: FakeApiClient, conversation_id: str):
    client.chunks = [b": keep-alive\n\n", DONE_FRAME]

    assert await orchestrator.submit(conversation_id, "Hi") is None

    view = orchestrator.views[conversation_id]
    assert client.appended == [("user", "Hi", None)]
    assert [m.content for m in view.messages] == ["Hi"]
    assert view.error is None
    assert view.state == TurnState.IDLE


@pytest.mark.asyncio
async def test_submit_during_turn_is_ignored(orchestrator, client: FakeApiClient, conversation_id: str):
    client.release = asyncio.Event()

    first = asyncio.create_task(orchestrator.submit(conversation_id, "first"))
    await asyncio.wait_for(client.stream_started.wait(), timeout=1)

    assert orchestrator.is_busy(conversation_id)
    assert orchestrator.views[conversation_id].state == TurnState.STREAMING
    assert await orchestrator.submit(conversation_id, "second") is None

    client.release.set()
    result = await asyncio.wait_for(first, timeout=1)

    assert result.content == "Hello"
    assert client.appended == [("user", "first", None), ("assistant", "Hello", MODEL)]
    assert len(client.stream_calls) == 1


@pytest.mark.asyncio
async def test_turns_in_different_conversations_run_independently(orchestrator, client: FakeApiClient, conversation_id: str):
    client.release = asyncio.Event()
    other_id = str(uuid4())

    first = asyncio.create_task(orchestrator.submit(conversation_id, "first"))
    await asyncio.wait_for(client.stream_started.wait(), timeout=1)
    second = asyncio.create_task(orchestrator.submit(other_id, "second"))
    await asyncio.sleep(0)

    client.release.set()
    results = await asyncio.wait_for(asyncio.gather(first, second), timeout=1)

    assert [r.content for r in results] == ["Hello", "Hello"]


@pytest.mark.asyncio
async def test_turn_timeout(client: FakeApiClient, conversation_id: str):
    client.release = asyncio.Event()
    orchestrator = ConversationOrchestrator(client, model=MODEL, turn_timeout=0.05)

    assert await orchestrator.submit(conversation_id, "Hi") is None

    view = orchestrator.views[conversation_id]
    assert [m.content for m in view.messages] == ["Hi"]
    assert "interrupted" in view.error
    assert client.appended == [("user", "Hi", None)]


@pytest.mark.asyncio
async def test_cancel_turn(orchestrator, client: FakeApiClient, conversation_id: str):
    client.release = asyncio.Event()

    turn = asyncio.create_task(orchestrator.submit(conversation_id, "Hi"))
    await asyncio.wait_for(client.stream_started.wait(), timeout=1)

    assert orchestrator.cancel(conversation_id)
    assert await asyncio.wait_for(turn, timeout=1) is None
    assert not orchestrator.cancel(conversation_id)

    view = orchestrator.views[conversation_id]
    assert [m.content for m in view.messages] == ["Hi"]
    assert client.appended == [("user", "Hi", None)]


@pytest.mark.asyncio
async def test_cancelling_the_caller_propagates(orchestrator, client: FakeApiClient, conversation_id: str):
    client.release = asyncio.Event()

    turn = asyncio.create_task(orchestrator.submit(conversation_id, "Hi"))
    await asyncio.wait_for(client.stream_started.wait(), timeout=1)
    turn.cancel()

    with pytest.raises(asyncio.CancelledError):
        await turn
    assert turn.cancelled()

    view = orchestrator.views[conversation_id]
    assert [m.content for m in view.messages] == ["Hi"]
    assert view.state == TurnState.IDLE
    assert client.appended == [("user", "Hi", None)]
    assert not orchestrator.is_busy(conversation_id)


@pytest.mark.asyncio
async def test_connection_lost_midstream(orchestrator, client: FakeApiClient, conversation_id: str):
    client.chunks = [sse_frame("Hel"), httpx.ReadError("connection lost")]

    assert await orchestrator.submit(conversation_id, "Hi") is None

    view = orchestrator.views[conversation_id]
    assert client.appended == [("user", "Hi", None)]
    assert [(type(m), m.content) for m in view.messages] == [(ConfirmedMessage, "Hi")]
    assert "interrupted" in view.error
    assert view.state == TurnState.IDLE


@pytest.mark.asyncio
async def test_unloaded_conversation_sends_persisted_history(client: FakeApiClient, conversation_id: str):
    await client.append_message(conversation_id, "user", "My name is Ada")
    await client.append_message(conversation_id, "assistant", "Hi Ada", model_used=MODEL)
    orchestrator = ConversationOrchestrator(client, model=MODEL)

    result = await orchestrator.submit(conversation_id, "What is my name?")

    assert result.content == "Hello"
    assert client.stream_calls[0]["messages"] == [
        {"role": "user", "content": "My name is Ada"},
        {"role": "assistant", "content": "Hi Ada"},
        {"role": "user", "content": "What is my name?"},
    ]
    assert [m.content for m in orchestrator.views[conversation_id].messages] == ["My name is Ada", "Hi Ada", "What is my name?", "Hello"]


@pytest.mark.asyncio
async def test_unloadable_conversation_is_not_submitted(orchestrator, client: FakeApiClient):
    client.list_messages = AsyncMock(side_effect=ChatClientError(404, "Conversation not found"))
    conversation_id = str(uuid4())

    assert await orchestrator.submit(conversation_id, "Hi") is None

    assert orchestrator.views[conversation_id].error == "Conversation not found."
    assert client.appended == []
    assert client.stream_calls == []


@pytest.mark.asyncio
async def test_conversation_list_management(orchestrator, client: FakeApiClient):
    older = await client.create_conversation("Older")
    await client.append_message(older["id"], "user", "Earlier question")
    await orchestrator.refresh_conversations()
    assert orchestrator.active_conversation_id == older["id"]

    created = await orchestrator.create_conversation("Fresh")
    assert orchestrator.active_conversation_id == created["id"]
    assert [c["title"] for c in orchestrator.conversations] == ["Fresh", "Older"]

    await orchestrator.rename_conversation(created["id"], "Renamed")
    assert orchestrator.conversations[0]["title"] == "Renamed"

    await orchestrator.delete_conversation(created["id"])
    assert orchestrator.active_conversation_id == older["id"]
    assert created["id"] not in orchestrator.views

    view = await orchestrator.load(older["id"])
    assert [(type(m), m.content) for m in view.messages] == [(ConfirmedMessage, "Earlier question")]


def test_describe_error():
    assert "session" in describe_error(ChatClientError(401, "Unauthorized"))
    assert describe_error(ChatClientError(404, "Conversation not found")) == "Conversation not found."
    assert describe_error(ChatClientError(502, "OpenRouter API error (429): Rate limited")) == "OpenRouter API error (429): Rate limited"
    assert describe_error(ChatClientError(500, "Internal server error")) == GENERIC_ERROR
    assert "dropped" in describe_error(StreamError("dropped"))
    assert describe_error(RuntimeError("boom")) == GENERIC_ERROR
