"""Tests for the demo data script."""

import pytest

from load_test_data import DEMO_MESSAGES, DEMO_TITLE, load_test_data


@pytest.mark.asyncio
async def test_load_demo_conversation(conversation_db, user_id: str):
    info = await load_test_data(conversation_db, user_id)

    [conversation] = await conversation_db.list_conversations(user_id)
    assert str(conversation.id) == info["conversation_id"]
    assert conversation.title == DEMO_TITLE
    assert conversation.message_count == info["message_count"] == 3

    messages = await conversation_db.list_messages(user_id, conversation.id)
    assert [m.role for m in messages] == [m["role"] for m in DEMO_MESSAGES]
    assert messages[0].model_used == "openai/gpt-3.5-turbo"
    assert messages[1].model_used is None
