"""Conversation model for chat history."""

from datetime import datetime

from pydantic import Field

from models.base import BaseDocument, utc_now


class Conversation(BaseDocument):
    """Model representing a chat conversation."""

    title: str = Field(..., description="Title of the conversation")
    updated_at: datetime = Field(default_factory=utc_now, description="Bumped whenever a message is appended")
    message_seq: int = Field(default=0, description="Sequence number of the last appended message")


class ConversationSummary(Conversation):
    """Conversation annotated with its message count, as listed in the sidebar."""

    message_count: int = Field(default=0, description="Number of messages in the conversation")
