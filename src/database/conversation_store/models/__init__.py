"""Models for conversation store."""

from database.conversation_store.models.conversation import Conversation, ConversationSummary
from database.conversation_store.models.message import Message, MessageRole

__all__ = ["Conversation", "ConversationSummary", "Message", "MessageRole"]
