"""Message model for chat history."""

from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import BaseDocument, PydanticUUID


class MessageRole(str, Enum):
    """Enum for message roles."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseDocument):
    """Model representing a persisted chat message. Messages are never updated."""

    model_config = {**BaseDocument.model_config, "use_enum_values": True}

    conversation_id: PydanticUUID = Field(..., description="ID of the conversation this message belongs to")
    role: MessageRole = Field(..., description="Role of the message sender")
    content: str = Field(..., description="Text content of the message")
    model_used: Optional[str] = Field(default=None, description="Model identifier that produced the message")
    seq: int = Field(default=0, description="Append position within the conversation")
