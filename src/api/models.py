"""API request and response models."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from database.conversation_store.models import Conversation, ConversationSummary, Message, MessageRole
from relay.catalog import ModelInfo

# Roles a client may append through the API
APPENDABLE_ROLES = (MessageRole.USER, MessageRole.ASSISTANT)


class ConversationCreate(BaseModel):
    """Request model for creating a conversation."""

    title: Optional[str] = Field(default=None, description="Title of the conversation, defaults to 'New Conversation'")


class ConversationUpdate(BaseModel):
    """Request model for renaming a conversation."""

    title: str = Field(..., description="New title for the conversation")


class ConversationResponse(BaseModel):
    """Response model for conversation operations."""

    id: str = Field(..., description="Conversation identifier")
    title: str = Field(..., description="Title of the conversation")
    user_id: str = Field(..., description="Owner identifier")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last activity timestamp")
    message_count: Optional[int] = Field(default=None, description="Number of messages, set when listing")

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationResponse":
        return cls(
            id=str(conversation.id),
            title=conversation.title,
            user_id=conversation.user_id,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            message_count=conversation.message_count if isinstance(conversation, ConversationSummary) else None,
        )


class ConversationListResponse(BaseModel):
    """Response model for listing conversations."""

    conversations: List[ConversationResponse] = Field(..., description="Conversations, most recently updated first")
    total: int = Field(..., description="Total number of conversations")


class MessageCreate(BaseModel):
    """Request model for appending a message."""

    role: MessageRole = Field(..., description="Role of the message sender")
    content: str = Field(..., description="Content of the message")
    model_used: Optional[str] = Field(default=None, description="Model that produced an assistant message")

    @field_validator("role")
    @classmethod
    def validate_role(cls, role: MessageRole) -> MessageRole:
        if role not in APPENDABLE_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(r.value for r in APPENDABLE_ROLES)}")
        return role


class MessageResponse(BaseModel):
    """Response model for message operations."""

    id: str = Field(..., description="Message identifier")
    conversation_id: str = Field(..., description="Conversation identifier")
    role: str = Field(..., description="Role of the message sender")
    content: str = Field(..., description="Content of the message")
    model_used: Optional[str] = Field(default=None, description="Model that produced the message")
    created_at: datetime = Field(..., description="Creation timestamp")

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=str(message.id),
            conversation_id=str(message.conversation_id),
            role=MessageRole(message.role).value,
            content=message.content,
            model_used=message.model_used,
            created_at=message.created_at,
        )


class MessageListResponse(BaseModel):
    """Response model for listing messages."""

    messages: List[MessageResponse] = Field(..., description="Messages in append order")
    total: int = Field(..., description="Total number of messages")


class ChatMessage(BaseModel):
    """A role-tagged message forwarded to the model."""

    role: str = Field(..., description="Role of the message sender")
    content: str = Field(..., description="Text content")


class ChatRequest(BaseModel):
    """Request model for a streamed chat turn."""

    messages: List[ChatMessage] = Field(..., min_length=1, description="Full conversation history, oldest first")
    model: str = Field(..., min_length=1, description="OpenRouter model identifier")
    conversation_id: Optional[UUID] = Field(default=None, description="Conversation the turn belongs to")


class SettingsResponse(BaseModel):
    """Whether the user has an API key stored. The key itself is never returned."""

    has_api_key: bool


class SettingsUpdate(BaseModel):
    """Request model for storing the user's OpenRouter API key."""

    api_key: str = Field(..., description="OpenRouter API key")


class SuccessResponse(BaseModel):
    success: bool = True


class ModelListResponse(BaseModel):
    data: List[ModelInfo]
