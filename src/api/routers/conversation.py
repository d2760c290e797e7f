"""Conversation router for conversation and message operations."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_conversation_db, get_current_user, parse_conversation_id
from api.models import (
    ConversationCreate,
    ConversationListResponse,
    ConversationResponse,
    ConversationUpdate,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    SuccessResponse,
)
from database.conversation_store.conversation_manager import ConversationManager
from database.conversation_store.exceptions import (
    ConversationNotFoundError,
    InvalidConversationError,
    InvalidMessageError,
)
from utils.logging import logger

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    q: Optional[str] = Query(None, description="Case-insensitive title filter"),
    user_id: str = Depends(get_current_user),
    db: ConversationManager = Depends(get_conversation_db),
) -> ConversationListResponse:
    """List the user's conversations, most recently updated first."""
    try:
        conversations = await db.list_conversations(user_id, search=q)
        return ConversationListResponse(
            conversations=[ConversationResponse.from_conversation(conv) for conv in conversations],
            total=len(conversations),
        )
    except Exception as e:
        logger.error(f"Failed to list conversations: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: ConversationCreate,
    user_id: str = Depends(get_current_user),
    db: ConversationManager = Depends(get_conversation_db),
) -> ConversationResponse:
    """Create a new, empty conversation."""
    try:
        conversation = await db.create_conversation(user_id=user_id, title=request.title)
        return ConversationResponse.from_conversation(conversation)
    except Exception as e:
        logger.error(f"Failed to create conversation: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    user_id: str = Depends(get_current_user),
    conversation_id: UUID = Depends(parse_conversation_id),
    db: ConversationManager = Depends(get_conversation_db),
) -> ConversationResponse:
    """Get a specific conversation."""
    try:
        conversation = await db.get_conversation(user_id, conversation_id)
        return ConversationResponse.from_conversation(conversation)
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    except Exception as e:
        logger.error(f"Unexpected error getting conversation: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.patch("/{conversation_id}", response_model=ConversationResponse)
async def rename_conversation(
    request: ConversationUpdate,
    user_id: str = Depends(get_current_user),
    conversation_id: UUID = Depends(parse_conversation_id),
    db: ConversationManager = Depends(get_conversation_db),
) -> ConversationResponse:
    """Rename a conversation."""
    try:
        conversation = await db.rename_conversation(user_id, conversation_id, request.title)
        return ConversationResponse.from_conversation(conversation)
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    except InvalidConversationError as e:
        logger.error(f"Failed to rename conversation: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error renaming conversation: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.delete("/{conversation_id}", response_model=SuccessResponse)
async def delete_conversation(
    user_id: str = Depends(get_current_user),
    conversation_id: UUID = Depends(parse_conversation_id),
    db: ConversationManager = Depends(get_conversation_db),
) -> SuccessResponse:
    """Delete a conversation and all its messages."""
    try:
        await db.delete_conversation(user_id, conversation_id)
        return SuccessResponse()
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    except Exception as e:
        logger.error(f"Unexpected error deleting conversation: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    user_id: str = Depends(get_current_user),
    conversation_id: UUID = Depends(parse_conversation_id),
    db: ConversationManager = Depends(get_conversation_db),
) -> MessageListResponse:
    """List all messages in a conversation, oldest first."""
    try:
        messages = await db.list_messages(user_id, conversation_id)
        return MessageListResponse(messages=[MessageResponse.from_message(msg) for msg in messages], total=len(messages))
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    except Exception as e:
        logger.error(f"Unexpected error listing messages: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_message(
    request: MessageCreate,
    user_id: str = Depends(get_current_user),
    conversation_id: UUID = Depends(parse_conversation_id),
    db: ConversationManager = Depends(get_conversation_db),
) -> MessageResponse:
    """Append a message to a conversation."""
    try:
        message = await db.create_message(
            user_id=user_id,
            conversation_id=conversation_id,
            content=request.content,
            role=request.role,
            model_used=request.model_used,
        )
        return MessageResponse.from_message(message)
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    except InvalidMessageError as e:
        logger.error(f"Failed to create message: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error creating message: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
