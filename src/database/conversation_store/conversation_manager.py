"""Manager for conversation and message operations."""

from typing import List, Optional
from uuid import UUID, uuid4

import pymongo
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ReturnDocument

from database.conversation_store.exceptions import (
    ConversationNotFoundError,
    ConversationStoreError,
    InvalidConversationError,
    InvalidMessageError,
)
from database.conversation_store.models.conversation import Conversation, ConversationSummary
from database.conversation_store.models.message import Message, MessageRole
from models.base import utc_now
from utils.logging import logger

DEFAULT_CONVERSATION_TITLE = "New Conversation"


class ConversationManager:
    """Owner-scoped access to conversations and their ordered messages.

    Every operation takes the acting ``user_id`` and treats a conversation owned by
    someone else exactly like a missing one (``ConversationNotFoundError``).
    """

    DATABASE: str = "kronos"
    COLLECTION_CONVERSATIONS: str = "conversations"
    COLLECTION_MESSAGES: str = "messages"

    def __init__(self, mongodb_client: AsyncIOMotorClient, database_name: Optional[str] = None) -> None:
        """Initialize manager with MongoDB client.
        Note: Use ConversationManager.setup() to create a properly initialized instance."""
        self.client = mongodb_client
        self._db: AsyncIOMotorDatabase = self.client.get_database(database_name or self.DATABASE)
        self._conversations: AsyncIOMotorCollection = self._db.get_collection(self.COLLECTION_CONVERSATIONS)
        self._messages: AsyncIOMotorCollection = self._db.get_collection(self.COLLECTION_MESSAGES)
        self.default_title = DEFAULT_CONVERSATION_TITLE

    @classmethod
    async def setup(
        cls,
        mongodb_client: AsyncIOMotorClient,
        database_name: Optional[str] = None,
        default_title: Optional[str] = None,
    ) -> "ConversationManager":
        """Factory method to create and setup a ConversationManager instance."""
        try:
            manager = cls(mongodb_client, database_name)
            if default_title:
                manager.default_title = default_title

            await manager._conversations.create_indexes(
                [
                    # Listing a user's conversations by recency
                    pymongo.IndexModel([("user_id", 1), ("updated_at", -1)]),
                    # Ownership lookups
                    pymongo.IndexModel([("user_id", 1), ("_id", 1)]),
                ]
            )

            await manager._messages.create_indexes(
                [
                    # Listing conversation messages in append order
                    pymongo.IndexModel([("conversation_id", 1), ("seq", 1)]),
                    pymongo.IndexModel([("user_id", 1), ("conversation_id", 1)]),
                ]
            )

            return manager

        except Exception as e:
            raise ConversationStoreError(f"Failed to setup indexes: {str(e)}")

    async def create_conversation(self, user_id: str, title: Optional[str] = None) -> Conversation:
        """Creates a new, empty conversation. A blank title falls back to the default one."""
        title = (title or "").strip() or self.default_title
        try:
            logger.info(f"Creating conversation '{title}' for user {user_id}")
            now = utc_now()
            conversation = Conversation(id=uuid4(), user_id=user_id, title=title, created_at=now, updated_at=now)
            await self._conversations.insert_one(conversation.model_dump(by_alias=True))
            logger.info(f"Conversation created with ID: {conversation.id}")
            return conversation

        except Exception as e:
            raise ConversationStoreError(f"Failed to create conversation: {str(e)}")

    async def get_conversation(self, user_id: str, conversation_id: UUID) -> Conversation:
        """Retrieves a specific conversation owned by the user."""
        try:
            logger.debug(f"Getting conversation {conversation_id} for user {user_id}")
            doc = await self._conversations.find_one({"_id": str(conversation_id), "user_id": user_id})
        except Exception as e:
            raise ConversationStoreError(f"Failed to get conversation: {str(e)}")

        if not doc:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return Conversation.model_validate(doc)

    async def conversation_exists(self, user_id: str, conversation_id: UUID) -> bool:
        """Checks if a conversation exists and is owned by the user."""
        logger.debug(f"Checking if conversation {conversation_id} exists for user {user_id}")
        doc = await self._conversations.find_one(
            {"_id": str(conversation_id), "user_id": user_id}, projection={"_id": 1}
        )
        return doc is not None

    async def list_conversations(self, user_id: str, search: Optional[str] = None) -> List[ConversationSummary]:
        """Lists a user's conversations, most recently updated first, with message counts."""
        try:
            logger.info(f"Listing conversations for user {user_id}")
            cursor = self._conversations.find({"user_id": user_id})
            cursor = cursor.sort([("updated_at", -1)])

            needle = search.strip().lower() if search else ""
            conversations = []
            async for doc in cursor:
                if needle and needle not in doc.get("title", "").lower():
                    continue
                message_count = await self._messages.count_documents({"user_id": user_id, "conversation_id": doc["_id"]})
                conversations.append(ConversationSummary.model_validate({**doc, "message_count": message_count}))
            return conversations

        except Exception as e:
            raise ConversationStoreError(f"Failed to list conversations: {str(e)}")

    async def rename_conversation(self, user_id: str, conversation_id: UUID, title: str) -> Conversation:
        """Renames a conversation. Renaming does not count as activity, so updated_at is kept."""
        title = (title or "").strip()
        if not title:
            raise InvalidConversationError("Title cannot be empty")

        logger.info(f"Renaming conversation {conversation_id} for user {user_id}")
        try:
            doc = await self._conversations.find_one_and_update(
                {"_id": str(conversation_id), "user_id": user_id},
                {"$set": {"title": title}},
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            raise ConversationStoreError(f"Failed to rename conversation: {str(e)}")

        if not doc:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return Conversation.model_validate(doc)

    async def delete_conversation(self, user_id: str, conversation_id: UUID) -> None:
        """Deletes a conversation and all its messages."""
        logger.info(f"Deleting conversation {conversation_id} and its messages for user {user_id}")
        try:
            result = await self._conversations.delete_one({"_id": str(conversation_id), "user_id": user_id})
        except Exception as e:
            raise ConversationStoreError(f"Failed to delete conversation: {str(e)}")

        if result.deleted_count == 0:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

        # Cascade to the conversation's messages
        try:
            deleted = await self._messages.delete_many({"conversation_id": str(conversation_id)})
            logger.info(f"Conversation deleted with {deleted.deleted_count} messages")
        except Exception as e:
            raise ConversationStoreError(f"Failed to delete messages of conversation {conversation_id}: {str(e)}")

    async def create_message(
        self,
        user_id: str,
        conversation_id: UUID,
        content: str,
        role: MessageRole,
        model_used: Optional[str] = None,
    ) -> Message:
        """Appends a message to a conversation and bumps the conversation's updated_at."""
        if not isinstance(content, str):
            raise InvalidMessageError("Message content must be a string")
        try:
            role = MessageRole(role)
        except ValueError:
            raise InvalidMessageError(f"Invalid message role: {role}")

        logger.info(f"Creating {role.value} message in conversation {conversation_id} for user {user_id}")
        now = utc_now()
        try:
            # Ownership check, sequence allocation and updated_at bump in one update
            conversation_doc = await self._conversations.find_one_and_update(
                {"_id": str(conversation_id), "user_id": user_id},
                {"$inc": {"message_seq": 1}, "$set": {"updated_at": now}},
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            raise ConversationStoreError(f"Failed to create message: {str(e)}")

        if not conversation_doc:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

        message = Message(
            id=uuid4(),
            user_id=user_id,
            conversation_id=conversation_id,
            content=content,
            role=role,
            model_used=model_used,
            seq=conversation_doc["message_seq"],
            created_at=now,
        )
        try:
            await self._messages.insert_one(message.model_dump(by_alias=True))
        except Exception as e:
            raise ConversationStoreError(f"Failed to create message: {str(e)}")

        logger.info(f"Message created with ID: {message.id}")
        return message

    async def list_messages(self, user_id: str, conversation_id: UUID) -> List[Message]:
        """Lists all messages in a conversation in append order."""
        await self.get_conversation(user_id, conversation_id)

        try:
            logger.info(f"Listing messages for conversation {conversation_id}")
            cursor = self._messages.find({"user_id": user_id, "conversation_id": str(conversation_id)})
            cursor = cursor.sort([("seq", 1), ("created_at", 1)])

            messages = []
            async for doc in cursor:
                messages.append(Message.model_validate(doc))
            return messages

        except Exception as e:
            raise ConversationStoreError(f"Failed to list messages: {str(e)}")
