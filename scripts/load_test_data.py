#!/usr/bin/env python
"""
Database initialization script for loading demo data.

Creates a welcome conversation with a few sample messages for a test user, so a
fresh install has something to show in the conversation list.
"""

import argparse
import asyncio
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorClient

from database.conversation_store.conversation_manager import ConversationManager
from database.conversation_store.models import MessageRole
from settings import settings

DEMO_USER_ID = "john@doe.com"
DEMO_MODEL = "openai/gpt-3.5-turbo"
DEMO_TITLE = "Welcome to Kronos AI"

DEMO_MESSAGES: List[Dict[str, Any]] = [
    {
        "role": MessageRole.ASSISTANT,
        "content": "Hello! Welcome to Kronos AI. I'm here to help you with any questions or tasks you might have. How can I assist you today?",
        "model_used": DEMO_MODEL,
    },
    {
        "role": MessageRole.USER,
        "content": "Hello! Can you tell me about yourself?",
    },
    {
        "role": MessageRole.ASSISTANT,
        "content": (
            "I'm Kronos AI, an AI assistant powered by various language models through OpenRouter. "
            "I can help you with a wide range of tasks including:\n\n"
            "- Answering questions and providing information\n"
            "- Writing and editing content\n"
            "- Problem-solving and analysis\n"
            "- Creative tasks like brainstorming\n"
            "- Code assistance and technical support\n\n"
            "I have access to multiple AI models, so you can choose the one that best fits your needs. "
            "You can switch between models anytime during our conversation.\n\n"
            "What would you like to explore together?"
        ),
        "model_used": DEMO_MODEL,
    },
]


async def load_test_data(db: ConversationManager, user_id: str) -> Dict[str, Any]:
    """Create the demo conversation for a user.

    Args:
        db: Conversation manager instance
        user_id: User ID to associate with the data

    Returns:
        Dict with the conversation ID and message count
    """
    conversation = await db.create_conversation(user_id, DEMO_TITLE)
    print(f"Created conversation '{conversation.title}'")

    for message in DEMO_MESSAGES:
        await db.create_message(
            user_id=user_id,
            conversation_id=conversation.id,
            content=message["content"],
            role=message["role"],
            model_used=message.get("model_used"),
        )

    return {"conversation_id": str(conversation.id), "message_count": len(DEMO_MESSAGES)}


async def main(user_id: str):
    """Main function to run the database initialization and data loading."""
    # Initialize MongoDB client
    client = AsyncIOMotorClient(settings.database_connection_string, tz_aware=True)
    client.get_io_loop = asyncio.get_running_loop

    try:
        print("Setting up conversation manager...")
        db = await ConversationManager.setup(client, settings.database_name, settings.default_conversation_title)

        print(f"\nLoading demo data for user {user_id}...")
        info = await load_test_data(db, user_id)

        print("\nDemo data loaded successfully!")
        print(f"Conversation ID: {info['conversation_id']}")
        print(f"Total messages: {info['message_count']}")

    finally:
        # Close the client connection
        client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load a demo conversation")
    parser.add_argument("--user", default=DEMO_USER_ID, help="User ID that owns the demo conversation")
    args = parser.parse_args()

    asyncio.run(main(args.user))
