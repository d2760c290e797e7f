"""OpenRouter router: streamed chat turns and the model catalog."""

from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from api.dependencies import get_chat_relay, get_current_user, get_model_catalog
from api.models import ChatRequest, ModelListResponse
from database.conversation_store.exceptions import ConversationNotFoundError
from database.credential_store.exceptions import ConfigurationError, DecryptionError
from relay.catalog import ModelCatalog
from relay.chat_relay import ChatRelay, RelayStream
from relay.exceptions import UpstreamError
from utils.logging import logger

router = APIRouter(prefix="/api/openrouter", tags=["chat"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _relay_body(stream: RelayStream) -> AsyncIterator[bytes]:
    try:
        async for chunk in stream:
            yield chunk
    finally:
        await stream.aclose()


@router.post("/chat")
async def stream_chat(
    request: ChatRequest,
    user_id: str = Depends(get_current_user),
    relay: ChatRelay = Depends(get_chat_relay),
) -> StreamingResponse:
    """Relay a chat completion, streaming the provider's bytes back unmodified.

    The body is newline-delimited ``data: <json>`` frames ending with ``data: [DONE]``.
    A failure after streaming started terminates the response early.
    """
    try:
        stream = await relay.open_stream(
            user_id=user_id,
            messages=[message.model_dump() for message in request.messages],
            model=request.model,
            conversation_id=request.conversation_id,
        )
    except ConfigurationError:
        logger.info(f"Chat request from user {user_id} without a configured API key")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OpenRouter API key not configured")
    except DecryptionError as e:
        logger.error(f"Failed to decrypt API key for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to decrypt API key")
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    except UpstreamError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except Exception as e:
        logger.error(f"Chat completion error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to process chat request")

    return StreamingResponse(_relay_body(stream), media_type="text/plain; charset=utf-8", headers=STREAM_HEADERS)


@router.get("/models", response_model=ModelListResponse)
async def list_models(
    user_id: str = Depends(get_current_user),
    catalog: ModelCatalog = Depends(get_model_catalog),
) -> ModelListResponse:
    """List selectable models. Falls back to a built-in catalog when OpenRouter is unavailable."""
    models = await catalog.list_models()
    return ModelListResponse(data=models)
