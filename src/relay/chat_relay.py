"""Streaming relay between the chat client and OpenRouter."""

import json
from typing import AsyncIterator, Dict, List, Optional
from uuid import UUID

import httpx

from database.conversation_store.conversation_manager import ConversationManager
from database.conversation_store.exceptions import ConversationNotFoundError
from database.credential_store.credential_manager import CredentialManager
from relay.exceptions import StreamError, UpstreamError
from utils.logging import logger

CHAT_COMPLETIONS_PATH = "/chat/completions"


class RelayStream:
    """Async iterator over the upstream body, forwarded chunk by chunk as it arrives.

    The upstream response is closed when iteration ends, fails, or is abandoned
    (``aclose`` is called when the downstream client disconnects).
    """

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def __aiter__(self) -> AsyncIterator[bytes]:
        relayed = 0
        try:
            async for chunk in self._response.aiter_raw():
                relayed += len(chunk)
                yield chunk
        except httpx.HTTPError as e:
            logger.error(f"Upstream stream failed after {relayed} bytes: {str(e)}")
            raise StreamError(f"Upstream stream failed: {str(e)}") from e
        finally:
            await self._response.aclose()
            logger.debug(f"Relay stream closed after {relayed} bytes")

    async def aclose(self) -> None:
        await self._response.aclose()


class ChatRelay:
    """Forwards a chat-completion request with the caller's own API key.

    Generation parameters are fixed by the relay, not chosen by the caller.
    No retries: a failed or partially delivered stream is surfaced as is.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        conversation_db: ConversationManager,
        credential_db: CredentialManager,
        max_tokens: int = 4000,
        temperature: float = 0.7,
        referer: str = "http://localhost:3000",
        app_title: str = "Kronos AI",
    ):
        self.http_client = http_client
        self.conversation_db = conversation_db
        self.credential_db = credential_db
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.referer = referer
        self.app_title = app_title

    def build_payload(self, model: str, messages: List[Dict[str, str]]) -> Dict:
        return {
            "model": model,
            "messages": messages,
            "stream": True,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
            "X-Title": self.app_title,
        }

    async def open_stream(
        self,
        user_id: str,
        messages: List[Dict[str, str]],
        model: str,
        conversation_id: Optional[UUID] = None,
    ) -> RelayStream:
        """Validate the request and open the upstream stream.

        Everything that can fail before the first byte is relayed fails here, so the
        caller can still answer with a proper error status.

        Raises:
            ConfigurationError: the user has no API key stored
            DecryptionError: the stored key cannot be decrypted
            ConversationNotFoundError: ``conversation_id`` is missing or not owned by the user
            UpstreamError: the provider is unreachable or answered with a non-success status
        """
        api_key = await self.credential_db.get_secret(user_id)

        if conversation_id is not None and not await self.conversation_db.conversation_exists(user_id, conversation_id):
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

        logger.info(f"Relaying chat completion for user {user_id} with model {model} ({len(messages)} messages)")
        request = self.http_client.build_request(
            "POST",
            CHAT_COMPLETIONS_PATH,
            json=self.build_payload(model, messages),
            headers=self.build_headers(api_key),
        )

        try:
            response = await self.http_client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach OpenRouter: {str(e)}")
            raise UpstreamError(502, "Could not reach OpenRouter") from e

        if not response.is_success:
            try:
                body = await response.aread()
            finally:
                await response.aclose()
            detail = _error_detail(body, response.reason_phrase)
            logger.error(f"OpenRouter returned {response.status_code}: {detail}")
            raise UpstreamError(response.status_code, detail)

        return RelayStream(response)


def _error_detail(body: bytes, fallback: str) -> str:
    """Pull the human readable message out of an OpenRouter error body."""
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        text = body.decode("utf-8", errors="replace").strip()
        return text[:500] or fallback

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return fallback
