"""HTTP client for the Kronos API."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from orchestrator.exceptions import ChatClientError

USER_HEADER = "X-User-Id"


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        detail = data.get("detail") or data.get("error")
        if isinstance(detail, str):
            return detail
        if detail:
            return str(detail)
    return response.reason_phrase


def _raise_for_status(response: httpx.Response) -> None:
    if not response.is_success:
        raise ChatClientError(response.status_code, _error_detail(response))


class KronosApiClient:
    """Thin async wrapper over the conversation, chat and settings endpoints.

    Pass ``http_client`` to reuse a configured client (tests mount the app through
    ``httpx.ASGITransport``); otherwise one is created for ``base_url``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        user_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        headers = {USER_HEADER: user_id} if user_id else {}
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._client.headers.update(headers)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "KronosApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        response = await self._client.request(method, url, **kwargs)
        _raise_for_status(response)
        return response.json()

    # Conversations

    async def list_conversations(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"q": search} if search else None
        data = await self._request("GET", "/api/conversations", params=params)
        return data["conversations"]

    async def create_conversation(self, title: Optional[str] = None) -> Dict[str, Any]:
        return await self._request("POST", "/api/conversations", json={"title": title})

    async def rename_conversation(self, conversation_id: str, title: str) -> Dict[str, Any]:
        return await self._request("PATCH", f"/api/conversations/{conversation_id}", json={"title": title})

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/api/conversations/{conversation_id}")

    # Messages

    async def list_messages(self, conversation_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"/api/conversations/{conversation_id}/messages")
        return data["messages"]

    async def append_message(self, conversation_id: str, role: str, content: str, model_used: Optional[str] = None) -> Dict[str, Any]:
        body = {"role": role, "content": content, "model_used": model_used}
        return await self._request("POST", f"/api/conversations/{conversation_id}/messages", json=body)

    # Chat

    @asynccontextmanager
    async def stream_chat(
        self,
        messages: List[Dict[str, str]],
        model: str,
        conversation_id: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a relayed chat stream and yield its raw byte chunks."""
        body = {"messages": messages, "model": model, "conversation_id": conversation_id}
        kwargs = {"timeout": timeout} if timeout is not None else {}
        async with self._client.stream("POST", "/api/openrouter/chat", json=body, **kwargs) as response:
            if not response.is_success:
                await response.aread()
                _raise_for_status(response)
            yield response.aiter_bytes()

    async def list_models(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/api/openrouter/models")
        return data["data"]

    # Settings

    async def has_api_key(self) -> bool:
        data = await self._request("GET", "/api/user/settings")
        return bool(data["has_api_key"])

    async def set_api_key(self, api_key: str) -> None:
        await self._request("PATCH", "/api/user/settings", json={"api_key": api_key})
