"""Drives chat turns: persist the user message, stream the reply, persist the reply."""

import asyncio
import inspect
from typing import Any, Callable, Dict, List, Optional, Set

import httpx

from orchestrator.client import KronosApiClient
from orchestrator.exceptions import ChatClientError, StreamError
from orchestrator.frames import StreamFrameParser, extract_delta, extract_error
from orchestrator.state import ChatView, ConfirmedMessage, PendingMessage, TurnState
from utils.logging import logger

DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_TURN_TIMEOUT = 300.0

GENERIC_ERROR = "An error occurred while generating the response. Please try again."
SAVE_ERROR = "Failed to save your message. Please try again."


def describe_error(error: Exception) -> str:
    """User-facing text for a failed turn. Only provider errors are passed through."""
    if isinstance(error, ChatClientError):
        if error.status_code == 401:
            return "Your session has expired. Please sign in again."
        if error.status_code == 404:
            return "Conversation not found."
        if error.status_code == 400 and "not configured" in error.detail:
            return "OpenRouter API key not configured. Add your key in Settings."
        if error.status_code == 502:
            return error.detail
    if isinstance(error, StreamError):
        return f"The response was interrupted: {error}. You can resend your message."
    return GENERIC_ERROR


class ConversationOrchestrator:
    """Client-side turn protocol for one user.

    Only one turn per conversation runs at a time; submitting while a turn is in
    flight is ignored. Each turn is bounded by ``turn_timeout`` seconds of streaming
    and can be cancelled with :meth:`cancel`.
    """

    def __init__(
        self,
        client: KronosApiClient,
        model: str = DEFAULT_MODEL,
        on_update: Optional[Callable[[ChatView], Any]] = None,
        turn_timeout: float = DEFAULT_TURN_TIMEOUT,
    ):
        self.client = client
        self.model = model
        self.on_update = on_update
        self.turn_timeout = turn_timeout
        self.views: Dict[str, ChatView] = {}
        self.conversations: List[Dict[str, Any]] = []
        self.active_conversation_id: Optional[str] = None
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._cancel_requested: Set[str] = set()

    async def _notify(self, view: ChatView) -> None:
        if self.on_update is None:
            return
        result = self.on_update(view)
        if inspect.isawaitable(result):
            await result

    # Conversation list

    async def refresh_conversations(self) -> List[Dict[str, Any]]:
        """Reload the conversation list and select the most recent one if none is active."""
        self.conversations = await self.client.list_conversations()
        if self.active_conversation_id is None and self.conversations:
            self.active_conversation_id = self.conversations[0]["id"]
        return self.conversations

    async def create_conversation(self, title: Optional[str] = None) -> Dict[str, Any]:
        conversation = await self.client.create_conversation(title)
        self.conversations.insert(0, conversation)
        self.active_conversation_id = conversation["id"]
        self.views[conversation["id"]] = ChatView(conversation_id=conversation["id"])
        return conversation

    async def rename_conversation(self, conversation_id: str, title: str) -> None:
        await self.client.rename_conversation(conversation_id, title)
        for conversation in self.conversations:
            if conversation["id"] == conversation_id:
                conversation["title"] = title

    async def delete_conversation(self, conversation_id: str) -> None:
        await self.client.delete_conversation(conversation_id)
        self.conversations = [c for c in self.conversations if c["id"] != conversation_id]
        self.views.pop(conversation_id, None)
        if self.active_conversation_id == conversation_id:
            self.active_conversation_id = self.conversations[0]["id"] if self.conversations else None

    async def load(self, conversation_id: str) -> ChatView:
        """Fetch a conversation's persisted messages into a fresh view."""
        messages = await self.client.list_messages(conversation_id)
        view = ChatView(conversation_id=conversation_id, messages=[ConfirmedMessage.from_api(m) for m in messages])
        self.views[conversation_id] = view
        await self._notify(view)
        return view

    # Turns

    def is_busy(self, conversation_id: str) -> bool:
        return conversation_id in self._in_flight

    def cancel(self, conversation_id: str) -> bool:
        """Cancel the turn in flight for a conversation. Returns False if there is none."""
        task = self._in_flight.get(conversation_id)
        if task is None or task.done():
            return False
        self._cancel_requested.add(conversation_id)
        task.cancel()
        return True

    def _consume_cancel_request(self, conversation_id: str) -> bool:
        """True if the pending cancellation came from :meth:`cancel` rather than the caller."""
        if conversation_id in self._cancel_requested:
            self._cancel_requested.discard(conversation_id)
            return True
        return False

    async def submit(self, conversation_id: str, text: str, model: Optional[str] = None) -> Optional[ConfirmedMessage]:
        """Run one turn and return the persisted assistant message.

        Returns None when the input is blank, a turn is already in flight for the
        conversation, or the turn failed (the view's ``error`` says why).
        """
        text = (text or "").strip()
        if not text:
            return None
        if conversation_id in self._in_flight:
            logger.debug(f"Ignoring submit for conversation {conversation_id}: turn in progress")
            return None

        task = asyncio.ensure_future(self._run_turn(conversation_id, text, model or self.model))
        self._in_flight[conversation_id] = task
        try:
            return await task
        finally:
            self._in_flight.pop(conversation_id, None)
            self._cancel_requested.discard(conversation_id)

    async def _run_turn(self, conversation_id: str, text: str, model: str) -> Optional[ConfirmedMessage]:
        view = self.views.get(conversation_id)
        if view is None:
            # Relay calls carry the whole persisted history
            try:
                view = await self.load(conversation_id)
            except (ChatClientError, httpx.HTTPError) as e:
                logger.error(f"Failed to load conversation {conversation_id}: {str(e)}")
                view = self.views.setdefault(conversation_id, ChatView(conversation_id=conversation_id))
                view.fail(describe_error(e))
                await self._notify(view)
                return None
            except asyncio.CancelledError:
                if not self._consume_cancel_request(conversation_id):
                    raise
                return None
        view.error = None

        # Idle -> UserPersisting
        view.state = TurnState.USER_PERSISTING
        pending_user = view.add_pending("user", text)
        await self._notify(view)

        try:
            saved_user = await self.client.append_message(conversation_id, "user", text)
        except (ChatClientError, httpx.HTTPError) as e:
            logger.error(f"Failed to save user message in conversation {conversation_id}: {str(e)}")
            view.fail(describe_error(e) if isinstance(e, ChatClientError) and e.status_code in (401, 404) else SAVE_ERROR)
            await self._notify(view)
            return None
        except asyncio.CancelledError:
            view.fail("Cancelled.")
            if not self._consume_cancel_request(conversation_id):
                raise
            await self._notify(view)
            return None

        view.reconcile(pending_user.temp_id, ConfirmedMessage.from_api(saved_user))

        # UserPersisting -> Streaming
        history = view.history()
        placeholder = view.add_pending("assistant", "", model_used=model)
        view.state = TurnState.STREAMING
        await self._notify(view)

        try:
            content = await asyncio.wait_for(self._stream_reply(view, placeholder, history, model), self.turn_timeout)
        except asyncio.TimeoutError:
            return await self._abort(view, placeholder, StreamError(f"no complete response within {self.turn_timeout:g}s"))
        except asyncio.CancelledError:
            if not self._consume_cancel_request(conversation_id):
                view.discard(placeholder.temp_id)
                view.fail("Cancelled.")
                raise
            return await self._abort(view, placeholder, StreamError("cancelled"))
        except (ChatClientError, StreamError) as e:
            return await self._abort(view, placeholder, e)
        except httpx.HTTPError as e:
            return await self._abort(view, placeholder, StreamError(str(e) or type(e).__name__))

        if not content:
            logger.info(f"Empty response in conversation {conversation_id}, nothing to save")
            view.discard(placeholder.temp_id)
            view.state = TurnState.IDLE
            await self._notify(view)
            return None

        # Streaming -> AssistantPersisting
        view.state = TurnState.ASSISTANT_PERSISTING
        await self._notify(view)
        try:
            saved_assistant = await self.client.append_message(conversation_id, "assistant", content, model_used=model)
        except (ChatClientError, httpx.HTTPError) as e:
            logger.error(f"Failed to save assistant message in conversation {conversation_id}: {str(e)}")
            view.discard(placeholder.temp_id)
            view.fail(SAVE_ERROR)
            await self._notify(view)
            return None
        except asyncio.CancelledError:
            view.discard(placeholder.temp_id)
            view.fail(SAVE_ERROR)
            if not self._consume_cancel_request(conversation_id):
                raise
            await self._notify(view)
            return None

        confirmed = ConfirmedMessage.from_api(saved_assistant)
        view.reconcile(placeholder.temp_id, confirmed)
        view.state = TurnState.IDLE
        await self._notify(view)

        try:
            await self.refresh_conversations()
        except (ChatClientError, httpx.HTTPError) as e:
            logger.warning(f"Failed to refresh conversations: {str(e)}")
        return confirmed

    async def _stream_reply(self, view: ChatView, placeholder: PendingMessage, history: List[Dict[str, str]], model: str) -> str:
        parser = StreamFrameParser()
        accumulated = ""

        async with self.client.stream_chat(history, model, view.conversation_id) as chunks:
            async for chunk in chunks:
                for payload in parser.feed(chunk):
                    accumulated = await self._apply(view, placeholder, payload, accumulated)
            for payload in parser.finish():
                accumulated = await self._apply(view, placeholder, payload, accumulated)

        if parser.skipped:
            logger.debug(f"Skipped {parser.skipped} malformed frames in conversation {view.conversation_id}")
        return accumulated

    async def _apply(self, view: ChatView, placeholder: PendingMessage, payload: Dict[str, Any], accumulated: str) -> str:
        error = extract_error(payload)
        if error:
            raise StreamError(error)

        delta = extract_delta(payload)
        if delta:
            accumulated += delta
            view.replace_content(placeholder.temp_id, accumulated)
            await self._notify(view)
        return accumulated

    async def _abort(self, view: ChatView, placeholder: PendingMessage, error: Exception) -> None:
        logger.error(f"Chat turn failed in conversation {view.conversation_id}: {error!r}")
        view.discard(placeholder.temp_id)
        view.fail(describe_error(error))
        await self._notify(view)
        return None
