"""Client-side view state for a conversation."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import TypeAdapter

_datetime_adapter = TypeAdapter(Optional[datetime])


class TurnState(str, Enum):
    """Where a conversation is in its current turn."""

    IDLE = "idle"
    USER_PERSISTING = "user_persisting"
    STREAMING = "streaming"
    ASSISTANT_PERSISTING = "assistant_persisting"


@dataclass(frozen=True)
class PendingMessage:
    """Shown optimistically before the server has assigned an id."""

    temp_id: str
    role: str
    content: str
    model_used: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ConfirmedMessage:
    """A message the server has persisted."""

    server_id: str
    role: str
    content: str
    model_used: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ConfirmedMessage":
        return cls(
            server_id=data["id"],
            role=data["role"],
            content=data["content"],
            model_used=data.get("model_used"),
            created_at=_datetime_adapter.validate_python(data.get("created_at")),
        )


ViewMessage = Union[PendingMessage, ConfirmedMessage]


def new_temp_id(role: str) -> str:
    return f"temp-{role}-{uuid4().hex}"


@dataclass
class ChatView:
    """Ordered messages of one conversation as the user sees them."""

    conversation_id: str
    messages: List[ViewMessage] = field(default_factory=list)
    state: TurnState = TurnState.IDLE
    error: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.state != TurnState.IDLE

    def add_pending(self, role: str, content: str, model_used: Optional[str] = None) -> PendingMessage:
        message = PendingMessage(temp_id=new_temp_id(role), role=role, content=content, model_used=model_used)
        self.messages.append(message)
        return message

    def _index_of(self, temp_id: str) -> int:
        for index, message in enumerate(self.messages):
            if isinstance(message, PendingMessage) and message.temp_id == temp_id:
                return index
        raise KeyError(temp_id)

    def replace_content(self, temp_id: str, content: str) -> None:
        """Replace a pending message's content wholesale."""
        index = self._index_of(temp_id)
        self.messages[index] = replace(self.messages[index], content=content)

    def reconcile(self, temp_id: str, confirmed: ConfirmedMessage) -> None:
        """Swap the pending entry created under ``temp_id`` for its persisted counterpart."""
        self.messages[self._index_of(temp_id)] = confirmed

    def discard(self, temp_id: str) -> None:
        try:
            del self.messages[self._index_of(temp_id)]
        except KeyError:
            pass

    def fail(self, error: str) -> None:
        self.error = error
        self.state = TurnState.IDLE

    def history(self) -> List[Dict[str, str]]:
        """Role/content pairs of every persisted message, for the next relay call."""
        return [{"role": m.role, "content": m.content} for m in self.messages if isinstance(m, ConfirmedMessage)]
