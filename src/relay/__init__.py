"""Server-side relay to the OpenRouter chat-completion API."""

from relay.catalog import ModelCatalog, ModelInfo
from relay.chat_relay import ChatRelay, RelayStream
from relay.exceptions import RelayError, StreamError, UpstreamError

__all__ = ["ChatRelay", "ModelCatalog", "ModelInfo", "RelayError", "RelayStream", "StreamError", "UpstreamError"]
