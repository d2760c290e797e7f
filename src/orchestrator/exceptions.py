"""Exceptions raised on the client side of a chat turn."""

from typing import Optional


class ChatClientError(Exception):
    """Raised when the Kronos API answers with a non-success status."""

    def __init__(self, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail or "Request failed"
        super().__init__(f"{status_code}: {self.detail}")


class StreamError(Exception):
    """Raised when a response stream breaks off, reports an error frame, times out or is cancelled."""

    pass
