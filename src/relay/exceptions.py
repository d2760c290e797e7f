"""Exceptions raised while relaying to the upstream provider."""


class RelayError(Exception):
    """Base exception for relay errors."""

    pass


class UpstreamError(RelayError):
    """Raised when the provider answers with a non-success status.

    ``detail`` is the provider's own error text and is safe to show to the user.
    """

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"OpenRouter API error ({status_code}): {detail}")


class StreamError(RelayError):
    """Raised when the upstream stream fails after it has started."""

    pass
