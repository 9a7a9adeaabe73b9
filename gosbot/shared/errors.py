from __future__ import annotations
from typing import Optional


class ChatbotError(Exception):
    """Base class for every error raised by gosbot."""
    pass


class AcquisitionError(ChatbotError):
    """Token request failed or returned an unusable body."""
    pass


class TransportError(ChatbotError):
    """The WebSocket could not be opened."""
    pass


class MalformedFrameError(ChatbotError):
    """Frame has no numeric prefix, invalid JSON, or an unexpected shape."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class SessionClosedError(ChatbotError):
    """Operation on a closed session, or a request cut short by closure."""
    pass


class RequestTimeoutError(ChatbotError):
    """Nothing matching arrived before the deadline."""

    def __init__(self, action: str, timeout: Optional[float], correlation_id: Optional[str] = None) -> None:
        target = f"{action} ({correlation_id})" if correlation_id else action
        super().__init__(f"Timed out waiting for {target} after {timeout}s")
        self.action = action
        self.timeout = timeout
        self.correlation_id = correlation_id
