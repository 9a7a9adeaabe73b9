from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Dict, List, Union

from gosbot.shared.log import get_logger

logger = get_logger(__name__)


Listener = Callable[..., Any]


class EventKind(str, Enum):
    """Lifecycle notifications a session publishes."""
    CONNECT = "connect"
    CLOSE = "close"
    LOGIN = "login"
    PING = "ping"
    MESSAGE = "message"
    ERROR = "error"

    @classmethod
    def from_string(cls, value: Union[str, "EventKind"]) -> "EventKind":
        """Convert string to EventKind, raise ValueError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown event kind: {value}") from None


class EventBus:
    """
    Ordered publish/subscribe registry.

    Listeners run synchronously in registration order. A listener that
    raises is logged and skipped; the remaining listeners still run.
    """

    def __init__(self) -> None:
        self._listeners: Dict[EventKind, List[Listener]] = {kind: [] for kind in EventKind}

    def subscribe(self, kind: Union[str, EventKind], listener: Listener) -> None:
        if not callable(listener):
            raise TypeError("listener must be callable")
        self._listeners[EventKind.from_string(kind)].append(listener)

    def unsubscribe(self, kind: Union[str, EventKind], listener: Listener) -> bool:
        listeners = self._listeners[EventKind.from_string(kind)]
        try:
            listeners.remove(listener)
            return True
        except ValueError:
            return False

    def publish(self, kind: Union[str, EventKind], *args: Any) -> int:
        """Invoke every listener for ``kind``; returns how many ran cleanly."""
        kind = EventKind.from_string(kind)
        delivered = 0
        # Snapshot so listeners may unsubscribe themselves while running
        for listener in list(self._listeners[kind]):
            try:
                listener(*args)
                delivered += 1
            except Exception:
                logger.exception("Listener %r for %s failed", listener, kind.value)
        return delivered
