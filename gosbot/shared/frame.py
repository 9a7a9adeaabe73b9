from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple, Union
import json
import re

from gosbot.shared.errors import MalformedFrameError


class EventCode(IntEnum):
    """Engine.IO / Socket.IO packet codes spoken by the chatbot socket."""

    OPEN = 0            # Server greets the socket; client must authenticate
    CLOSE = 1
    PING = 2            # Keepalive probe from the server
    PONG = 3            # Keepalive acknowledgment, always bare
    CONNECT = 40        # Socket.IO connect, carries {"token": ...}
    DISCONNECT = 41
    EVENT = 42          # Multiplexed application event [name, body]

    @classmethod
    def is_valid(cls, value: int) -> bool:
        """Check if an integer is a known event code."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


# ASCII digits only; real codes are at most two digits
_CODE_RE = re.compile(r'^[0-9]+')
_MAX_CODE_DIGITS = 8


@dataclass(frozen=True)
class Frame:
    """
    One text unit on the socket:

        <decimal code><optional JSON payload>

    e.g. ``0``, ``2``, ``40{"token":"..."}``,
    ``42["hello_broker",{"action":"hello_broker","uuid":"..."}]``.
    """
    code: int
    payload: Any = None
    raw: Optional[str] = None

    @property
    def event_code(self) -> Optional[EventCode]:
        return EventCode(self.code) if EventCode.is_valid(self.code) else None

    @property
    def is_event(self) -> bool:
        """True for a ``42`` frame carrying a ``[name, body]`` pair."""
        return (
            self.code == EventCode.EVENT
            and isinstance(self.payload, list)
            and len(self.payload) == 2
            and isinstance(self.payload[0], str)
            and isinstance(self.payload[1], dict)
        )

    @property
    def event(self) -> Optional[Tuple[str, Dict[str, Any]]]:
        if not self.is_event:
            return None
        return self.payload[0], self.payload[1]

    @property
    def correlation_id(self) -> Optional[str]:
        if not self.is_event:
            return None
        uuid = self.payload[1].get('uuid')
        return uuid if isinstance(uuid, str) else None

    def to_wire(self) -> str:
        return encode_frame(self.code, self.payload)


def decode_frame(raw: Union[str, bytes]) -> Frame:
    """
    Parse an inbound text frame.

    The payload is parsed as JSON only when the text is longer than the
    numeric prefix; an empty remainder means no payload.

    Raises:
        MalformedFrameError: no leading ASCII digits, an over-long code, or
            the remainder is not JSON
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedFrameError(f"Frame is not valid UTF-8: {e}") from e

    match = _CODE_RE.match(raw)
    if match is None:
        raise MalformedFrameError(f"Frame has no numeric event code: {raw[:32]!r}", raw)

    prefix = match.group(0)
    if len(prefix) > _MAX_CODE_DIGITS:
        raise MalformedFrameError(f"Event code is {len(prefix)} digits long", raw)

    payload = None
    if len(raw) > len(prefix):
        try:
            payload = json.loads(raw[len(prefix):])
        except json.JSONDecodeError as e:
            raise MalformedFrameError(f"Invalid JSON payload: {e}", raw) from e

    return Frame(code=int(prefix), payload=payload, raw=raw)


def encode_frame(code: int, payload: Any = None) -> str:
    """Serialize a frame; ``None`` means a bare code with no payload."""
    if payload is None:
        return str(int(code))
    return f"{int(code)}{json.dumps(payload, separators=(',', ':'), ensure_ascii=False)}"


def auth_frame(token: Optional[str]) -> Frame:
    return Frame(code=EventCode.CONNECT, payload={"token": token})


def pong_frame() -> Frame:
    return Frame(code=EventCode.PONG)


def event_frame(action: str, correlation_id: str, data: Any = None) -> Frame:
    """Build a ``42`` request frame ``[action, {action, uuid, data?}]``."""
    body: Dict[str, Any] = {"action": action, "uuid": correlation_id}
    if data is not None:
        body["data"] = data
    return Frame(code=EventCode.EVENT, payload=[action, body])
