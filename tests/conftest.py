import asyncio
import json

import pytest
from websockets.exceptions import ConnectionClosedError

from gosbot.shared.config import BotSettings

TOKEN = "test-token-123"


class DummyWebSocket:
    """In-memory stand-in for a websockets ClientConnection."""

    def __init__(self) -> None:
        self.sent_messages: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self._inbound: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosedError(None, None)
        self.sent_messages.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code
        self._inbound.put_nowait(None)

    def feed(self, raw) -> None:
        """Deliver a frame as if the server sent it."""
        self._inbound.put_nowait(raw)

    def hangup(self) -> None:
        """Server closes cleanly."""
        self._inbound.put_nowait(None)

    def drop(self) -> None:
        """Server connection dies abruptly."""
        self._inbound.put_nowait(ConnectionClosedError(None, None))

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbound.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item

    def sent_frames(self) -> list[str]:
        return list(self.sent_messages)

    def last_event(self):
        """Decode the most recent outbound 42 frame into [action, body]."""
        for raw in reversed(self.sent_messages):
            if raw.startswith("42"):
                return json.loads(raw[2:])
        return None


class DummyConnector:
    def __init__(self, websocket: DummyWebSocket) -> None:
        self.websocket = websocket
        self.calls: list[tuple[str, dict]] = []

    async def __call__(self, address, **kwargs):
        self.calls.append((address, kwargs))
        return self.websocket


async def wait_for(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    end = loop.time() + timeout
    while loop.time() < end:
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()


@pytest.fixture
def settings():
    return BotSettings(request_timeout=1.0)


@pytest.fixture
def websocket():
    return DummyWebSocket()


@pytest.fixture
def connector(websocket):
    return DummyConnector(websocket)


@pytest.fixture
def token_calls():
    return []


@pytest.fixture
def session(settings, connector, token_calls):
    from gosbot.client.session import ChatbotSession

    async def fake_acquirer(session_id, platform):
        token_calls.append((session_id, platform))
        return TOKEN

    return ChatbotSession(settings=settings, token_acquirer=fake_acquirer, connector=connector)
