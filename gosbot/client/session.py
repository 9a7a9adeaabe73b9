from __future__ import annotations
import asyncio
import functools
from contextlib import suppress
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from gosbot.client.events import EventBus, EventKind, Listener
from gosbot.client.messages import ChatbotMessage
from gosbot.client.token import acquire_token, resolve_session_id
from gosbot.shared.config import BotSettings
from gosbot.shared.errors import (
    AcquisitionError,
    MalformedFrameError,
    RequestTimeoutError,
    SessionClosedError,
    TransportError,
)
from gosbot.shared.frame import EventCode, Frame, auth_frame, decode_frame, event_frame, pong_frame
from gosbot.shared.log import get_logger, log_frame
from gosbot.shared.utils import generate_uuid_v4

logger = get_logger(__name__)


TokenAcquirer = Callable[[str, str], Awaitable[str]]
Connector = Callable[..., Awaitable[Any]]
EventReply = Tuple[str, Dict[str, Any]]


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ChatbotSession:
    """
    One conversation with the chatbot over its Socket.IO WebSocket.

    Lifecycle: IDLE -> CONNECTING -> OPEN -> CLOSED. A closed session is
    never reused. The server drives the protocol: it sends ``0`` and expects
    ``40{"token":...}``, it sends ``2`` and expects ``3``. Application
    requests go out as ``42[action, {action, uuid, data}]`` and are matched
    to replies by ``uuid``.

    Example:
        async with ChatbotSession() as session:
            await session.wait_authenticated(timeout=10)
            greeting = await session.hello()
            reply = await session.say("Как получить загранпаспорт?")
    """

    HELLO_ACTION = "hello_broker"
    SAY_ACTION = "search_broker"

    def __init__(
        self,
        session_id: Optional[str] = None,
        platform: Optional[str] = None,
        *,
        settings: Optional[BotSettings] = None,
        token_acquirer: Optional[TokenAcquirer] = None,
        connector: Optional[Connector] = None,
    ) -> None:
        self.settings = settings or BotSettings.load()
        self.session_id = resolve_session_id(session_id)
        self.platform = platform or self.settings.platform
        self.state = SessionState.IDLE
        self.websocket: Optional[Any] = None
        self.token: Optional[str] = None
        self.authenticated = False

        self._token_acquirer = token_acquirer or functools.partial(acquire_token, settings=self.settings)
        self._connector = connector or websockets.connect
        self._events = EventBus()
        self._pending: Dict[str, asyncio.Future] = {}
        self._login_waiters: List[asyncio.Future] = []
        self._recv_task: Optional[asyncio.Task] = None
        self._connect_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<ChatbotSession {self.session_id[:8]} {self.state.value}>"

    async def __aenter__(self) -> "ChatbotSession":
        return await self.connect()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ----------------------------------------
    # Listeners
    # ----------------------------------------

    def on(self, kind: Union[str, EventKind], listener: Listener) -> None:
        """
        Subscribe to ``connect``, ``close``, ``login``, ``ping`` (called with
        the session), ``message`` (code, payload, raw) or ``error``
        (session, exception).
        """
        self._events.subscribe(kind, listener)

    add_listener = on

    def off(self, kind: Union[str, EventKind], listener: Listener) -> bool:
        return self._events.unsubscribe(kind, listener)

    # ----------------------------------------
    # Connection lifecycle
    # ----------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    @property
    def pending_requests(self) -> int:
        return len(self._pending)

    def _log_extra(self, **extra: Any) -> Dict[str, Any]:
        extra["session_id"] = self.session_id
        return extra

    async def connect(self, address: Optional[str] = None) -> "ChatbotSession":
        """
        Acquire a token, then open the socket. Returns once the socket is open.

        Does nothing when a socket is already open. The token is in hand
        before the first frame can arrive, so the auth reply never goes out
        empty.

        Raises:
            SessionClosedError: the session was closed
            AcquisitionError: token exchange failed; no socket is opened
            TransportError: the socket could not be opened
        """
        async with self._connect_lock:
            if self.websocket is not None:
                return self
            if self.state is SessionState.CLOSED:
                raise SessionClosedError("Session is closed; create a new one")

            self.state = SessionState.CONNECTING
            try:
                await self._acquire_token()
                websocket = await self._open_transport(str(address) if address else self.settings.socket_url)
            finally:
                if self.state is SessionState.CONNECTING:
                    self.state = SessionState.IDLE

            self.websocket = websocket
            self.state = SessionState.OPEN
            self._recv_task = asyncio.create_task(self._recv_loop(websocket))

        logger.info("Connected", extra=self._log_extra())
        self._events.publish(EventKind.CONNECT, self)
        return self

    async def _acquire_token(self) -> None:
        try:
            self.token = await self._token_acquirer(self.session_id, self.platform)
        except AcquisitionError:
            raise
        except Exception as e:
            raise AcquisitionError(f"Token acquisition failed: {e}") from e
        if self.state is SessionState.CLOSED:
            raise SessionClosedError("Session closed while acquiring token")

    async def _open_transport(self, address: str) -> Any:
        logger.debug("Opening %s", address, extra=self._log_extra())
        try:
            websocket = await self._connector(
                address,
                open_timeout=self.settings.open_timeout,
                ping_interval=self.settings.ping_interval,
                ping_timeout=self.settings.ping_timeout,
                user_agent_header=self.settings.user_agent,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise TransportError(f"Could not open {address}: {e}") from e

        if self.state is SessionState.CLOSED:
            await websocket.close(code=1000)
            raise SessionClosedError("Session closed while opening transport")
        return websocket

    async def close(self) -> None:
        """Close the socket and fail pending requests. Safe to call repeatedly."""
        if self.state is SessionState.CLOSED:
            return

        websocket, self.websocket = self.websocket, None
        recv_task, self._recv_task = self._recv_task, None
        self._mark_closed("closed by client")

        if websocket is not None:
            try:
                await websocket.close(code=1000)
            except Exception as e:
                logger.error("Error closing connection: %s", e, extra=self._log_extra())

        if recv_task is not None and recv_task is not asyncio.current_task():
            recv_task.cancel()
            with suppress(asyncio.CancelledError):
                await recv_task

    def _mark_closed(self, reason: str) -> None:
        """Single exit path for client close and server hangup."""
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self.websocket = None
        self.authenticated = False

        error = SessionClosedError(f"Session {reason}")
        pending, self._pending = self._pending, {}
        for waiter in list(pending.values()) + self._login_waiters:
            if not waiter.done():
                waiter.set_exception(error)
        self._login_waiters = []

        logger.info("Session %s", reason, extra=self._log_extra())
        self._events.publish(EventKind.CLOSE, self)

    # ----------------------------------------
    # Inbound frames
    # ----------------------------------------

    async def _recv_loop(self, websocket: Any) -> None:
        reason = "closed by server"
        try:
            async for raw in websocket:
                try:
                    await self._process_incoming(raw)
                except SessionClosedError:
                    break
                except Exception as e:
                    logger.error("Failed to process inbound frame: %s", e, extra=self._log_extra())
        except ConnectionClosed as e:
            reason = f"closed by server ({e})"
        finally:
            if self.websocket is websocket:
                self._mark_closed(reason)

    async def _process_incoming(self, raw: Union[str, bytes]) -> None:
        try:
            frame = decode_frame(raw)
        except MalformedFrameError as e:
            logger.warning("Discarding malformed frame: %s", e, extra=self._log_extra())
            self._events.publish(EventKind.ERROR, self, e)
            return

        log_frame(logger, "debug", "Inbound frame", frame=frame, session_id=self.session_id)
        self._events.publish(EventKind.MESSAGE, frame.code, frame.payload, frame.raw)

        code = frame.event_code
        if code is EventCode.OPEN:
            await self._send(auth_frame(self.token))
            self._mark_authenticated()
        elif code is EventCode.PING:
            self._events.publish(EventKind.PING, self)
            await self._send(pong_frame())
        elif code is EventCode.EVENT:
            self._resolve(frame)

    def _mark_authenticated(self) -> None:
        self.authenticated = True
        waiters, self._login_waiters = self._login_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
        logger.debug("Sent auth reply", extra=self._log_extra())
        self._events.publish(EventKind.LOGIN, self)

    def _resolve(self, frame: Frame) -> None:
        correlation_id = frame.correlation_id
        if correlation_id is None:
            return
        waiter = self._pending.pop(correlation_id, None)
        if waiter is None:
            log_frame(logger, "debug", "No waiter for event", frame=frame, session_id=self.session_id)
            return
        if not waiter.done():
            waiter.set_result(frame.event)

    # ----------------------------------------
    # Outbound frames
    # ----------------------------------------

    async def _send(self, frame: Frame) -> None:
        websocket = self.websocket
        if websocket is None or self.state is not SessionState.OPEN:
            raise SessionClosedError("Session is not connected")
        try:
            await websocket.send(frame.to_wire())
        except ConnectionClosed as e:
            raise SessionClosedError(f"Connection closed while sending: {e}") from e
        log_frame(logger, "debug", "Outbound frame", frame=frame, session_id=self.session_id)

    async def wait_authenticated(self, timeout: Optional[float] = None) -> None:
        """Wait until the ``0``/``40`` exchange has happened."""
        if self.authenticated:
            return
        if self.state is SessionState.CLOSED:
            raise SessionClosedError("Session is closed")

        waiter = asyncio.get_running_loop().create_future()
        self._login_waiters.append(waiter)
        try:
            await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError("login", timeout) from None
        finally:
            if waiter in self._login_waiters:
                self._login_waiters.remove(waiter)

    async def request(self, action: str, data: Any = None, *, timeout: Optional[float] = None) -> EventReply:
        """
        Send ``42[action, {action, uuid, data}]`` and wait for the event
        echoing the same ``uuid``.

        Args:
            action: event name the server routes on
            data: optional ``data`` envelope
            timeout: seconds to wait; defaults to ``settings.request_timeout``
                (``None`` there waits forever)

        Returns:
            ``(event_name, body)`` of the matching reply

        Raises:
            RequestTimeoutError: no reply in time; the waiter is removed
            SessionClosedError: not open, or closed while waiting
        """
        if timeout is None:
            timeout = self.settings.request_timeout
        if self.state is not SessionState.OPEN:
            raise SessionClosedError(f"Cannot send {action}: session is {self.state.value}")

        correlation_id = generate_uuid_v4()
        while correlation_id in self._pending:
            correlation_id = generate_uuid_v4()
        waiter = asyncio.get_running_loop().create_future()
        self._pending[correlation_id] = waiter
        try:
            await self._send(event_frame(action, correlation_id, data))
            return await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError:
            logger.warning("No reply to %s after %ss", action, timeout,
                           extra=self._log_extra(correlation_id=correlation_id))
            raise RequestTimeoutError(action, timeout, correlation_id) from None
        finally:
            self._pending.pop(correlation_id, None)

    async def hello(self, *, timeout: Optional[float] = None) -> ChatbotMessage:
        """Greet the bot and return its opening message."""
        event, body = await self.request(self.HELLO_ACTION, timeout=timeout)
        return ChatbotMessage.from_event(event, body)

    async def say(self, text: str, *, timeout: Optional[float] = None) -> ChatbotMessage:
        """Send a free-text question and return the bot's answer."""
        if not isinstance(text, str) or not text.strip():
            raise ValueError("text must be a non-empty string")
        event, body = await self.request(self.SAY_ACTION, {"message": text}, timeout=timeout)
        return ChatbotMessage.from_event(event, body)
