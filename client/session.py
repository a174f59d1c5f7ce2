"""
Transport session module.

Owns the single WebSocket connection to the chat server, supervises its
lifecycle and answers heartbeats. Everything else is decoded into protocol
events and handed to the registered event handler, one frame at a time and
in arrival order.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional
from urllib.parse import urlsplit

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, InvalidURI, WebSocketException

from client.utils.logger import logger
from common.constants import CONNECT_TIMEOUT, DEFAULT_ROOM, HEARTBEAT_TOKEN
from common.protocol_definitions import Command, Event, ProtocolError, decode_event, encode_command


class SessionError(RuntimeError):
    """Raised when the session is used in a way it does not allow."""


class TransportUnavailableError(SessionError):
    """Raised when no connection can be constructed for the given endpoint."""


class ConnectionState(str, Enum):
    CONNECTING = 'connecting'
    OPEN = 'open'
    CLOSED = 'closed'


EventHandler = Callable[[Event], Awaitable[None]]
LifecycleHandler = Callable[[], Awaitable[None]]


class ChatSession:
    """
    One connection to the chat server.

    ``state`` is ``None`` until :meth:`open` is called, then moves through
    connecting -> open -> closed. Closed is terminal: the session never
    reconnects.
    """

    def __init__(self, room: str = DEFAULT_ROOM, connect_timeout: float = CONNECT_TIMEOUT,
                 connector: Optional[Callable] = None):
        self.room = room
        self.connect_timeout = connect_timeout
        self.url: Optional[str] = None
        self.connection = None
        self.state: Optional[ConnectionState] = None
        self.nickname: Optional[str] = None

        self._connector = connector or self._default_connector
        self._event_handler: Optional[EventHandler] = None
        self._open_handler: Optional[LifecycleHandler] = None
        self._close_handler: Optional[LifecycleHandler] = None

    def _default_connector(self, url: str):
        return websockets.connect(url, open_timeout=self.connect_timeout)

    def set_event_handler(self, handler: EventHandler):
        """Set the handler for decoded inbound events."""
        self._event_handler = handler

    def set_open_handler(self, handler: LifecycleHandler):
        """Set the handler notified once the connection is open."""
        self._open_handler = handler

    def set_close_handler(self, handler: LifecycleHandler):
        """Set the handler notified once the connection is closed."""
        self._close_handler = handler

    def set_nickname(self, nickname: str):
        """Record the nickname the server accepted. Can only be set once."""
        if self.nickname is not None:
            raise SessionError(f"Nickname already set to '{self.nickname}'")
        self.nickname = nickname

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def open(self, url: str):
        """
        Connect to ``url`` and supervise the connection until it closes.

        Raises:
            TransportUnavailableError: if ``url`` is not a WebSocket URL the
                transport can use. No handler is called in that case.
            SessionError: if the session was already opened.
        """
        if self.state is not None:
            raise SessionError("Session already opened")

        if urlsplit(url).scheme not in ('ws', 'wss'):
            self.state = ConnectionState.CLOSED
            raise TransportUnavailableError(f"Unsupported endpoint: {url}")

        self.url = url
        self.state = ConnectionState.CONNECTING
        logger.log_connection(url, self.state.value)

        try:
            self.connection = await self._connector(url)
        except InvalidURI as e:
            self.state = ConnectionState.CLOSED
            raise TransportUnavailableError(str(e)) from e
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            # Reported the way the transport reports a failed attempt
            self.on_error(e)
            await self.on_close()
            return

        await self.on_open()
        await self._listen()

    async def _listen(self):
        try:
            async for raw in self.connection:
                await self.on_message(raw)
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as e:
            self.on_error(e)
        except Exception as e:
            # A failing handler must not leave the socket open behind it
            self.on_error(e)
            await self.connection.close()
            raise
        finally:
            await self.on_close()

    async def close(self):
        """Close the connection on shutdown. The close handler fires from the listener."""
        if self.connection is not None and self.state is not ConnectionState.CLOSED:
            await self.connection.close()

    # ========================================================================
    # TRANSPORT CALLBACKS
    # ========================================================================

    async def on_open(self):
        self.state = ConnectionState.OPEN
        logger.log_connection(self.url, self.state.value)
        if self._open_handler:
            await self._open_handler()

    async def on_message(self, raw):
        """Handle one inbound frame."""
        if raw in (HEARTBEAT_TOKEN, HEARTBEAT_TOKEN.encode()):
            await self._send_raw(HEARTBEAT_TOKEN, trace=False)
            return

        logger.log_frame('->', raw)
        try:
            event = decode_event(raw)
        except ProtocolError as e:
            logger.log_dropped_frame(raw, e)
            return

        if self._event_handler:
            await self._event_handler(event)

    async def on_close(self):
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        logger.log_connection(self.url, self.state.value)
        if self._close_handler:
            await self._close_handler()

    def on_error(self, detail):
        logger.log_error("session", detail)

    # ========================================================================
    # SENDING
    # ========================================================================

    async def send(self, command: Command) -> bool:
        """Serialize ``command`` and send it. Only valid while open."""
        if not self.is_open:
            logger.error(f"[SESSION] Cannot send {command.cmd} while {self.state.value if self.state else 'not started'}")
            return False
        return await self._send_raw(encode_command(command))

    async def _send_raw(self, payload: str, trace: bool = True) -> bool:
        try:
            await self.connection.send(payload)
        except ConnectionClosed as e:
            self.on_error(e)
            return False
        if trace:
            logger.log_frame('<-', payload)
        return True
