"""
Protocol definitions for the chatroom client.

This module defines the commands the client sends, the events it receives,
and the wire format used to carry them over the WebSocket connection.
Every non-heartbeat frame is a JSON object with a ``cmd`` tag and a ``data``
field whose shape depends on the tag.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union
from urllib.parse import urlsplit

from common.constants import Commands, DEFAULT_ROOM, HEARTBEAT_TOKEN, WEBSOCKET_PATH


class ProtocolError(ValueError):
    """Raised when an inbound frame cannot be decoded."""


# ============================================================================
# COMMANDS (client to server)
# ============================================================================

@dataclass(frozen=True)
class JoinCommand:
    """Request to join a room under a nickname."""
    nickname: str
    room: str = DEFAULT_ROOM

    cmd: ClassVar[str] = Commands.JOIN


@dataclass(frozen=True)
class MessageCommand:
    """Chat message posted to the joined room."""
    text: str

    cmd: ClassVar[str] = Commands.NEW_MESSAGE


Command = Union[JoinCommand, MessageCommand]


# ============================================================================
# EVENTS (server to client)
# ============================================================================

class EventKind(str, Enum):
    HEARTBEAT = 'heartbeat'
    ERROR = 'error'
    JOINED = 'joined'
    CHAT_MESSAGE = 'chatMessage'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class HeartbeatEvent:
    kind: ClassVar[EventKind] = EventKind.HEARTBEAT


@dataclass(frozen=True)
class ErrorEvent:
    """Application error reported by the server."""
    detail: str

    kind: ClassVar[EventKind] = EventKind.ERROR


@dataclass(frozen=True)
class JoinedEvent:
    kind: ClassVar[EventKind] = EventKind.JOINED


@dataclass(frozen=True)
class ChatMessageEvent:
    """Message posted to the room by a participant."""
    author: str
    text: str
    timestamp: float  # seconds since epoch
    message_id: Optional[str] = None

    kind: ClassVar[EventKind] = EventKind.CHAT_MESSAGE


@dataclass(frozen=True)
class UnknownEvent:
    """Well-formed frame carrying a command this client does not know."""
    cmd: Optional[str]
    payload: Dict[str, Any] = field(default_factory=dict)

    kind: ClassVar[EventKind] = EventKind.UNKNOWN


Event = Union[HeartbeatEvent, ErrorEvent, JoinedEvent, ChatMessageEvent, UnknownEvent]


# ============================================================================
# ENCODING
# ============================================================================

def _dumps(value: Dict[str, Any]) -> str:
    # Compact, unescaped output, the same bytes a browser's JSON.stringify produces
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False)


def create_join_message(nickname: str, room: str = DEFAULT_ROOM) -> Dict[str, Any]:
    """Create a join message. ``data`` is itself an encoded object."""
    return {
        "cmd": Commands.JOIN,
        "data": _dumps({"nic": nickname, "room": room})
    }


def create_chat_message(text: str) -> Dict[str, Any]:
    """Create a chat message."""
    return {
        "cmd": Commands.NEW_MESSAGE,
        "data": text
    }


def encode_command(command: Command) -> str:
    """Serialize a command into a text frame."""
    if isinstance(command, JoinCommand):
        return _dumps(create_join_message(command.nickname, command.room))
    if isinstance(command, MessageCommand):
        return _dumps(create_chat_message(command.text))
    raise TypeError(f"Unsupported command: {command!r}")


# ============================================================================
# DECODING
# ============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_timestamp(timestamp: float):
    """Reject epoch values a local datetime cannot represent (NaN, infinities, milliseconds)."""
    if not math.isfinite(timestamp):
        raise ProtocolError(f"timestamp is not finite: {timestamp}")
    try:
        datetime.fromtimestamp(timestamp)
    except (ValueError, OverflowError, OSError) as e:
        raise ProtocolError(f"timestamp out of range: {timestamp}") from e


def decode_event(raw: Union[str, bytes]) -> Event:
    """
    Decode a raw frame into an Event.

    Raises:
        ProtocolError: if the frame is not valid JSON, is not an object, or
            is missing fields its command requires.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ProtocolError(f"frame is not valid UTF-8: {e}") from e

    if raw == HEARTBEAT_TOKEN:
        return HeartbeatEvent()

    try:
        message = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"frame is not valid JSON: {e}") from e

    if not isinstance(message, dict):
        raise ProtocolError(f"frame is not an object: {type(message).__name__}")

    cmd = message.get('cmd')
    if cmd is not None and not isinstance(cmd, str):
        raise ProtocolError(f"cmd must be a string, got {type(cmd).__name__}")

    data = message.get('data', '')
    if data is None:
        data = ''

    if cmd == Commands.ERROR:
        return ErrorEvent(detail=str(data))

    if cmd == Commands.JOIN_OK:
        return JoinedEvent()

    if cmd == Commands.NEW_CHAT_MESSAGE:
        user = message.get('user')
        timestamp = message.get('timestamp')
        if not isinstance(user, str):
            raise ProtocolError("newchatmsg without a user")
        if not _is_number(timestamp):
            raise ProtocolError("newchatmsg without a numeric timestamp")
        _check_timestamp(timestamp)
        message_id = message.get('id')
        return ChatMessageEvent(
            author=user,
            text=str(data),
            timestamp=float(timestamp),
            message_id=message_id if isinstance(message_id, str) else None
        )

    return UnknownEvent(cmd=cmd, payload=message)


# ============================================================================
# ENDPOINT
# ============================================================================

def build_endpoint_url(origin: str) -> str:
    """
    Derive the WebSocket endpoint from the origin the client was loaded from.

    An ``http`` origin gets the insecure ``ws`` scheme, every other origin
    gets ``wss``. The endpoint is always ``/ws`` on the origin's host.
    """
    parts = urlsplit(origin)
    if not parts.netloc:
        raise ValueError(f"Origin has no host: {origin!r}")
    scheme = 'ws' if parts.scheme == 'http' else 'wss'
    return f"{scheme}://{parts.netloc}{WEBSOCKET_PATH}"
