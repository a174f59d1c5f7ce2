"""
Protocol dispatcher module.

Turns decoded server events into view effects and user intents into
commands sent over the session. Holds the UI-facing state machine:

    LOGGED_OUT --joined--> JOINED
         \\                   |
          +----closed-------> CLOSED (terminal)
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from client.session import ChatSession
from client.ui.view import ChatView
from client.utils.logger import logger
from common.constants import SYSTEM_USER
from common.protocol_definitions import (
    ChatMessageEvent, ErrorEvent, Event, EventKind, JoinCommand, MessageCommand, UnknownEvent
)


class UiState(str, Enum):
    LOGGED_OUT = 'logged_out'
    JOINED = 'joined'
    CLOSED = 'closed'


@dataclass(frozen=True)
class RenderedMessage:
    """A chat message as the view should show it."""
    author: str
    text: str
    sent_at: datetime
    muted: bool
    show_author: bool

    @property
    def time_display(self) -> str:
        return self.sent_at.strftime('%Y-%m-%d %H:%M:%S')


def render_chat_message(event: ChatMessageEvent) -> RenderedMessage:
    """Tag a chat message with its author and local send time."""
    is_system = event.author == SYSTEM_USER
    return RenderedMessage(
        author=event.author,
        text=event.text,
        sent_at=datetime.fromtimestamp(event.timestamp),
        muted=is_system,
        show_author=not is_system
    )


class ChatDispatcher:
    """Drives one view from one session."""

    def __init__(self, session: ChatSession, view: ChatView):
        self.session = session
        self.view = view
        self.state = UiState.LOGGED_OUT
        self._pending_nickname = None

        self.session.set_event_handler(self.handle_event)
        self.session.set_open_handler(self.handle_opened)
        self.session.set_close_handler(self.handle_closed)

    # ========================================================================
    # USER INTENTS
    # ========================================================================

    async def request_join(self, nickname: str) -> bool:
        """Ask the server to join the room. Empty nicknames are ignored."""
        if self.state is not UiState.LOGGED_OUT:
            logger.debug(f"[CHAT] Join ignored in state {self.state.value}")
            return False

        nickname = (nickname or '').strip()
        if not nickname:
            return False

        self._pending_nickname = nickname
        logger.log_join(nickname, self.session.room, False)
        return await self.session.send(JoinCommand(nickname=nickname, room=self.session.room))

    async def request_send(self, text: str) -> bool:
        """Post a message to the room. Empty messages are ignored."""
        if self.state is not UiState.JOINED:
            logger.debug(f"[CHAT] Send ignored in state {self.state.value}")
            return False

        text = (text or '').strip()
        if not text:
            return False

        return await self.session.send(MessageCommand(text=text))

    # ========================================================================
    # SESSION CALLBACKS
    # ========================================================================

    async def handle_opened(self):
        if self.state is UiState.LOGGED_OUT:
            self.view.show_login_view()

    async def handle_event(self, event: Event):
        """React to one inbound event."""
        if self.state is UiState.CLOSED:
            return

        if event.kind is EventKind.JOINED:
            self._on_joined()
        elif event.kind is EventKind.CHAT_MESSAGE:
            self._on_chat_message(event)
        elif event.kind is EventKind.ERROR:
            self._on_error(event)
        elif event.kind is EventKind.UNKNOWN:
            self._on_unknown(event)
        elif event.kind is EventKind.HEARTBEAT:
            # Answered by the session, nothing to show
            pass
        else:
            raise ValueError(f"Unhandled event kind: {event.kind}")

    async def handle_closed(self):
        self.state = UiState.CLOSED
        self.view.show_connection_lost()

    def handle_fatal(self, error: Exception):
        """The transport could not be constructed; nothing else can proceed."""
        logger.log_error("transport", error)
        self.state = UiState.CLOSED
        self.view.show_fatal_error(str(error))

    # ========================================================================
    # EVENT HANDLERS
    # ========================================================================

    def _on_joined(self):
        if self.state is UiState.JOINED:
            logger.debug("[CHAT] Duplicate joinOK ignored")
            return

        self.state = UiState.JOINED
        if self._pending_nickname is not None:
            self.session.set_nickname(self._pending_nickname)
            logger.log_join(self._pending_nickname, self.session.room, True)
        self.view.show_chat_view()

    def _on_chat_message(self, event: ChatMessageEvent):
        self.view.append_message(render_chat_message(event))
        self.view.play_sound()

    def _on_error(self, event: ErrorEvent):
        logger.warning(f"[CHAT] Server error: {event.detail}")
        self.view.show_error(event.detail)

    def _on_unknown(self, event: UnknownEvent):
        logger.info(f"[CHAT] Unexpected message from server: {event.payload}")
