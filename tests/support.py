"""
Test doubles shared by the client tests.

FakeConnection stands in for a websockets client connection: frames are fed
in by the test, everything the client sends is recorded.
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from websockets.exceptions import ConnectionClosedError

from client.ui.view import ChatView

_CLOSED = object()


class FakeConnection:
    """In-memory replacement for a WebSocket connection."""

    def __init__(self, *frames):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.closed = False
        self.feed(*frames)

    def feed(self, *frames):
        for frame in frames:
            self.incoming.put_nowait(frame)

    def drop(self, error: Exception = None):
        """Server side goes away, cleanly or with ``error``."""
        self.incoming.put_nowait(error if error is not None else _CLOSED)

    async def send(self, payload):
        if self.closed:
            raise ConnectionClosedError(None, None)
        self.sent.append(payload)

    async def close(self):
        if not self.closed:
            self.closed = True
            self.incoming.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is _CLOSED:
            self.closed = True
            raise StopAsyncIteration
        if isinstance(item, Exception):
            self.closed = True
            raise item
        return item


def connector_for(connection):
    """Connector returning ``connection``; records the URLs it was asked for."""
    async def connect(url):
        connect.urls.append(url)
        return connection
    connect.urls = []
    return connect


def failing_connector(error: Exception):
    async def connect(url):
        raise error
    return connect


async def settle(rounds: int = 20):
    """Let pending tasks on the loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class RecordingView(ChatView):
    """Records every effect the dispatcher asks for."""

    def __init__(self):
        self.effects = []
        self.messages = []

    def names(self):
        return [effect[0] for effect in self.effects]

    def show_login_view(self):
        self.effects.append(('login',))

    def show_chat_view(self):
        self.effects.append(('chat',))

    def append_message(self, message):
        self.messages.append(message)
        self.effects.append(('append', message))

    def show_error(self, detail: str):
        self.effects.append(('error', detail))

    def show_connection_lost(self):
        self.effects.append(('lost',))

    def show_fatal_error(self, detail: str):
        self.effects.append(('fatal', detail))

    def play_sound(self):
        self.effects.append(('sound',))
