"""
Console front end.

Prints view effects to a text stream for the command-line client.
"""

import asyncio
import html
import re
import sys

from client.ui.view import ChatView

_TAG_RE = re.compile(r'<[^>]+>')


def to_plain_text(text: str) -> str:
    """Strip the markup the server adds (links) and unescape entities."""
    return html.unescape(_TAG_RE.sub('', text))


class ConsoleView(ChatView):
    """Writes chat output to stdout (or any stream)."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.ready = asyncio.Event()

    def _write(self, line: str):
        print(line, file=self.stream, flush=True)

    def show_login_view(self):
        self._write("Connected. Enter your nickname:")
        self.ready.set()

    def show_chat_view(self):
        self._write("Joined the chatroom. Type messages and press Enter (Ctrl+C to exit).")

    def append_message(self, message):
        text = to_plain_text(message.text)
        if message.show_author:
            self._write(f"[{message.time_display}] {message.author}: {text}")
        else:
            self._write(f"[{message.time_display}] * {text}")

    def show_error(self, detail: str):
        self._write(f"[ERROR] {detail}")

    def show_connection_lost(self):
        self._write("[ERROR] Websocket lost. Restart the client.")

    def show_fatal_error(self, detail: str):
        self._write(f"[FATAL] Unable to open a websocket connection: {detail}")

    def play_sound(self):
        self.stream.write('\a')
        self.stream.flush()
