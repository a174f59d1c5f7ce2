#!/usr/bin/env python3
"""
Chatroom Client - Runtime

Wires configuration, the transport session, the protocol dispatcher and a
view into one client. Used as-is by the command-line mode and driven from a
network thread by the GUI.
"""

import asyncio
import logging
import sys
import threading

from client.dispatcher import ChatDispatcher, UiState
from client.session import ChatSession, TransportUnavailableError
from client.ui.console_view import ConsoleView
from client.utils.config import ClientConfig
from client.utils.logger import logger


class ChatroomClient:
    """Main client class that integrates session, dispatcher and view."""

    def __init__(self, config: ClientConfig = None, view=None, connector=None):
        self.config = config or ClientConfig()
        self.view = view or ConsoleView()
        self.session = ChatSession(
            room=self.config.room,
            connect_timeout=self.config.connect_timeout,
            connector=connector
        )
        self.dispatcher = ChatDispatcher(self.session, self.view)

    async def run(self):
        """Open the session and supervise it until the connection closes."""
        try:
            await self.session.open(self.config.endpoint_url)
        except (TransportUnavailableError, ValueError) as e:
            self.dispatcher.handle_fatal(e)

    async def submit(self, line: str) -> bool:
        """Console input adapter: a line is a nickname until joined, then a message."""
        if self.dispatcher.state is UiState.LOGGED_OUT:
            return await self.dispatcher.request_join(line)
        if self.dispatcher.state is UiState.JOINED:
            return await self.dispatcher.request_send(line)
        return False

    @staticmethod
    def _start_reader(stdin, loop, lines: asyncio.Queue):
        """
        Read ``stdin`` on a daemon thread, handing each line to ``lines``.

        A read blocked on the terminal must not keep the process alive once
        the server has closed the connection, so the thread is never joined.
        """
        def read():
            while True:
                line = stdin.readline()
                try:
                    loop.call_soon_threadsafe(lines.put_nowait, line)
                except RuntimeError:
                    # Loop already closed
                    return
                if not line:
                    return

        threading.Thread(target=read, name="stdin-reader", daemon=True).start()

    async def interactive_mode(self, nickname: str = None, stdin=None):
        """Run client with interactive chat input."""
        stdin = stdin or sys.stdin
        session_task = asyncio.create_task(self.run())

        if nickname and isinstance(self.view, ConsoleView):
            ready_task = asyncio.create_task(self.view.ready.wait())
            await asyncio.wait({session_task, ready_task}, return_when=asyncio.FIRST_COMPLETED)
            ready_task.cancel()
            if not session_task.done():
                await self.submit(nickname)

        loop = asyncio.get_running_loop()
        lines = asyncio.Queue()
        self._start_reader(stdin, loop, lines)
        try:
            while not session_task.done():
                read_task = asyncio.create_task(lines.get())
                done, _ = await asyncio.wait(
                    {session_task, read_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if read_task not in done:
                    read_task.cancel()
                    break
                line = read_task.result()
                if not line:
                    # EOF
                    break
                await self.submit(line)
        except asyncio.CancelledError:
            pass
        finally:
            if not session_task.done():
                if self.session.connection is None:
                    # Still connecting, nothing to close yet
                    session_task.cancel()
                else:
                    await self.session.close()
                try:
                    await session_task
                except asyncio.CancelledError:
                    pass
            logger.info("[INFO] Disconnected from server")


async def main():
    """Main entry point."""
    config = ClientConfig.from_env()
    if config.debug:
        logger.set_level(logging.DEBUG)
    nickname = sys.argv[1] if len(sys.argv) > 1 else None
    client = ChatroomClient(config)

    try:
        await client.interactive_mode(nickname)
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[INFO] Client terminated")
