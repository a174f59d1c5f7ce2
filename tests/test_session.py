#!/usr/bin/env python3
"""
Unit tests for client/session.py

Tests the connection lifecycle and the heartbeat reflex:
- Heartbeats are echoed and never reach the event handler
- Malformed frames are dropped without closing the connection
- Connection failures end in a terminal closed state
"""

import asyncio
import unittest

from support import FakeConnection, connector_for, failing_connector, settle

from websockets.exceptions import ConnectionClosedError, InvalidHandshake

from client.session import ChatSession, ConnectionState, SessionError, TransportUnavailableError
from common.protocol_definitions import ChatMessageEvent, ErrorEvent, JoinCommand, JoinedEvent, MessageCommand

URL = "ws://localhost:8080/ws"


class TestChatSession(unittest.IsolatedAsyncioTestCase):
    """Session behaviour against an in-memory connection."""

    async def asyncSetUp(self):
        self.connection = FakeConnection()
        self.connector = connector_for(self.connection)
        self.session = ChatSession(connector=self.connector)
        self.events = []
        self.closed_calls = 0
        self.opened_calls = 0

        async def on_event(event):
            self.events.append(event)

        async def on_open():
            self.opened_calls += 1

        async def on_close():
            self.closed_calls += 1

        self.session.set_event_handler(on_event)
        self.session.set_open_handler(on_open)
        self.session.set_close_handler(on_close)

    async def start(self):
        self.task = asyncio.create_task(self.session.open(URL))
        await settle()

    async def finish(self):
        self.connection.drop()
        await asyncio.wait_for(self.task, timeout=1)

    async def test_initial_state(self):
        self.assertIsNone(self.session.state)
        self.assertIsNone(self.session.nickname)
        self.assertEqual(self.session.room, "test")

    async def test_open_connects_and_notifies(self):
        await self.start()
        self.assertEqual(self.connector.urls, [URL])
        self.assertIs(self.session.state, ConnectionState.OPEN)
        self.assertEqual(self.opened_calls, 1)
        # nothing is sent proactively
        self.assertEqual(self.connection.sent, [])
        await self.finish()

    async def test_heartbeat_is_echoed_once_and_not_dispatched(self):
        await self.start()
        self.connection.feed("p", "p", "p")
        await settle()
        self.assertEqual(self.connection.sent, ["p", "p", "p"])
        self.assertEqual(self.events, [])
        await self.finish()

    async def test_binary_heartbeat_is_echoed_as_text(self):
        await self.start()
        self.connection.feed(b"p")
        await settle()
        self.assertEqual(self.connection.sent, ["p"])
        self.assertEqual(self.events, [])
        await self.finish()

    async def test_frames_become_events_in_arrival_order(self):
        await self.start()
        self.connection.feed(
            '{"cmd":"joinOK"}',
            "p",
            '{"cmd":"newchatmsg","data":"hi","user":"alice","timestamp":1000}',
            '{"cmd":"error","data":"boom"}',
        )
        await settle()
        self.assertEqual(self.events, [
            JoinedEvent(),
            ChatMessageEvent(author="alice", text="hi", timestamp=1000.0),
            ErrorEvent(detail="boom"),
        ])
        await self.finish()

    async def test_malformed_frame_is_dropped_and_connection_stays_open(self):
        await self.start()
        with self.assertLogs('chatroom_client', level='WARNING'):
            self.connection.feed("{not json", "[]")
            await settle()
        self.assertEqual(self.events, [])
        self.assertIs(self.session.state, ConnectionState.OPEN)
        self.assertEqual(self.closed_calls, 0)

        # the next good frame still gets through
        self.connection.feed('{"cmd":"joinOK"}')
        await settle()
        self.assertEqual(self.events, [JoinedEvent()])
        await self.finish()

    async def test_unrepresentable_timestamp_is_dropped_and_connection_stays_open(self):
        await self.start()
        with self.assertLogs('chatroom_client', level='WARNING'):
            self.connection.feed(
                '{"cmd":"newchatmsg","data":"a","user":"bob","timestamp":1e12}',
                '{"cmd":"newchatmsg","data":"b","user":"bob","timestamp":NaN}',
                '{"cmd":"newchatmsg","data":"c","user":"bob","timestamp":Infinity}',
            )
            await settle()
        self.assertEqual(self.events, [])
        self.assertIs(self.session.state, ConnectionState.OPEN)
        self.assertFalse(self.task.done())

        self.connection.feed('{"cmd":"newchatmsg","data":"d","user":"bob","timestamp":1000}')
        await settle()
        self.assertEqual(self.events, [ChatMessageEvent(author="bob", text="d", timestamp=1000.0)])
        await self.finish()

    async def test_failing_handler_closes_connection(self):
        async def broken(event):
            raise RuntimeError("handler failed")

        self.session.set_event_handler(broken)
        await self.start()
        self.connection.feed('{"cmd":"joinOK"}')
        with self.assertLogs('chatroom_client', level='ERROR'):
            with self.assertRaises(RuntimeError):
                await asyncio.wait_for(self.task, timeout=1)
        self.assertTrue(self.connection.closed)
        self.assertIs(self.session.state, ConnectionState.CLOSED)
        self.assertEqual(self.closed_calls, 1)

    async def test_send_while_open(self):
        await self.start()
        self.assertTrue(await self.session.send(JoinCommand(nickname="alice")))
        self.assertTrue(await self.session.send(MessageCommand(text="hi")))
        self.assertEqual(self.connection.sent, [
            '{"cmd":"join","data":"{\\"nic\\":\\"alice\\",\\"room\\":\\"test\\"}"}',
            '{"cmd":"newmsg","data":"hi"}',
        ])
        await self.finish()

    async def test_send_before_open_is_refused(self):
        self.assertFalse(await self.session.send(MessageCommand(text="hi")))
        self.assertEqual(self.connection.sent, [])

    async def test_server_close_is_terminal(self):
        await self.start()
        await self.finish()
        self.assertIs(self.session.state, ConnectionState.CLOSED)
        self.assertEqual(self.closed_calls, 1)
        self.assertFalse(await self.session.send(MessageCommand(text="hi")))
        self.assertEqual(self.connection.sent, [])

    async def test_abnormal_close_is_reported_then_closed(self):
        await self.start()
        with self.assertLogs('chatroom_client', level='ERROR'):
            self.connection.drop(ConnectionClosedError(None, None))
            await asyncio.wait_for(self.task, timeout=1)
        self.assertIs(self.session.state, ConnectionState.CLOSED)
        self.assertEqual(self.closed_calls, 1)

    async def test_close_from_client(self):
        await self.start()
        await self.session.close()
        await asyncio.wait_for(self.task, timeout=1)
        self.assertTrue(self.connection.closed)
        self.assertIs(self.session.state, ConnectionState.CLOSED)
        self.assertEqual(self.closed_calls, 1)

        # closing again is harmless
        await self.session.close()
        self.assertEqual(self.closed_calls, 1)

    async def test_cannot_open_twice(self):
        await self.start()
        with self.assertRaises(SessionError):
            await self.session.open(URL)
        await self.finish()

    async def test_nickname_is_set_once(self):
        self.session.set_nickname("alice")
        self.assertEqual(self.session.nickname, "alice")
        with self.assertRaises(SessionError):
            self.session.set_nickname("bob")
        self.assertEqual(self.session.nickname, "alice")


class TestChatSessionFailures(unittest.IsolatedAsyncioTestCase):
    """Construction and connection failures."""

    async def test_unsupported_scheme_is_fatal(self):
        session = ChatSession(connector=failing_connector(AssertionError("must not connect")))
        with self.assertRaises(TransportUnavailableError):
            await session.open("http://localhost:8080/ws")
        self.assertIs(session.state, ConnectionState.CLOSED)

    async def test_refused_connection_closes_session(self):
        closed = []

        async def on_close():
            closed.append(True)

        session = ChatSession(connector=failing_connector(ConnectionRefusedError("refused")))
        session.set_close_handler(on_close)
        with self.assertLogs('chatroom_client', level='ERROR'):
            await session.open(URL)
        self.assertIs(session.state, ConnectionState.CLOSED)
        self.assertEqual(closed, [True])

    async def test_rejected_handshake_closes_session(self):
        session = ChatSession(connector=failing_connector(InvalidHandshake("bad status")))
        with self.assertLogs('chatroom_client', level='ERROR'):
            await session.open(URL)
        self.assertIs(session.state, ConnectionState.CLOSED)

    async def test_timeout_closes_session(self):
        session = ChatSession(connector=failing_connector(asyncio.TimeoutError()))
        with self.assertLogs('chatroom_client', level='ERROR'):
            await session.open(URL)
        self.assertIs(session.state, ConnectionState.CLOSED)


if __name__ == '__main__':
    unittest.main()
