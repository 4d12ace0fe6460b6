import asyncio
import json
import unittest

from e2e.deskrig.bridge import Bridge, RemoteCall, scripts
from e2e.deskrig.errors import ChannelClosed, LaunchFailed, RemoteExecutionError, SessionNotReady
from e2e.deskrig.session import Session, SessionState
from e2e.tests.fakes import FakeTransport, StalledTransport, main_window


class RemoteCallTests(unittest.TestCase):
    def test_expression_wraps_function_with_electron_and_arg(self):
        expression = RemoteCall("(electron, arg) => arg.n + 1", {"n": 41}).to_expression()

        self.assertTrue(expression.startswith("(async () => ("))
        self.assertIn("require('electron')", expression)
        self.assertIn(json.dumps({"n": 41}), expression)

    def test_missing_arg_is_null(self):
        expression = RemoteCall(scripts.APP_IS_READY).to_expression()
        self.assertIn("require('electron'), null)", expression)


class BridgeTests(unittest.IsolatedAsyncioTestCase):
    async def _open(self, fake):
        session = Session(fake)
        await session.open("main.js", {})
        return session, Bridge(session)

    async def test_refused_before_launch(self):
        fake = FakeTransport()
        bridge = Bridge(Session(fake))

        with self.assertRaises(SessionNotReady):
            await bridge.is_app_ready()
        self.assertEqual(fake.calls, [])

    async def test_refused_after_close(self):
        fake = FakeTransport()
        session, bridge = await self._open(fake)
        await session.close()

        with self.assertRaises(SessionNotReady):
            await bridge.list_windows()
        self.assertEqual(fake.calls, [])

    async def test_round_trip_value(self):
        fake = FakeTransport([main_window()])
        _, bridge = await self._open(fake)

        windows = await bridge.list_windows()

        self.assertEqual(windows[0]["id"], 1)
        self.assertEqual(fake.calls, [scripts.LIST_WINDOWS])

    async def test_argument_reaches_remote_function(self):
        fake = FakeTransport()
        fake.shortcuts = {"Ctrl+Shift+M": True}
        _, bridge = await self._open(fake)

        registered = await bridge.shortcuts_registered(["Ctrl+Shift+Space", "Ctrl+Shift+M"])

        self.assertEqual(registered, {"Ctrl+Shift+Space": False, "Ctrl+Shift+M": True})

    async def test_close_window_passes_id(self):
        fake = FakeTransport()
        _, bridge = await self._open(fake)

        self.assertTrue(await bridge.close_window(4))
        self.assertEqual(fake.closed_windows, [4])

    async def test_remote_error_propagates_without_closing_channel(self):
        fake = FakeTransport()
        fake.handlers[scripts.PROCESS_PLATFORM] = lambda arg: RemoteExecutionError("TypeError: nope")
        _, bridge = await self._open(fake)

        with self.assertRaises(RemoteExecutionError) as ctx:
            await bridge.remote_platform()

        self.assertEqual(ctx.exception.remote_message, "TypeError: nope")
        self.assertFalse(bridge.channel_closed)
        self.assertTrue(await bridge.is_app_ready())

    async def test_channel_closed_latches(self):
        fake = FakeTransport()
        _, bridge = await self._open(fake)
        fake.channel_closed = True

        with self.assertRaises(ChannelClosed):
            await bridge.is_app_ready()
        self.assertTrue(bridge.channel_closed)

        fake.channel_closed = False
        with self.assertRaises(ChannelClosed):
            await bridge.is_app_ready()
        self.assertEqual(fake.calls, [])


class SessionTests(unittest.IsolatedAsyncioTestCase):
    async def test_state_transitions(self):
        fake = FakeTransport()
        session = Session(fake)
        self.assertEqual(session.state, SessionState.UNSTARTED)
        self.assertFalse(session.accepts_calls)

        await session.open("main.js", {"A": "1"})
        self.assertEqual(session.state, SessionState.LAUNCHED)
        self.assertTrue(session.accepts_calls)

        session.mark_ready()
        self.assertEqual(session.state, SessionState.READY)

        await session.close()
        self.assertEqual(session.state, SessionState.CLOSED)
        self.assertFalse(session.accepts_calls)

    async def test_close_is_idempotent(self):
        fake = FakeTransport()
        session = Session(fake)
        await session.open("main.js", {})

        await session.close()
        await session.close()

        self.assertEqual(fake.terminate_calls, 1)
        self.assertEqual(fake.kill_calls, 0)

    async def test_close_unstarted_does_not_touch_transport(self):
        fake = FakeTransport()
        session = Session(fake)

        await session.close()

        self.assertEqual(session.state, SessionState.CLOSED)
        self.assertEqual(fake.terminate_calls, 0)

    async def test_failed_terminate_falls_back_to_kill(self):
        fake = FakeTransport(terminate_error=TimeoutError())
        session = Session(fake)
        await session.open("main.js", {})

        with self.assertLogs("deskrig.session", level="WARNING"):
            await session.close()

        self.assertEqual(fake.terminate_calls, 1)
        self.assertEqual(fake.kill_calls, 1)
        self.assertEqual(session.state, SessionState.CLOSED)

    async def test_launch_failure_kills_and_closes(self):
        fake = FakeTransport(launch_error=LaunchFailed("exited early", 1))
        session = Session(fake)

        with self.assertRaises(LaunchFailed) as ctx:
            await session.open("main.js", {})

        self.assertEqual(ctx.exception.returncode, 1)
        self.assertEqual(session.state, SessionState.CLOSED)
        self.assertEqual(fake.kill_calls, 1)

    async def test_cancelled_launch_kills_started_target(self):
        fake = StalledTransport()
        session = Session(fake)
        task = asyncio.ensure_future(session.open("main.js", {}))
        await asyncio.sleep(0.01)

        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertIsNotNone(fake.started_with)
        self.assertEqual(fake.kill_calls, 1)
        self.assertEqual(session.state, SessionState.CLOSED)

        await session.close()
        self.assertEqual(fake.kill_calls, 1)

    async def test_open_twice_refused(self):
        session = Session(FakeTransport())
        await session.open("main.js", {})
        with self.assertRaises(RuntimeError):
            await session.open("main.js", {})


if __name__ == "__main__":
    unittest.main()
