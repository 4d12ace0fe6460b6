import asyncio
import json
import unittest
from unittest import mock

from e2e.deskrig.bridge.inspector import InspectorTransport, _exception_message
from e2e.deskrig.errors import ChannelClosed, LaunchFailed, RemoteExecutionError


class _EchoSocket:
    """Answers every Runtime.evaluate with a canned reply built from the request."""

    def __init__(self, transport, reply):
        self.transport = transport
        self.reply = reply
        self.sent = []
        self.closed = False

    async def send(self, raw):
        message = json.loads(raw)
        self.sent.append(message)
        fut = self.transport._pending.pop(message["id"])
        fut.set_result({"id": message["id"], **self.reply})

    async def close(self):
        self.closed = True


class ExceptionMessageTests(unittest.TestCase):
    def test_first_line_of_description(self):
        details = {"exception": {"description": "TypeError: x is not a function\n    at <anonymous>:1:1"}}
        self.assertEqual(_exception_message(details), "TypeError: x is not a function")

    def test_thrown_primitive(self):
        self.assertEqual(_exception_message({"exception": {"value": "boom"}}), "boom")

    def test_text_fallback(self):
        self.assertEqual(_exception_message({"text": "Uncaught"}), "Uncaught")
        self.assertEqual(_exception_message({}), "remote evaluation failed")


class InspectorEvaluateTests(unittest.IsolatedAsyncioTestCase):
    def _transport(self, reply):
        transport = InspectorTransport("electron")
        transport._ws = _EchoSocket(transport, reply)
        return transport

    async def test_returns_settled_value(self):
        transport = self._transport({"result": {"result": {"type": "object", "value": [{"id": 1}]}}})

        value = await transport.evaluate("1 + 1")

        self.assertEqual(value, [{"id": 1}])
        params = transport._ws.sent[0]["params"]
        self.assertEqual(transport._ws.sent[0]["method"], "Runtime.evaluate")
        self.assertTrue(params["awaitPromise"])
        self.assertTrue(params["returnByValue"])
        self.assertTrue(params["includeCommandLineAPI"])

    async def test_undefined_result_is_none(self):
        transport = self._transport({"result": {"result": {"type": "undefined"}}})
        self.assertIsNone(await transport.evaluate("void 0"))

    async def test_exception_details_raise_remote_error(self):
        transport = self._transport(
            {"result": {"result": {}, "exceptionDetails": {"exception": {"description": "Error: nope\n  at x"}}}}
        )

        with self.assertRaises(RemoteExecutionError) as ctx:
            await transport.evaluate("throw new Error('nope')")

        self.assertEqual(ctx.exception.remote_message, "Error: nope")

    async def test_protocol_error_raises_remote_error(self):
        transport = self._transport({"error": {"code": -32000, "message": "Cannot find context"}})

        with self.assertRaises(RemoteExecutionError) as ctx:
            await transport.evaluate("1")

        self.assertEqual(ctx.exception.remote_message, "Cannot find context")

    async def test_request_ids_increase(self):
        transport = self._transport({"result": {"result": {"value": 1}}})

        await transport.evaluate("1")
        await transport.evaluate("2")

        self.assertEqual([m["id"] for m in transport._ws.sent], [1, 2])

    async def test_evaluate_without_socket_is_channel_closed(self):
        transport = InspectorTransport("electron")
        with self.assertRaises(ChannelClosed):
            await transport.evaluate("1")

    async def test_mark_closed_fails_pending_calls(self):
        transport = InspectorTransport("electron")
        fut = asyncio.get_running_loop().create_future()
        transport._pending[9] = fut

        transport._mark_closed()

        with self.assertRaises(ChannelClosed):
            await fut
        with self.assertRaises(ChannelClosed):
            await transport.evaluate("1")


class InspectorLaunchTests(unittest.IsolatedAsyncioTestCase):
    async def test_missing_executable_is_launch_failure(self):
        transport = InspectorTransport("/nonexistent/electron-binary")

        with mock.patch(
            "e2e.deskrig.bridge.inspector.asyncio.create_subprocess_exec",
            side_effect=FileNotFoundError("no such file"),
        ):
            with self.assertRaises(LaunchFailed):
                await transport.start("main.js", {})

    async def test_exit_before_inspector_url_reports_status(self):
        stderr = asyncio.StreamReader()
        stderr.feed_data(b"App threw an error during load\n")
        stderr.feed_eof()
        process = mock.Mock(stderr=stderr, returncode=None, pid=4242)
        process.wait = mock.AsyncMock(return_value=3)

        transport = InspectorTransport("electron", launch_timeout=1.0)
        with mock.patch(
            "e2e.deskrig.bridge.inspector.asyncio.create_subprocess_exec",
            new=mock.AsyncMock(return_value=process),
        ) as spawn:
            with self.assertRaises(LaunchFailed) as ctx:
                await transport.start("main.js", {"NODE_ENV": "test"})

        self.assertEqual(ctx.exception.returncode, 3)
        argv = spawn.call_args.args
        self.assertEqual(argv, ("electron", "--inspect=0", "main.js"))
        self.assertEqual(spawn.call_args.kwargs["env"], {"NODE_ENV": "test"})

    async def test_inspector_url_parsed_from_stderr(self):
        stderr = asyncio.StreamReader()
        stderr.feed_data(b"Debugger listening on ws://127.0.0.1:9229/abc-123\n")
        stderr.feed_data(b"For help, see: https://nodejs.org/en/docs/inspector\n")
        stderr.feed_eof()
        process = mock.Mock(stderr=stderr, returncode=None, pid=4242)

        transport = InspectorTransport("electron")
        transport._process = process

        self.assertEqual(await transport._read_inspector_url(), "ws://127.0.0.1:9229/abc-123")


if __name__ == "__main__":
    unittest.main()
