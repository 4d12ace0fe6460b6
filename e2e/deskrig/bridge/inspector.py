"""Node inspector transport for Electron main processes.

Electron is started with ``--inspect=0`` so Node picks a free port and prints
``Debugger listening on ws://...`` to stderr. We connect to that URL with
``websockets`` and speak the Chrome DevTools Protocol: every evaluation is a
``Runtime.evaluate`` with ``awaitPromise`` and ``returnByValue`` so the reply
carries the settled JSON value, and ``includeCommandLineAPI`` so the
expression can ``require('electron')``.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import re
from typing import Any, Mapping, Optional, Sequence

import psutil
import websockets

from . import scripts
from ..constants import LAUNCH_TIMEOUT_DEFAULT
from ..errors import ChannelClosed, LaunchFailed, RemoteExecutionError

log = logging.getLogger("deskrig.bridge.inspector")

_INSPECTOR_URL = re.compile(r"Debugger listening on (ws://\S+)")


def _exception_message(details: dict) -> str:
    exception = details.get("exception") or {}
    description = exception.get("description")
    if description:
        return str(description).splitlines()[0]
    value = exception.get("value")
    if value is not None:
        return str(value)
    return str(details.get("text") or "remote evaluation failed")


class InspectorTransport:
    """Transport that drives an Electron main process over the Node inspector."""

    def __init__(
        self,
        electron_path: str = "electron",
        *,
        launch_timeout: float = LAUNCH_TIMEOUT_DEFAULT,
        extra_args: Sequence[str] = (),
    ) -> None:
        self._electron_path = electron_path
        self._launch_timeout = launch_timeout
        self._extra_args = list(extra_args)

        self._process: Optional[asyncio.subprocess.Process] = None
        self._ws = None
        self._reader: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future] = {}
        self._closed = False

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    async def start(self, target_path: str, env: Mapping[str, str]) -> None:
        argv = [self._electron_path, "--inspect=0", *self._extra_args, target_path]
        log.debug("Spawning %s", " ".join(argv))
        try:
            self._process = await asyncio.create_subprocess_exec(
                *argv,
                env=dict(env),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise LaunchFailed(f"could not spawn {self._electron_path}: {exc}") from exc

        url = await self._read_inspector_url()
        log.info("Connecting to inspector at %s", url)
        try:
            self._ws = await websockets.connect(url, max_size=None, ping_interval=None)
        except (OSError, websockets.WebSocketException) as exc:
            await self.kill()
            raise LaunchFailed(f"could not connect to inspector: {exc}") from exc

        self._reader = asyncio.create_task(self._read_loop())
        self._stderr_task = asyncio.create_task(self._drain_stderr())

    async def _read_inspector_url(self) -> str:
        assert self._process is not None and self._process.stderr is not None
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._launch_timeout

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                await self.kill()
                raise LaunchFailed(f"no inspector endpoint within {self._launch_timeout:.1f}s")
            try:
                line = await asyncio.wait_for(self._process.stderr.readline(), remaining)
            except asyncio.TimeoutError:
                continue
            if not line:
                code = await self._process.wait()
                raise LaunchFailed(f"target exited with status {code} before opening the inspector", code)
            text = line.decode("utf-8", "replace").rstrip()
            log.debug("target stderr: %s", text)
            match = _INSPECTOR_URL.search(text)
            if match:
                return match.group(1)

    async def _drain_stderr(self) -> None:
        # Keeps the pipe from filling up and stalling the target.
        assert self._process is not None and self._process.stderr is not None
        while True:
            line = await self._process.stderr.readline()
            if not line:
                return
            log.debug("target stderr: %s", line.decode("utf-8", "replace").rstrip())

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                try:
                    message = json.loads(raw)
                except ValueError:
                    log.debug("Ignoring non-JSON inspector frame")
                    continue
                msg_id = message.get("id")
                if msg_id is None:
                    continue
                fut = self._pending.pop(msg_id, None)
                if fut is not None and not fut.done():
                    fut.set_result(message)
        except websockets.ConnectionClosed:
            pass
        finally:
            self._mark_closed()

    def _mark_closed(self) -> None:
        if not self._closed:
            log.debug("Inspector channel closed")
        self._closed = True
        pending, self._pending = self._pending, {}
        for fut in pending.values():
            if not fut.done():
                fut.set_exception(ChannelClosed("inspector channel closed"))

    async def _send(self, method: str, params: Optional[dict] = None) -> dict:
        if self._ws is None or self._closed:
            raise ChannelClosed("inspector channel is not open")

        msg_id = next(self._ids)
        fut = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = fut
        try:
            await self._ws.send(json.dumps({"id": msg_id, "method": method, "params": params or {}}))
        except websockets.ConnectionClosed as exc:
            self._pending.pop(msg_id, None)
            self._mark_closed()
            raise ChannelClosed("inspector channel closed") from exc
        return await fut

    async def evaluate(self, expression: str) -> Any:
        response = await self._send(
            "Runtime.evaluate",
            {
                "expression": expression,
                "awaitPromise": True,
                "returnByValue": True,
                "includeCommandLineAPI": True,
            },
        )
        if "error" in response:
            raise RemoteExecutionError(str(response["error"].get("message", "protocol error")))

        result = response.get("result") or {}
        details = result.get("exceptionDetails")
        if details:
            raise RemoteExecutionError(_exception_message(details))
        return (result.get("result") or {}).get("value")

    async def wait_for_first_window(self) -> None:
        assert self._process is not None
        first = asyncio.ensure_future(self.evaluate(scripts.render_expression(scripts.FIRST_WINDOW, "null")))
        exited = asyncio.ensure_future(self._process.wait())
        try:
            done, _ = await asyncio.wait(
                {first, exited},
                timeout=self._launch_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (first, exited):
                if not task.done():
                    task.cancel()

        if first in done and first.exception() is None:
            return
        if exited in done:
            raise LaunchFailed(
                f"target exited with status {self.returncode} before creating a window", self.returncode
            )
        if first in done:
            raise LaunchFailed(f"first window signal failed: {first.exception()}") from first.exception()
        raise LaunchFailed(f"no window created within {self._launch_timeout:.1f}s")

    async def terminate(self, timeout: float) -> None:
        if self._process is None or self._process.returncode is not None:
            await self._close_socket()
            return
        try:
            await self.evaluate(scripts.render_expression(scripts.APP_QUIT, "null"))
        except ChannelClosed:
            log.debug("Channel closed while requesting quit")
        await asyncio.wait_for(self._process.wait(), timeout)
        await self._close_socket()

    async def kill(self) -> None:
        if self._process is not None and self._process.returncode is None:
            try:
                parent = psutil.Process(self._process.pid)
                victims = parent.children(recursive=True) + [parent]
            except psutil.NoSuchProcess:
                victims = []
            for proc in victims:
                try:
                    proc.kill()
                except psutil.NoSuchProcess:
                    pass
            await self._process.wait()
        await self._close_socket()

    async def _close_socket(self) -> None:
        if self._ws is not None:
            try:
                await self._ws.close()
            except websockets.WebSocketException:
                pass
            self._ws = None
        for task in (self._reader, self._stderr_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._reader = None
        self._stderr_task = None
        self._mark_closed()


__all__ = ["InspectorTransport"]
