from __future__ import annotations

import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Mapping, Optional

from .bridge.base import Bridge, Transport
from .bridge.inspector import InspectorTransport
from .config import HarnessConfig
from .errors import ChannelClosed, LaunchFailed, SessionNotReady, WindowNotFound
from .matrix import BehaviorMatrix
from .profile import PlatformProfile, current_profile
from .registry import TransportFactory, WindowRegistry
from .session import Session, SessionState


class Harness:
    """Session lifecycle manager: launch -> ready -> test body -> teardown.

    Use as an async context manager. Teardown runs on every exit path and
    never replaces the exception raised by the test body::

        async with Harness(config) as h:
            panel = await h.registry.wait_for_window("panel")
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        *,
        transport_factory: Optional[TransportFactory] = None,
        env: Optional[Mapping[str, str]] = None,
        profile: Optional[PlatformProfile] = None,
        verbosity: int = logging.INFO,
    ) -> None:
        self.config = config or HarnessConfig()
        self.env = dict(env or {})

        # logging
        self.logger = logging.getLogger("deskrig")
        self.logger.setLevel(verbosity)
        if not self.logger.handlers:
            h = logging.StreamHandler()
            h.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
            self.logger.addHandler(h)
            try:
                log_directory = os.path.expanduser(self.config.log_directory)
                os.makedirs(log_directory, exist_ok=True)
                file_handler = RotatingFileHandler(
                    os.path.join(log_directory, "deskrig.log"), maxBytes=2_000_000, backupCount=3
                )
                file_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
                self.logger.addHandler(file_handler)
            except OSError:  # if fails, keep console logging only
                pass

        factory = transport_factory or self._inspector_factory
        self.registry = WindowRegistry(factory)
        self.matrix = BehaviorMatrix(
            self.registry, profile or current_profile(), dock_visible=self.config.dock_visible
        )

    def _inspector_factory(self) -> Transport:
        return InspectorTransport(self.config.electron_path, launch_timeout=self.config.launch_timeout)

    @property
    def session(self) -> Optional[Session]:
        return self.registry.session

    @property
    def bridge(self) -> Bridge:
        if self.registry.bridge is None:
            raise SessionNotReady("no session launched")
        return self.registry.bridge

    @property
    def state(self) -> SessionState:
        return self.session.state if self.session else SessionState.UNSTARTED

    async def start(self) -> "Harness":
        await self.registry.launch(self.config.target_path, self.env)
        await self.wait_until_ready()
        return self

    async def wait_until_ready(self, timeout: Optional[float] = None) -> None:
        """Poll ``app.isReady()`` until it is true; window existence is not enough."""
        timeout = self.config.ready_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if await self.bridge.is_app_ready():
                assert self.session is not None
                self.session.mark_ready()
                return
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise LaunchFailed(f"application not ready within {timeout:.1f}s")
            await asyncio.sleep(min(self.config.poll_interval, remaining))

    async def send_shortcut(self, shortcut: str) -> None:
        # pynput needs a display server, so it is only imported on use
        from .keyboard import send_global_shortcut

        await send_global_shortcut(shortcut)

    async def capture(self, tag: str, path: Optional[str] = None) -> str:
        from .capture import capture_window

        handle = await self.registry.get_window(tag)
        if handle is None:
            raise WindowNotFound(tag, 0.0)
        return await capture_window(handle, path, directory=self.config.log_directory)

    async def close(self) -> None:
        """Close every window, then terminate the session. Safe to call repeatedly."""
        session = self.session
        if session is None or session.state is SessionState.CLOSED:
            return

        if session.accepts_calls:
            await self._close_windows()
        await session.close()
        self.registry.invalidate()
        self.logger.info("Session closed")

    async def _close_windows(self) -> None:
        bridge = self.registry.bridge
        if bridge is None or bridge.channel_closed:
            return
        try:
            window_ids = [w.id for w in await self.registry.get_browser_windows()]
        except Exception as exc:
            self.logger.debug("Could not list windows for teardown (%s); using cached handles", exc)
            window_ids = [h.window_id for h in self.registry.handles()]

        for window_id in window_ids:
            try:
                await bridge.close_window(window_id)
            except ChannelClosed:
                return
            except Exception as exc:
                self.logger.debug("Ignoring failure closing window %s: %s", window_id, exc)

    async def __aenter__(self) -> "Harness":
        try:
            return await self.start()
        except BaseException:
            await self.close()
            raise

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            await self.close()
        except Exception:
            self.logger.exception("Teardown failed")
        return False


__all__ = ["Harness"]
