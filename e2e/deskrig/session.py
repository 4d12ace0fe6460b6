from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping

from .bridge.base import Transport
from .constants import TERMINATE_TIMEOUT_DEFAULT
from .errors import LaunchFailed

log = logging.getLogger("deskrig.session")


class SessionState(str, Enum):
    UNSTARTED = "unstarted"
    LAUNCHED = "launched"
    READY = "ready"
    CLOSED = "closed"


class Session:
    """Owns the target process for one test run.

    Moves ``unstarted -> launched -> ready -> closed``. ``close`` may be called
    any number of times; only the first call does work.
    """

    def __init__(self, transport: Transport, *, terminate_timeout: float = TERMINATE_TIMEOUT_DEFAULT) -> None:
        self.transport = transport
        self.state = SessionState.UNSTARTED
        self._terminate_timeout = terminate_timeout

    @property
    def accepts_calls(self) -> bool:
        return self.state in (SessionState.LAUNCHED, SessionState.READY)

    async def open(self, target_path: str, env: Mapping[str, str]) -> None:
        if self.state is not SessionState.UNSTARTED:
            raise RuntimeError(f"session already {self.state.value}")
        try:
            await self.transport.start(target_path, env)
            await self.transport.wait_for_first_window()
        except BaseException as exc:
            # covers cancellation and timeouts too; the process may already exist
            self.state = SessionState.CLOSED
            if not isinstance(exc, LaunchFailed):
                log.warning("Launch interrupted (%s); killing target", type(exc).__name__)
            await self._force_terminate()
            raise
        self.state = SessionState.LAUNCHED
        log.info("Target launched: %s", target_path)

    def mark_ready(self) -> None:
        if self.state is SessionState.LAUNCHED:
            self.state = SessionState.READY
            log.info("Target ready")

    async def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        if self.state is SessionState.UNSTARTED:
            self.state = SessionState.CLOSED
            return

        self.state = SessionState.CLOSED
        try:
            await self.transport.terminate(self._terminate_timeout)
        except Exception as exc:
            log.warning("Graceful termination failed (%s); forcing", exc)
            await self._force_terminate()

    async def _force_terminate(self) -> None:
        try:
            await self.transport.kill()
        except Exception:
            log.exception("Forced termination failed")


__all__ = ["Session", "SessionState"]
