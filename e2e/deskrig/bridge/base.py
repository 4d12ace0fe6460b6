from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional, Protocol, Sequence

from . import scripts
from ..errors import ChannelClosed, SessionNotReady

if TYPE_CHECKING:  # pragma: no cover
    from ..session import Session

log = logging.getLogger("deskrig.bridge")


@dataclass(frozen=True)
class RemoteCall:
    """Serializable description of a function to run in the target's main process.

    ``function`` is JavaScript source for a function taking ``(electron, arg)``;
    ``arg`` must survive ``json.dumps``.
    """

    function: str
    arg: Any = None

    def to_expression(self) -> str:
        return scripts.render_expression(self.function, json.dumps(self.arg))


class Transport(Protocol):
    """Abstract interface for the channel into the target process."""

    @property
    def returncode(self) -> Optional[int]:
        """Exit status of the target, or ``None`` while it is running."""

    async def start(self, target_path: str, env: Mapping[str, str]) -> None:
        """Spawn the target and open the channel."""

    async def wait_for_first_window(self) -> None:
        """Block until the target signals its first window; raise ``LaunchFailed`` otherwise."""

    async def evaluate(self, expression: str) -> Any:
        """Evaluate *expression* remotely and return its settled JSON value."""

    async def terminate(self, timeout: float) -> None:
        """Ask the target to quit and wait for it to exit."""

    async def kill(self) -> None:
        """Forcefully end the target and everything it spawned."""


class Bridge:
    """Remote evaluation gate bound to one session.

    Calls are refused with ``SessionNotReady`` unless the session is launched
    or ready. Once the transport reports ``ChannelClosed`` the bridge stays
    closed and later calls fail without touching the transport.
    """

    def __init__(self, session: "Session") -> None:
        self._session = session
        self._channel_closed = False

    @property
    def channel_closed(self) -> bool:
        return self._channel_closed

    async def evaluate(self, call: RemoteCall) -> Any:
        if not self._session.accepts_calls:
            raise SessionNotReady(f"session is {self._session.state.value}; bridge calls need launched or ready")
        if self._channel_closed:
            raise ChannelClosed("channel to the target was already closed")

        expression = call.to_expression()
        try:
            return await self._session.transport.evaluate(expression)
        except ChannelClosed:
            self._channel_closed = True
            log.warning("Bridge channel closed; no further calls will be attempted")
            raise

    # Convenience round trips

    async def list_windows(self) -> list[dict]:
        return list(await self.evaluate(RemoteCall(scripts.LIST_WINDOWS)) or [])

    async def close_window(self, window_id: int) -> bool:
        return bool(await self.evaluate(RemoteCall(scripts.CLOSE_WINDOW, window_id)))

    async def is_app_ready(self) -> bool:
        return bool(await self.evaluate(RemoteCall(scripts.APP_IS_READY)))

    async def quit_app(self) -> None:
        await self.evaluate(RemoteCall(scripts.APP_QUIT))

    async def remote_platform(self) -> str:
        return str(await self.evaluate(RemoteCall(scripts.PROCESS_PLATFORM)))

    async def primary_work_area(self) -> dict:
        return dict(await self.evaluate(RemoteCall(scripts.PRIMARY_WORK_AREA)))

    async def display_work_areas(self) -> list[dict]:
        return list(await self.evaluate(RemoteCall(scripts.DISPLAY_WORK_AREAS)) or [])

    async def dock_visible(self) -> Optional[bool]:
        return await self.evaluate(RemoteCall(scripts.DOCK_IS_VISIBLE))

    async def accessibility_trusted(self) -> bool:
        return bool(await self.evaluate(RemoteCall(scripts.ACCESSIBILITY_TRUSTED)))

    async def shortcuts_registered(self, accelerators: Sequence[str]) -> dict[str, bool]:
        result = await self.evaluate(RemoteCall(scripts.SHORTCUTS_REGISTERED, list(accelerators)))
        return {str(k): bool(v) for k, v in (result or {}).items()}

    async def panel_traits(self, window_id: int) -> Optional[dict]:
        return await self.evaluate(RemoteCall(scripts.PANEL_TRAITS, window_id))


__all__ = ["RemoteCall", "Transport", "Bridge"]
