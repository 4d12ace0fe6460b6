"""Error taxonomy for the session coordinator."""

from __future__ import annotations

from typing import Optional


class DeskrigError(Exception):
    """Base class for coordinator errors."""


class LaunchFailed(DeskrigError):
    """The target exited (or timed out) before creating its first window."""

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class WindowNotFound(DeskrigError):
    """No window matched a tag before the wait timeout elapsed."""

    def __init__(self, tag: str, timeout: float) -> None:
        super().__init__(f"Window {tag!r} not found within {timeout:.3f}s")
        self.tag = tag
        self.timeout = timeout


class SessionNotReady(DeskrigError):
    """A bridge call was attempted while the session was not launched or ready."""


class RemoteExecutionError(DeskrigError):
    """The remote call ran but the target raised."""

    def __init__(self, remote_message: str) -> None:
        super().__init__(remote_message)
        self.remote_message = remote_message


class ChannelClosed(DeskrigError):
    """The transport to the target was severed."""


__all__ = [
    "DeskrigError",
    "LaunchFailed",
    "WindowNotFound",
    "SessionNotReady",
    "RemoteExecutionError",
    "ChannelClosed",
]
