"""Session coordinator for end-to-end testing of multi-window desktop apps.

Quick start::

    from e2e.deskrig import Harness, load_config

    async with Harness(load_config()) as h:
        panel = await h.registry.wait_for_window("panel")
        verdict = await h.matrix.evaluate("panel_geometry")
"""

from .bridge import Bridge, InspectorTransport, RemoteCall, Transport
from .config import HarnessConfig, load_config
from .errors import (
    ChannelClosed,
    DeskrigError,
    LaunchFailed,
    RemoteExecutionError,
    SessionNotReady,
    WindowNotFound,
)
from .harness import Harness
from .matrix import BehaviorMatrix, Verdict, expected_panel_position
from .profile import PlatformProfile, current_profile
from .registry import WindowHandle, WindowRegistry, WindowSnapshot
from .session import Session, SessionState

__version__ = "0.1.0"
__all__ = [
    "Bridge",
    "InspectorTransport",
    "RemoteCall",
    "Transport",
    "HarnessConfig",
    "load_config",
    "ChannelClosed",
    "DeskrigError",
    "LaunchFailed",
    "RemoteExecutionError",
    "SessionNotReady",
    "WindowNotFound",
    "Harness",
    "BehaviorMatrix",
    "Verdict",
    "expected_panel_position",
    "PlatformProfile",
    "current_profile",
    "WindowHandle",
    "WindowRegistry",
    "WindowSnapshot",
    "Session",
    "SessionState",
]
