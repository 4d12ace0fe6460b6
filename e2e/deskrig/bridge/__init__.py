"""Remote evaluation bridge into the target's main process."""

from .base import Bridge, RemoteCall, Transport
from .inspector import InspectorTransport

__all__ = ["Bridge", "RemoteCall", "Transport", "InspectorTransport"]
