from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PlatformProfile:
    """Platform classification driving conditional behavior expectations."""

    os_kind: str
    is_mac: bool
    is_windows: bool
    is_linux: bool

    @classmethod
    def from_platform(cls, platform: str) -> "PlatformProfile":
        """Build a profile from a ``sys.platform`` or Node ``process.platform`` value."""
        if platform == "darwin":
            kind = "darwin"
        elif platform.startswith("win"):
            kind = "win32"
        elif platform.startswith("linux"):
            kind = "linux"
        else:
            kind = platform
        return cls(
            os_kind=kind,
            is_mac=kind == "darwin",
            is_windows=kind == "win32",
            is_linux=kind == "linux",
        )


_CURRENT: Optional[PlatformProfile] = None


def current_profile() -> PlatformProfile:
    """Profile of the running interpreter, derived once per process."""
    global _CURRENT
    if _CURRENT is None:
        _CURRENT = PlatformProfile.from_platform(sys.platform)
    return _CURRENT


__all__ = ["PlatformProfile", "current_profile"]
