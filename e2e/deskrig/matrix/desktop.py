from __future__ import annotations

from typing import Any, Mapping, Optional


def _negated(value: Optional[bool]) -> Optional[bool]:
    return None if value is None else not value


def panel_checks(traits: Optional[Mapping[str, Any]]) -> dict[str, Optional[bool]]:
    """Windows/Linux simulated-panel expectations; ``None`` means not observable."""
    traits = traits or {}
    return {
        "taskbar_hidden": traits.get("skipTaskbar"),
        "not_resizable": _negated(traits.get("resizable")),
        "not_minimizable": _negated(traits.get("minimizable")),
        "not_fullscreenable": _negated(traits.get("fullScreenable")),
    }


__all__ = ["panel_checks"]
