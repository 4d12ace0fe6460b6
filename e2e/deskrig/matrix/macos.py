from __future__ import annotations

from typing import Any, Mapping, Optional


def _known_all(*values: Optional[bool]) -> Optional[bool]:
    if any(value is None for value in values):
        return None
    return all(values)


def panel_checks(traits: Optional[Mapping[str, Any]]) -> dict[str, Optional[bool]]:
    """macOS panel expectations; ``None`` means Electron does not expose the trait."""
    traits = traits or {}
    vibrancy = traits.get("vibrancy")
    return {
        "vibrancy": None if vibrancy is None else bool(vibrancy),
        "hidden_from_window_switcher": traits.get("skipTaskbar"),
        "accepts_key_events_without_activation": _known_all(
            traits.get("visibleOnAllWorkspaces"),
            traits.get("focusable"),
        ),
    }


__all__ = ["panel_checks"]
