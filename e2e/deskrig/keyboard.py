"""Host-side shortcut simulation built on ``pynput``.

Global shortcuts are registered with the operating system, so they are
pressed on the test host rather than dispatched through the bridge.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from pynput import keyboard

log = logging.getLogger("deskrig.keyboard")

KeyLike = Union[keyboard.Key, str]

_MODIFIERS: dict[str, keyboard.Key] = {
    "cmd": keyboard.Key.cmd,
    "command": keyboard.Key.cmd,
    "super": keyboard.Key.cmd,
    "ctrl": keyboard.Key.ctrl,
    "control": keyboard.Key.ctrl,
    "shift": keyboard.Key.shift,
    "alt": keyboard.Key.alt,
    "option": keyboard.Key.alt,
}


def parse_shortcut(shortcut: str) -> tuple[list[keyboard.Key], KeyLike]:
    """Split ``"Cmd+Shift+Space"`` into modifier keys and the final key."""
    parts = [p.strip() for p in shortcut.split("+") if p.strip()]
    if not parts:
        raise ValueError(f"empty shortcut: {shortcut!r}")

    modifiers: list[keyboard.Key] = []
    for part in parts[:-1]:
        try:
            modifiers.append(_MODIFIERS[part.lower()])
        except KeyError:
            raise ValueError(f"unknown modifier {part!r} in {shortcut!r}") from None

    last = parts[-1]
    if len(last) == 1:
        return modifiers, last.lower()
    try:
        return modifiers, keyboard.Key[last.lower()]
    except KeyError:
        raise ValueError(f"unknown key {last!r} in {shortcut!r}") from None


def press_shortcut(shortcut: str, controller: Optional[keyboard.Controller] = None) -> None:
    modifiers, key = parse_shortcut(shortcut)
    controller = controller or keyboard.Controller()
    log.debug("Pressing %s", shortcut)
    with controller.pressed(*modifiers):
        controller.tap(key)


async def send_global_shortcut(shortcut: str, controller: Optional[keyboard.Controller] = None) -> None:
    """Press *shortcut* on the host without blocking the event loop."""
    await asyncio.to_thread(press_shortcut, shortcut, controller)


__all__ = ["parse_shortcut", "press_shortcut", "send_global_shortcut"]
