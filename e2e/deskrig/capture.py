from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable, Optional

import mss
import mss.tools

from .registry import Bounds, WindowHandle

log = logging.getLogger("deskrig.capture")


def region_for(bounds: Bounds) -> dict:
    return {"left": bounds.x, "top": bounds.y, "width": bounds.width, "height": bounds.height}


def capture_region(bounds: Bounds, path: str, grabber_factory: Callable[[], mss.base.MSSBase] = mss.mss) -> str:
    """Grab the screen area under *bounds* and write it to *path* as PNG."""
    path = os.path.abspath(os.path.expanduser(path))
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with grabber_factory() as sct:
        shot = sct.grab(region_for(bounds))
        mss.tools.to_png(shot.rgb, shot.size, output=path)
    log.debug("Captured %s to %s", bounds, path)
    return path


async def capture_window(handle: WindowHandle, path: Optional[str] = None, directory: str = "test-results") -> str:
    """Screenshot the on-screen area of a classified window."""
    if path is None:
        path = os.path.join(directory, f"{handle.tag}-{handle.window_id}.png")
    return await asyncio.to_thread(capture_region, handle.snapshot.bounds, path)


__all__ = ["region_for", "capture_region", "capture_window"]
