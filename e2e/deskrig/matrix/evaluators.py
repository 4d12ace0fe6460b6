from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from . import desktop, macos
from .base import MatrixContext, Verdict, evaluate_panel_geometry, expected_panel_position
from ..constants import PANEL_POSITION_TOLERANCE, TAG_PANEL
from ..errors import RemoteExecutionError
from ..profile import PlatformProfile
from ..registry import Bounds


PanelChecks = Callable[[Optional[Mapping[str, Any]]], dict]

SHORTCUTS: dict[str, tuple[str, ...]] = {
    "mac": ("Cmd+Shift+Space", "Cmd+Shift+M"),
    "default": ("Ctrl+Shift+Space", "Ctrl+Shift+M"),
}


def expected_shortcuts(profile: PlatformProfile) -> tuple[str, ...]:
    return SHORTCUTS["mac" if profile.is_mac else "default"]


def panel_checks_for(profile: PlatformProfile) -> PanelChecks:
    return macos.panel_checks if profile.is_mac else desktop.panel_checks


async def panel_geometry(ctx: MatrixContext) -> Verdict:
    snapshot = await ctx.window(TAG_PANEL)
    platform_specific = None
    if snapshot is not None and ctx.bridge is not None:
        try:
            traits = await ctx.bridge.panel_traits(snapshot.id)
        except RemoteExecutionError as exc:
            platform_specific = {"error": exc.remote_message}
        else:
            platform_specific = panel_checks_for(ctx.profile)(traits)
    return evaluate_panel_geometry(snapshot, platform_specific)


async def panel_position(ctx: MatrixContext) -> Verdict:
    name = "panel_position"
    snapshot = await ctx.window(TAG_PANEL)
    if snapshot is None:
        return Verdict(name=name, passed=False, reason=f"{TAG_PANEL} window not found")

    expected = expected_panel_position(await ctx.require_bridge().primary_work_area())
    dx = abs(snapshot.bounds.x - expected.x)
    dy = abs(snapshot.bounds.y - expected.y)
    passed = dx <= PANEL_POSITION_TOLERANCE and dy <= PANEL_POSITION_TOLERANCE
    return Verdict(
        name=name,
        passed=passed,
        reason=None if passed else f"panel at ({snapshot.bounds.x}, {snapshot.bounds.y}), expected {tuple(expected)}",
        details={
            "expected": expected._asdict(),
            "actual": {"x": snapshot.bounds.x, "y": snapshot.bounds.y},
        },
    )


async def panel_on_display(ctx: MatrixContext) -> Verdict:
    name = "panel_on_display"
    snapshot = await ctx.window(TAG_PANEL)
    if snapshot is None:
        return Verdict(name=name, passed=False, reason=f"{TAG_PANEL} window not found")

    work_areas = await ctx.require_bridge().display_work_areas()
    x, y = snapshot.bounds.x, snapshot.bounds.y
    inside = any(Bounds.from_remote(wa).contains_point(x, y) for wa in work_areas)
    return Verdict(
        name=name,
        passed=inside,
        reason=None if inside else "panel origin lies outside every display work area",
        details={"displays": len(work_areas), "origin": {"x": x, "y": y}},
    )


async def dock_visibility(ctx: MatrixContext) -> Verdict:
    name = "dock_visibility"
    if not ctx.profile.is_mac:
        return Verdict.not_applicable(name, "dock exists only on macOS")

    visible = await ctx.require_bridge().dock_visible()
    if visible is None:
        return Verdict(name=name, passed=False, reason="app.dock is unavailable")

    details = {"visible": bool(visible), "expected": ctx.dock_visible}
    if ctx.dock_visible is None:
        return Verdict(name=name, verified=False, reason="no dock visibility expectation configured", details=details)
    passed = bool(visible) == ctx.dock_visible
    return Verdict(
        name=name,
        passed=passed,
        reason=None if passed else f"dock visible={bool(visible)}, expected {ctx.dock_visible}",
        details=details,
    )


async def tray_visibility(ctx: MatrixContext) -> Verdict:
    name = "tray_visibility"
    if ctx.profile.is_mac:
        return Verdict.not_applicable(name, "tray expectations apply to Windows and Linux")
    return Verdict(
        name=name,
        verified=False,
        reason="Electron exposes no tray enumeration; tray state is not observable through the bridge",
    )


async def accessibility_permission(ctx: MatrixContext) -> Verdict:
    name = "accessibility_permission"
    if not ctx.profile.is_mac:
        return Verdict(name=name, passed=True, details={"required": False, "granted": True})

    granted = await ctx.require_bridge().accessibility_trusted()
    return Verdict(
        name=name,
        passed=granted,
        reason=None if granted else "accessibility permission required but not granted",
        details={"required": True, "granted": granted},
    )


async def shortcut_bindings(ctx: MatrixContext) -> Verdict:
    name = "shortcut_bindings"
    expected = expected_shortcuts(ctx.profile)
    registered = await ctx.require_bridge().shortcuts_registered(expected)
    passed = any(registered.get(accel, False) for accel in expected)
    return Verdict(
        name=name,
        passed=passed,
        reason=None if passed else "none of the expected shortcuts is registered",
        details={"expected": list(expected), "registered": registered},
    )


async def platform_detection(ctx: MatrixContext) -> Verdict:
    name = "platform_detection"
    remote = await ctx.require_bridge().remote_platform()
    passed = PlatformProfile.from_platform(remote) == ctx.profile
    return Verdict(
        name=name,
        passed=passed,
        reason=None if passed else f"target reports {remote!r}, runner is {ctx.profile.os_kind!r}",
        details={"remote": remote, "local": ctx.profile.os_kind},
    )


DEFAULT_EVALUATORS = {
    "panel_geometry": panel_geometry,
    "panel_position": panel_position,
    "panel_on_display": panel_on_display,
    "dock_visibility": dock_visibility,
    "tray_visibility": tray_visibility,
    "accessibility_permission": accessibility_permission,
    "shortcut_bindings": shortcut_bindings,
    "platform_detection": platform_detection,
}


__all__ = [
    "SHORTCUTS",
    "DEFAULT_EVALUATORS",
    "expected_shortcuts",
    "panel_checks_for",
    "panel_geometry",
    "panel_position",
    "panel_on_display",
    "dock_visibility",
    "tray_visibility",
    "accessibility_permission",
    "shortcut_bindings",
    "platform_detection",
]
