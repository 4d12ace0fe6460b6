"""Shared verdict types and pure expectation helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, NamedTuple, Optional, Sequence

from ..constants import PANEL_HEIGHT, PANEL_MARGIN, PANEL_WIDTH, TAG_PANEL
from ..profile import PlatformProfile
from ..registry import DEFAULT_RULES, TagRule, WindowSnapshot, classify

if TYPE_CHECKING:  # pragma: no cover
    from ..bridge.base import Bridge


@dataclass(frozen=True)
class Verdict:
    """Structured outcome of one behavior expectation.

    ``supported=False`` marks an expectation that does not apply to the
    profile; ``verified=False`` marks one the bridge cannot observe. Neither is
    a failure.
    """

    name: str
    supported: bool = True
    passed: bool = False
    verified: bool = True
    reason: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    platform_specific: Optional[Mapping[str, Any]] = None

    @classmethod
    def not_applicable(cls, name: str, reason: str) -> "Verdict":
        return cls(name=name, supported=False, passed=False, reason=reason)

    @property
    def status(self) -> str:
        if not self.supported:
            return "not_applicable"
        if not self.verified:
            return "unverified"
        return "passed" if self.passed else "failed"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "status": self.status,
            "supported": self.supported,
            "passed": self.passed,
            "verified": self.verified,
        }
        if self.reason:
            data["reason"] = self.reason
        if self.details:
            data["details"] = dict(self.details)
        if self.platform_specific is not None:
            data["platformSpecific"] = dict(self.platform_specific)
        return data


@dataclass
class MatrixContext:
    """Inputs for one evaluation round: profile, one window snapshot, the bridge.

    The snapshot is taken on the first :meth:`snapshot` call and then shared,
    so checks that only look at the profile never reach the target.
    """

    profile: PlatformProfile
    windows: Optional[Sequence[WindowSnapshot]] = None
    bridge: Optional["Bridge"] = None
    rules: Sequence[TagRule] = DEFAULT_RULES
    fetch_windows: Optional[Callable[[], Awaitable[Sequence[WindowSnapshot]]]] = None
    dock_visible: Optional[bool] = None

    async def snapshot(self) -> Sequence[WindowSnapshot]:
        if self.windows is None:
            self.windows = list(await self.fetch_windows()) if self.fetch_windows else []
        return self.windows

    async def window(self, tag: str) -> Optional[WindowSnapshot]:
        for snapshot in await self.snapshot():
            if classify(snapshot.url, self.rules) == tag:
                return snapshot
        return None

    def require_bridge(self) -> "Bridge":
        if self.bridge is None:
            raise RuntimeError("this expectation needs a live bridge")
        return self.bridge


Evaluator = Callable[[MatrixContext], Awaitable[Verdict]]


class Position(NamedTuple):
    x: int
    y: int


def expected_panel_position(work_area: Mapping[str, Any], margin: int = PANEL_MARGIN) -> Position:
    """Top-right placement the target is expected to use for its panel."""
    x = int(work_area["x"]) + int(work_area["width"]) - PANEL_WIDTH - margin
    y = int(work_area["y"]) + margin
    return Position(x, y)


def panel_geometry_checks(snapshot: WindowSnapshot) -> dict[str, bool]:
    return {
        "width": snapshot.bounds.width == PANEL_WIDTH,
        "height": snapshot.bounds.height == PANEL_HEIGHT,
        "always_on_top": snapshot.always_on_top is True,
        "not_closable": snapshot.closable is False,
        "not_maximizable": snapshot.maximizable is False,
    }


def evaluate_panel_geometry(
    snapshot: Optional[WindowSnapshot],
    platform_specific: Optional[Mapping[str, Any]] = None,
) -> Verdict:
    name = "panel_geometry"
    if snapshot is None:
        return Verdict(name=name, passed=False, reason=f"{TAG_PANEL} window not found")

    checks = panel_geometry_checks(snapshot)
    failing = [key for key, ok in checks.items() if not ok]
    return Verdict(
        name=name,
        passed=not failing,
        reason=f"failed checks: {', '.join(failing)}" if failing else None,
        details={
            "checks": checks,
            "bounds": {
                "x": snapshot.bounds.x,
                "y": snapshot.bounds.y,
                "width": snapshot.bounds.width,
                "height": snapshot.bounds.height,
            },
        },
        platform_specific=platform_specific,
    )


__all__ = [
    "Verdict",
    "MatrixContext",
    "Evaluator",
    "Position",
    "expected_panel_position",
    "panel_geometry_checks",
    "evaluate_panel_geometry",
]
