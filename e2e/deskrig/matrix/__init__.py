"""Platform behavior matrix: named expectations evaluated against live windows."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from .base import (
    Evaluator,
    MatrixContext,
    Position,
    Verdict,
    evaluate_panel_geometry,
    expected_panel_position,
    panel_geometry_checks,
)
from .evaluators import DEFAULT_EVALUATORS, SHORTCUTS, expected_shortcuts
from ..errors import RemoteExecutionError
from ..profile import PlatformProfile, current_profile
from ..registry import WindowRegistry

log = logging.getLogger("deskrig.matrix")


class BehaviorMatrix:
    """Maps behavior names to evaluators and runs them over shared snapshots."""

    def __init__(
        self,
        registry: WindowRegistry,
        profile: Optional[PlatformProfile] = None,
        evaluators: Optional[Mapping[str, Evaluator]] = None,
        *,
        dock_visible: Optional[bool] = None,
    ) -> None:
        self.registry = registry
        self.profile = profile or current_profile()
        self.evaluators: dict[str, Evaluator] = dict(evaluators or DEFAULT_EVALUATORS)
        self.dock_visible = dock_visible

    def names(self) -> list[str]:
        return list(self.evaluators)

    def context(self) -> MatrixContext:
        return MatrixContext(
            profile=self.profile,
            bridge=self.registry.bridge,
            rules=self.registry.rules,
            fetch_windows=self.registry.get_browser_windows,
            dock_visible=self.dock_visible,
        )

    async def evaluate(self, name: str, ctx: Optional[MatrixContext] = None) -> Verdict:
        try:
            evaluator = self.evaluators[name]
        except KeyError:
            raise KeyError(f"unknown behavior {name!r}; known: {', '.join(self.evaluators)}") from None
        return await evaluator(ctx or self.context())

    async def evaluate_all(self, names: Optional[Iterable[str]] = None) -> dict[str, Verdict]:
        """Run *names* (default: all) against one window snapshot.

        A remote error inside one evaluator becomes a failed verdict; channel
        and session errors propagate.
        """
        selected = list(names) if names is not None else self.names()
        for name in selected:
            if name not in self.evaluators:
                raise KeyError(f"unknown behavior {name!r}")

        ctx = self.context()
        verdicts: dict[str, Verdict] = {}
        for name in selected:
            try:
                verdict = await self.evaluate(name, ctx)
            except RemoteExecutionError as exc:
                verdict = Verdict(name=name, passed=False, reason=f"remote error: {exc.remote_message}")
            log.info("%s: %s", name, verdict.status)
            verdicts[name] = verdict
        return verdicts


__all__ = [
    "BehaviorMatrix",
    "MatrixContext",
    "Verdict",
    "Position",
    "SHORTCUTS",
    "expected_shortcuts",
    "expected_panel_position",
    "panel_geometry_checks",
    "evaluate_panel_geometry",
]
