from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Sequence

from .bridge.base import Bridge, Transport
from .constants import (
    POLL_INTERVAL_DEFAULT,
    TAG_MAIN,
    TAG_PANEL,
    TAG_SETUP,
    TEST_ENV_OVERLAY,
    WAIT_FOR_WINDOW_TIMEOUT_DEFAULT,
)
from .errors import SessionNotReady, WindowNotFound
from .session import Session

log = logging.getLogger("deskrig.registry")

TransportFactory = Callable[[], Transport]
UrlPredicate = Callable[[str], bool]


@dataclass(frozen=True)
class Bounds:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_remote(cls, data: Mapping) -> "Bounds":
        return cls(
            x=int(data.get("x", 0)),
            y=int(data.get("y", 0)),
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
        )

    def contains_point(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


@dataclass(frozen=True)
class WindowSnapshot:
    """Metadata for one live window, captured in a single bridge round trip."""

    id: int
    title: str
    bounds: Bounds
    url: str
    visible: bool = False
    focused: bool = False
    always_on_top: bool = False
    closable: bool = True
    maximizable: bool = True
    minimizable: bool = True
    resizable: bool = True

    @classmethod
    def from_remote(cls, data: Mapping) -> "WindowSnapshot":
        return cls(
            id=int(data["id"]),
            title=str(data.get("title") or ""),
            bounds=Bounds.from_remote(data.get("bounds") or {}),
            url=str(data.get("url") or ""),
            visible=bool(data.get("isVisible", False)),
            focused=bool(data.get("isFocused", False)),
            always_on_top=bool(data.get("isAlwaysOnTop", False)),
            closable=bool(data.get("isClosable", True)),
            maximizable=bool(data.get("isMaximizable", True)),
            minimizable=bool(data.get("isMinimizable", True)),
            resizable=bool(data.get("isResizable", True)),
        )


@dataclass(frozen=True)
class WindowHandle:
    """A classified window.

    Only the remote window id is kept; the registry re-resolves the window on
    every lookup instead of trusting this snapshot indefinitely.
    """

    tag: str
    window_id: int
    snapshot: WindowSnapshot

    @property
    def url(self) -> str:
        return self.snapshot.url


@dataclass(frozen=True)
class TagRule:
    tag: str
    matches: UrlPredicate


def segment_rule(tag: str) -> TagRule:
    """Rule matching any URL that contains ``/<tag>``."""
    segment = f"/{tag}"
    return TagRule(tag, lambda url: segment in url)


def root_rule(tag: str, other_tags: Sequence[str]) -> TagRule:
    """Rule for the default window: a root URL carrying no other tag's segment."""
    segments = tuple(f"/{other}" for other in other_tags)
    return TagRule(tag, lambda url: url.endswith("/") and not any(s in url for s in segments))


def default_rules(tags: Sequence[str] = (TAG_PANEL, TAG_SETUP), root_tag: str = TAG_MAIN) -> tuple[TagRule, ...]:
    """Ordered rule table: tag-specific segments first, the root window last."""
    return tuple(segment_rule(tag) for tag in tags) + (root_rule(root_tag, tags),)


DEFAULT_RULES: tuple[TagRule, ...] = default_rules()


def classify(url: str, rules: Iterable[TagRule] = DEFAULT_RULES) -> Optional[str]:
    """Return the tag of the first rule matching *url*, or ``None``."""
    for rule in rules:
        if rule.matches(url):
            return rule.tag
    return None


def build_launch_env(overrides: Optional[Mapping[str, str]] = None, base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Environment for the target: inherited vars, the test overlay, then *overrides*."""
    env = dict(os.environ if base is None else base)
    env.update(TEST_ENV_OVERLAY)
    if overrides:
        env.update({str(k): str(v) for k, v in overrides.items()})
    return env


class WindowRegistry:
    """Launches the target and tracks its windows by tag.

    The tag -> handle cache belongs to this object alone: it is written on a
    successful classification and dropped on a failed re-match or through
    :meth:`invalidate`.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        *,
        rules: Sequence[TagRule] = DEFAULT_RULES,
    ) -> None:
        self._transport_factory = transport_factory
        self.rules: tuple[TagRule, ...] = tuple(rules)
        self.session: Optional[Session] = None
        self.bridge: Optional[Bridge] = None
        self._handles: dict[str, WindowHandle] = {}

    async def launch(self, target_path: str, env: Optional[Mapping[str, str]] = None) -> Session:
        if self.session is not None and self.session.accepts_calls:
            raise RuntimeError("registry already drives a live session")

        session = Session(self._transport_factory())
        self.session = session
        self.bridge = Bridge(session)
        self._handles.clear()
        await session.open(target_path, build_launch_env(env))
        return session

    def _require_bridge(self) -> Bridge:
        if self.bridge is None:
            raise SessionNotReady("no session launched")
        return self.bridge

    async def get_browser_windows(self) -> list[WindowSnapshot]:
        raw = await self._require_bridge().list_windows()
        return [WindowSnapshot.from_remote(item) for item in raw]

    def classify(self, url: str) -> Optional[str]:
        return classify(url, self.rules)

    def resolve(self, tag: str, windows: Sequence[WindowSnapshot]) -> Optional[WindowHandle]:
        """Match *tag* against an existing snapshot list and update the cache."""
        for snapshot in windows:
            if self.classify(snapshot.url) == tag:
                handle = WindowHandle(tag=tag, window_id=snapshot.id, snapshot=snapshot)
                if tag not in self._handles:
                    log.debug("Classified window %s as %r (%s)", snapshot.id, tag, snapshot.url)
                self._handles[tag] = handle
                return handle

        if self._handles.pop(tag, None) is not None:
            log.debug("Window %r no longer matches; dropped from cache", tag)
        return None

    async def get_window(self, tag: str) -> Optional[WindowHandle]:
        return self.resolve(tag, await self.get_browser_windows())

    async def get_windows(self, tags: Iterable[str]) -> dict[str, Optional[WindowHandle]]:
        windows = await self.get_browser_windows()
        return {tag: self.resolve(tag, windows) for tag in tags}

    async def wait_for_window(
        self,
        tag: str,
        timeout: float = WAIT_FOR_WINDOW_TIMEOUT_DEFAULT,
        poll_interval: float = POLL_INTERVAL_DEFAULT,
    ) -> WindowHandle:
        found = await self.wait_for_windows([tag], timeout=timeout, poll_interval=poll_interval)
        return found[tag]

    async def wait_for_windows(
        self,
        tags: Sequence[str],
        timeout: float = WAIT_FOR_WINDOW_TIMEOUT_DEFAULT,
        poll_interval: float = POLL_INTERVAL_DEFAULT,
    ) -> dict[str, WindowHandle]:
        """Poll until every tag resolves, sharing one window listing per round."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        found: dict[str, WindowHandle] = {}

        while True:
            missing = [tag for tag in tags if tag not in found]
            for tag, handle in (await self.get_windows(missing)).items():
                if handle is not None:
                    found[tag] = handle
            if len(found) == len(set(tags)):
                return found

            remaining = deadline - loop.time()
            if remaining <= 0:
                missing = [tag for tag in tags if tag not in found]
                raise WindowNotFound(missing[0], timeout)
            await asyncio.sleep(min(poll_interval, remaining))

    def handles(self) -> list[WindowHandle]:
        return list(self._handles.values())

    def invalidate(self, tag: Optional[str] = None) -> None:
        if tag is None:
            self._handles.clear()
        else:
            self._handles.pop(tag, None)


__all__ = [
    "Bounds",
    "WindowSnapshot",
    "WindowHandle",
    "TagRule",
    "DEFAULT_RULES",
    "default_rules",
    "segment_rule",
    "root_rule",
    "classify",
    "build_launch_env",
    "WindowRegistry",
]
