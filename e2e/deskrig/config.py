"""Configuration loading for harness runs."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .constants import (
    LAUNCH_TIMEOUT_DEFAULT,
    POLL_INTERVAL_DEFAULT,
    READY_TIMEOUT_DEFAULT,
    WAIT_FOR_WINDOW_TIMEOUT_DEFAULT,
)


@dataclass(frozen=True)
class HarnessConfig:
    """Runtime configuration for launching and polling the target application."""

    electron_path: str = "electron"
    target_path: str = "out/main/index.js"
    launch_timeout: float = LAUNCH_TIMEOUT_DEFAULT
    ready_timeout: float = READY_TIMEOUT_DEFAULT
    wait_timeout: float = WAIT_FOR_WINDOW_TIMEOUT_DEFAULT
    poll_interval: float = POLL_INTERVAL_DEFAULT
    log_directory: str = "test-results"
    build_command: Optional[str] = None
    dock_visible: Optional[bool] = None


def load_config(env_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> HarnessConfig:
    """Load config from ``.env`` (if present) and the process environment."""

    if environ is None:
        load_dotenv(env_file)
        environ = os.environ

    electron_path = environ.get("DESKRIG_ELECTRON", "").strip() or "electron"
    target_path = environ.get("DESKRIG_TARGET", "").strip() or "out/main/index.js"
    log_directory = environ.get("DESKRIG_LOG_DIR", "").strip() or "test-results"
    build_command = environ.get("DESKRIG_BUILD_COMMAND", "").strip() or None

    return HarnessConfig(
        electron_path=electron_path,
        target_path=target_path,
        launch_timeout=_env_float(environ, "DESKRIG_LAUNCH_TIMEOUT", LAUNCH_TIMEOUT_DEFAULT),
        ready_timeout=_env_float(environ, "DESKRIG_READY_TIMEOUT", READY_TIMEOUT_DEFAULT),
        wait_timeout=_env_float(environ, "DESKRIG_WAIT_TIMEOUT", WAIT_FOR_WINDOW_TIMEOUT_DEFAULT),
        poll_interval=_env_float(environ, "DESKRIG_POLL_INTERVAL", POLL_INTERVAL_DEFAULT),
        log_directory=log_directory,
        build_command=build_command,
        dock_visible=_env_bool(environ, "DESKRIG_DOCK_VISIBLE"),
    )


def _env_bool(env: Mapping[str, str], key: str) -> Optional[bool]:
    raw = (env.get(key) or "").strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return None


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        parsed = float(raw)
    except ValueError:
        return default
    if parsed <= 0:
        return default
    return parsed


__all__ = ["HarnessConfig", "load_config"]
