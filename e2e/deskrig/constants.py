from __future__ import annotations

# Shared defaults used by the bridge, registry and behavior matrix

# Panel window policy
PANEL_WIDTH: int = 260
PANEL_HEIGHT: int = 50
PANEL_MARGIN: int = 10
PANEL_POSITION_TOLERANCE: int = 5

# Polling and timeouts (seconds)
POLL_INTERVAL_DEFAULT: float = 0.1
WAIT_FOR_WINDOW_TIMEOUT_DEFAULT: float = 10.0
LAUNCH_TIMEOUT_DEFAULT: float = 30.0
READY_TIMEOUT_DEFAULT: float = 10.0
TERMINATE_TIMEOUT_DEFAULT: float = 5.0

# Environment overlay handed to the target process
TEST_ENV_OVERLAY: dict[str, str] = {
    "NODE_ENV": "test",
    "ELECTRON_IS_DEV": "0",
    "DISABLE_AUTO_UPDATER": "1",
}

# Window tags
TAG_MAIN: str = "main"
TAG_PANEL: str = "panel"
TAG_SETUP: str = "setup"
