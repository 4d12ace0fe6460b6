"""JavaScript sources evaluated inside the target's main process.

Each source is a function expression taking ``(electron, arg)``. ``electron``
is the module object exposing the named singletons (``app``, ``screen``,
``BrowserWindow``, ``systemPreferences``, ``globalShortcut``) and ``arg`` is
the JSON value attached to the :class:`~.base.RemoteCall`.
"""

from __future__ import annotations

LIST_WINDOWS = """({ BrowserWindow }) => BrowserWindow.getAllWindows().map(win => ({
  id: win.id,
  title: win.getTitle(),
  bounds: win.getBounds(),
  isVisible: win.isVisible(),
  isFocused: win.isFocused(),
  isAlwaysOnTop: win.isAlwaysOnTop(),
  isClosable: win.isClosable(),
  isMaximizable: win.isMaximizable(),
  isMinimizable: win.isMinimizable(),
  isResizable: win.isResizable(),
  url: win.webContents.getURL(),
}))"""

CLOSE_WINDOW = """({ BrowserWindow }, id) => {
  const win = BrowserWindow.fromId(id);
  if (!win || win.isDestroyed()) { return false; }
  win.close();
  return true;
}"""

APP_IS_READY = "({ app }) => app.isReady()"

APP_QUIT = "({ app }) => { setImmediate(() => app.quit()); return true; }"

PROCESS_PLATFORM = "() => process.platform"

PRIMARY_WORK_AREA = "({ screen }) => screen.getPrimaryDisplay().workArea"

DISPLAY_WORK_AREAS = "({ screen }) => screen.getAllDisplays().map(d => d.workArea)"

DOCK_IS_VISIBLE = "({ app }) => (app.dock ? app.dock.isVisible() : null)"

ACCESSIBILITY_TRUSTED = "({ systemPreferences }) => systemPreferences.isTrustedAccessibilityClient(false)"

SHORTCUTS_REGISTERED = """({ globalShortcut }, accelerators) => {
  const out = {};
  for (const accel of accelerators) {
    try { out[accel] = globalShortcut.isRegistered(accel); } catch (err) { out[accel] = false; }
  }
  return out;
}"""

# Probes whatever panel traits Electron exposes. Traits without a getter come
# back as null so callers can report them as not observable.
PANEL_TRAITS = """({ BrowserWindow }, id) => {
  const win = BrowserWindow.fromId(id);
  if (!win || win.isDestroyed()) { return null; }
  const read = (name) => (typeof win[name] === 'function' ? win[name]() : null);
  return {
    vibrancy: typeof win.getVibrancy === 'function' ? win.getVibrancy() : null,
    skipTaskbar: read('isSkipTaskbar'),
    visibleOnAllWorkspaces: read('isVisibleOnAllWorkspaces'),
    focusable: read('isFocusable'),
    resizable: read('isResizable'),
    minimizable: read('isMinimizable'),
    fullScreenable: read('isFullScreenable'),
  };
}"""

# Resolves once the app has created at least one BrowserWindow.
FIRST_WINDOW = """({ app, BrowserWindow }) => new Promise(resolve => {
  if (BrowserWindow.getAllWindows().length > 0) { resolve(true); return; }
  app.once('browser-window-created', () => resolve(true));
})"""


def render_expression(function: str, arg_json: str) -> str:
    """Wrap *function* into a self-invoking expression for ``Runtime.evaluate``."""
    return f"(async () => ({function})(require('electron'), {arg_json}))()"


__all__ = [
    "LIST_WINDOWS",
    "CLOSE_WINDOW",
    "APP_IS_READY",
    "APP_QUIT",
    "PROCESS_PLATFORM",
    "PRIMARY_WORK_AREA",
    "DISPLAY_WORK_AREAS",
    "DOCK_IS_VISIBLE",
    "ACCESSIBILITY_TRUSTED",
    "SHORTCUTS_REGISTERED",
    "PANEL_TRAITS",
    "FIRST_WINDOW",
    "render_expression",
]
