"""Editor settings persistence and debug logging."""
import json
import logging
import os
from typing import Optional

from pagecrop.models import EditorSettings, parse_scale

# ── Debug logging ─────────────────────────────────────────────────────────────

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("pagecrop")
_debug_enabled = False


def set_debug(enabled: bool) -> None:
    """Turn debug messages on or off."""
    global _debug_enabled
    _debug_enabled = bool(enabled)
    if _debug_enabled and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if _debug_enabled else logging.WARNING)


def is_debug() -> bool:
    return _debug_enabled


def dbg(msg: str) -> None:
    """Log *msg* at debug level (only shown when debug mode is on)."""
    logger.debug(msg)


# ── Settings file ─────────────────────────────────────────────────────────────

SETTINGS_DIR = os.path.join(os.path.expanduser("~"), ".pagecrop")
SETTINGS_PATH = os.path.join(SETTINGS_DIR, "settings.json")


def load_settings(path: Optional[str] = None) -> EditorSettings:
    """Read settings from *path* (default ``SETTINGS_PATH``).

    A missing file yields the defaults.  Unknown keys are ignored and invalid
    values fall back to their default.
    """
    path = path or SETTINGS_PATH
    defaults = EditorSettings()
    if not os.path.exists(path):
        return defaults
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        dbg(f"Ignoring malformed settings file: {path}")
        return defaults
    zoom = parse_scale(data.get("default_zoom", defaults.default_zoom))
    try:
        min_sel = float(data.get("min_selection_px", defaults.min_selection_px))
    except (TypeError, ValueError):
        min_sel = defaults.min_selection_px
    return EditorSettings(
        debug_mode=bool(data.get("debug_mode", defaults.debug_mode)),
        hi_dpr=bool(data.get("hi_dpr", defaults.hi_dpr)),
        default_zoom=zoom if zoom is not None else defaults.default_zoom,
        min_selection_px=min_sel,
    )


def save_settings(settings: EditorSettings, path: Optional[str] = None) -> None:
    path = path or SETTINGS_PATH
    os.makedirs(os.path.dirname(path), exist_ok=True)
    data = {
        "debug_mode": settings.debug_mode,
        "hi_dpr": settings.hi_dpr,
        "default_zoom": settings.default_zoom,
        "min_selection_px": settings.min_selection_px,
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
