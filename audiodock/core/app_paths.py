"""
Locates the application root (AppRoot), the single writable tree that owns all
backend state: settings, default roots and logs.
"""

import os
import sys
from pathlib import Path

APP_DIRNAME = "audiodock"
SETTINGS_FILENAME = "settings.json"


def get_app_root() -> Path:
    """
    Returns the AppRoot path without creating it.

    AUDIODOCK_HOME overrides the platform default.
    """
    override = os.getenv("AUDIODOCK_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        base_dir = Path(
            os.getenv("LOCALAPPDATA") or os.getenv("APPDATA") or "~\\AppData\\Local"
        )
    elif sys.platform == "darwin":
        base_dir = Path("~/Library/Application Support")
    else:
        base_dir = Path(os.getenv("XDG_DATA_HOME") or "~/.local/share")
    return base_dir.expanduser() / APP_DIRNAME


def settings_path(app_root: Path) -> Path:
    return app_root / SETTINGS_FILENAME
