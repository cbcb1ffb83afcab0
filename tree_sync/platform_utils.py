"""
Cross-platform paths for Tree Sync.

Centralises OS detection so the rest of the package asks one place where
the configuration and log files live.

- Windows : ``%APPDATA%\\TreeSync``
- macOS   : ``~/Library/Application Support/TreeSync``
- Linux   : ``$XDG_CONFIG_HOME/TreeSync`` (default ``~/.config``)
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# ---- platform flags ----------------------------------------------------

IS_WINDOWS: bool = sys.platform == "win32"
IS_MACOS: bool = sys.platform == "darwin"
IS_LINUX: bool = sys.platform.startswith("linux")

_APP_DIR_NAME = "TreeSync"

# ---- directories -------------------------------------------------------


def get_config_dir() -> Path:
    """Return the application config directory, created if needed."""
    if IS_WINDOWS:
        base = os.environ.get("APPDATA", str(Path.home()))
    elif IS_MACOS:
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))

    config_dir = Path(base) / _APP_DIR_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_log_path() -> Path:
    """Return the path to the log file (inside the config directory)."""
    return get_config_dir() / "tree_sync.log"
