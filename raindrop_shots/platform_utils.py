"""
Cross-platform utilities for Raindrop Screenshots.

Centralises all OS-detection logic so every other module can import
a single canonical set of helpers rather than scattering ``sys.platform``
checks throughout the codebase.

Supported platforms:
  - macOS 12+ (the primary target: screenshots land on the Desktop)
  - Windows 10/11
  - Linux (best-effort; foreground service only)
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# ---- platform flags ----------------------------------------------------

IS_WINDOWS: bool = sys.platform == "win32"
IS_MACOS: bool = sys.platform == "darwin"
IS_LINUX: bool = sys.platform.startswith("linux")

APP_DIR_NAME = "RaindropScreenshots"

# ---- directories -------------------------------------------------------


def get_config_dir() -> Path:
    """
    Return the application config directory, created if needed.

    - Windows : ``%APPDATA%\\RaindropScreenshots``
    - macOS   : ``~/Library/Application Support/RaindropScreenshots``
    - Linux   : ``$XDG_CONFIG_HOME/RaindropScreenshots`` (default ``~/.config``)
    """
    if IS_WINDOWS:
        base = os.environ.get("APPDATA", str(Path.home()))
    elif IS_MACOS:
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))

    config_dir = Path(base) / APP_DIR_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_env_path() -> Path:
    """Return the path of the ``.env`` file written by the setup wizard."""
    return get_config_dir() / ".env"


def get_log_path() -> Path:
    """Return the path to the log file (inside the config directory)."""
    return get_config_dir() / "raindrop_screenshots.log"


def get_default_screenshot_folder() -> Path:
    """Return the folder the OS saves screenshots into by default."""
    return Path.home() / "Desktop"


def get_default_uploaded_folder() -> Path:
    """Return the default destination for files that were uploaded."""
    return Path.home() / "Screenshots" / "Uploaded"


# ---- desktop integration -----------------------------------------------


def open_url(url: str) -> None:
    """Open a URL (or file) with the OS default handler."""
    try:
        if IS_WINDOWS:
            os.startfile(url)  # type: ignore[attr-defined]
        elif IS_MACOS:
            subprocess.Popen(["open", url])
        else:
            subprocess.Popen(["xdg-open", url])
    except Exception:
        logger.warning("Could not open %s", url, exc_info=True)
