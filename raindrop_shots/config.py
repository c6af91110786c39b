"""Configuration management for Raindrop Screenshots.

Settings come from environment variables, optionally backed by ``.env``
files (the one written by the setup wizard in the per-user config
directory, and one in the current working directory).  The result is an
immutable :class:`Config` snapshot built once at startup.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from raindrop_shots.exceptions import ConfigError
from raindrop_shots.platform_utils import (
    get_default_screenshot_folder,
    get_default_uploaded_folder,
    get_env_path,
)

logger = logging.getLogger(__name__)

DEFAULT_TAGS: tuple[str, ...] = ("screenshot", "macos")
DEFAULT_STABLE_SECONDS = 1.0

SCREENSHOT_PREFIX = "Screenshot"
_IMAGE_SUFFIX_RE = re.compile(r"\.(png|jpg|jpeg)$", re.IGNORECASE)

# Environment keys, in the order the setup wizard writes them
ENV_ACCESS_TOKEN = "RAINDROP_ACCESS_TOKEN"
ENV_REFRESH_TOKEN = "RAINDROP_REFRESH_TOKEN"
ENV_CLIENT_ID = "RAINDROP_CLIENT_ID"
ENV_CLIENT_SECRET = "RAINDROP_CLIENT_SECRET"
ENV_COLLECTION_ID = "RAINDROP_COLLECTION_ID"
ENV_SCREENSHOT_FOLDER = "SCREENSHOT_FOLDER"
ENV_UPLOADED_FOLDER = "UPLOADED_FOLDER"
ENV_TAGS = "TAGS"
ENV_AUTO_DELETE = "AUTO_DELETE"
ENV_NOTIFICATIONS = "NOTIFICATIONS"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_STABLE_SECONDS = "STABLE_SECONDS"
# Accepted in place of the access token during development
ENV_TEST_TOKEN = "TEST_TOKEN"


def is_screenshot_file(name: str) -> bool:
    """Return True for names like ``Screenshot 2024-01-01 at 10.00.00.png``.

    The ``Screenshot`` prefix is case-sensitive; the extension is not.
    """
    return name.startswith(SCREENSHOT_PREFIX) and bool(_IMAGE_SUFFIX_RE.search(name))


def parse_tags(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated tag list, dropping blanks."""
    if value is None:
        return DEFAULT_TAGS
    return tuple(tag.strip() for tag in value.split(",") if tag.strip())


def _is_true(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


def _is_not_false(value: str | None) -> bool:
    return (value or "").strip().lower() != "false"


@dataclass(frozen=True)
class Config:
    """Immutable runtime configuration."""

    access_token: str
    screenshot_folder: Path
    uploaded_folder: Path
    refresh_token: str | None = None
    collection_id: str | None = None
    tags: tuple[str, ...] = DEFAULT_TAGS
    auto_delete: bool = False
    notifications: bool = True
    client_id: str | None = None
    client_secret: str | None = None
    log_level: str = "INFO"
    stable_seconds: float = DEFAULT_STABLE_SECONDS

    def ensure_uploaded_folder(self) -> None:
        """Create the uploaded-files folder (and parents) if it is missing."""
        try:
            self.uploaded_folder.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(
                f"Cannot create uploaded folder {self.uploaded_folder}: {exc}"
            ) from exc


def _collect_values(
    environ: Mapping[str, str] | None, env_file: str | Path | None
) -> dict[str, Any]:
    """Merge .env files and the environment, later sources winning."""
    values: dict[str, Any] = {}
    candidates = [get_env_path(), Path.cwd() / ".env"]
    if env_file is not None:
        env_path = Path(env_file)
        if not env_path.is_file():
            raise ConfigError(f"Configuration file not found: {env_path}")
        candidates.append(env_path)
    for path in candidates:
        if path.is_file():
            values.update({k: v for k, v in dotenv_values(path).items() if v is not None})
            logger.debug("Read settings from %s", path)
    values.update(os.environ if environ is None else environ)
    return values


def load_config(
    environ: Mapping[str, str] | None = None,
    env_file: str | Path | None = None,
) -> Config:
    """Build the configuration snapshot.

    *environ* replaces ``os.environ`` (tests inject a plain dict); *env_file*
    adds an explicit ``.env`` on top of the default ones.

    Raises ConfigError when no access token is available or the uploaded
    folder cannot be created.
    """
    values = _collect_values(environ, env_file)

    access_token = values.get(ENV_ACCESS_TOKEN) or values.get(ENV_TEST_TOKEN)
    if not access_token:
        raise ConfigError(
            f"{ENV_ACCESS_TOKEN} is required. Run the setup wizard or set the "
            "environment variable."
        )

    stable_raw = values.get(ENV_STABLE_SECONDS)
    try:
        stable_seconds = float(stable_raw) if stable_raw else DEFAULT_STABLE_SECONDS
    except ValueError as exc:
        raise ConfigError(f"{ENV_STABLE_SECONDS} must be a number, got {stable_raw!r}") from exc

    screenshot_folder = values.get(ENV_SCREENSHOT_FOLDER)
    uploaded_folder = values.get(ENV_UPLOADED_FOLDER)

    cfg = Config(
        access_token=access_token,
        refresh_token=values.get(ENV_REFRESH_TOKEN) or None,
        client_id=values.get(ENV_CLIENT_ID) or None,
        client_secret=values.get(ENV_CLIENT_SECRET) or None,
        collection_id=values.get(ENV_COLLECTION_ID) or None,
        screenshot_folder=(
            Path(screenshot_folder).expanduser()
            if screenshot_folder
            else get_default_screenshot_folder()
        ),
        uploaded_folder=(
            Path(uploaded_folder).expanduser()
            if uploaded_folder
            else get_default_uploaded_folder()
        ),
        tags=parse_tags(values.get(ENV_TAGS)),
        auto_delete=_is_true(values.get(ENV_AUTO_DELETE)),
        notifications=_is_not_false(values.get(ENV_NOTIFICATIONS)),
        log_level=(values.get(ENV_LOG_LEVEL) or "INFO").upper(),
        stable_seconds=max(0.0, stable_seconds),
    )
    cfg.ensure_uploaded_folder()
    logger.info(
        "Configuration loaded (folder=%s, uploaded=%s, tags=%s)",
        cfg.screenshot_folder,
        cfg.uploaded_folder,
        ",".join(cfg.tags),
    )
    return cfg


def render_env_file(
    access_token: str,
    refresh_token: str = "",
    collection_id: str = "",
    screenshot_folder: str = "",
    uploaded_folder: str = "",
    tags: str = ",".join(DEFAULT_TAGS),
    auto_delete: bool = False,
    notifications: bool = True,
) -> str:
    """Return the text of a ``.env`` file holding the given settings."""

    def _optional(key: str, value: str) -> str:
        return f"{key}={value}" if value else f"# {key}="

    lines = [
        "# Raindrop.io API configuration",
        f"{ENV_ACCESS_TOKEN}={access_token}",
        _optional(ENV_REFRESH_TOKEN, refresh_token),
        _optional(ENV_COLLECTION_ID, collection_id),
        "",
        "# Screenshot folders",
        _optional(ENV_SCREENSHOT_FOLDER, screenshot_folder),
        _optional(ENV_UPLOADED_FOLDER, uploaded_folder),
        "",
        "# Behaviour",
        f"{ENV_TAGS}={tags}",
        f"{ENV_AUTO_DELETE}={'true' if auto_delete else 'false'}",
        f"{ENV_NOTIFICATIONS}={'true' if notifications else 'false'}",
        "",
    ]
    return "\n".join(lines)
