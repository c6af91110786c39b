"""Interactive first-run setup for Raindrop Screenshots.

Asks for the Raindrop.io token and the folder/tag preferences, writes
them to the ``.env`` file in the per-user config directory, then checks
that the token works.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from raindrop_shots.api import RaindropClient
from raindrop_shots.config import DEFAULT_TAGS, load_config, render_env_file
from raindrop_shots.exceptions import RaindropError
from raindrop_shots.platform_utils import (
    get_default_screenshot_folder,
    get_default_uploaded_folder,
    get_env_path,
)

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]


def _yes(answer: str, default: bool) -> bool:
    answer = answer.strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


class SetupWizard:
    """Collects settings on the console and writes the ``.env`` file."""

    def __init__(self, env_path: Path | None = None, ask: Prompt = input) -> None:
        self.env_path = env_path or get_env_path()
        self._ask = ask
        self.values: dict[str, object] = {}

    def run(self) -> bool:
        """Run the wizard.  Returns True if a configuration was written."""
        print("Raindrop Screenshots setup\n")

        if self.env_path.exists():
            if not _yes(self._ask(f"{self.env_path} already exists. Overwrite? (y/N): "), False):
                print("Setup cancelled.")
                return False

        try:
            self.collect()
        except ValueError as exc:
            print(f"Setup failed: {exc}")
            return False

        self.write()
        self.check()
        print("\nSetup complete!")
        print("Next steps:")
        print("  1. Run: raindrop-screenshots run")
        print("  2. Take a screenshot to test")
        print("  3. Check your Raindrop.io account for the upload")
        return True

    def collect(self) -> None:
        """Prompt for every setting."""
        token = self._ask("Raindrop.io access token: ").strip()
        if not token:
            raise ValueError("Access token is required")
        default_folder = get_default_screenshot_folder()
        default_uploaded = get_default_uploaded_folder()
        default_tags = ",".join(DEFAULT_TAGS)

        self.values = {
            "access_token": token,
            "refresh_token": self._ask("Refresh token (optional): ").strip(),
            "collection_id": self._ask("Collection ID (optional): ").strip(),
            "screenshot_folder": (
                self._ask(f"Screenshot folder ({default_folder}): ").strip()
                or str(default_folder)
            ),
            "uploaded_folder": (
                self._ask(f"Uploaded folder ({default_uploaded}): ").strip()
                or str(default_uploaded)
            ),
            "tags": self._ask(f"Tags ({default_tags}): ").strip() or default_tags,
            "auto_delete": _yes(self._ask("Auto-delete after upload? (y/N): "), False),
            "notifications": _yes(self._ask("Enable notifications? (Y/n): "), True),
        }

    def write(self) -> None:
        """Write the collected settings to the ``.env`` file."""
        self.env_path.parent.mkdir(parents=True, exist_ok=True)
        self.env_path.write_text(render_env_file(**self.values), encoding="utf-8")
        print(f"\nCreated {self.env_path}")

    def check(self) -> None:
        """Create missing folders and test the API connection."""
        print("\nTesting configuration...")
        folder = Path(str(self.values["screenshot_folder"])).expanduser()
        if folder.is_dir():
            print("Screenshot folder exists")
        else:
            print(f"Screenshot folder doesn't exist: {folder}")
            if _yes(self._ask("Create it? (y/N): "), False):
                folder.mkdir(parents=True, exist_ok=True)
                print("Created screenshot folder")

        try:
            cfg = load_config(environ={}, env_file=self.env_path)
            with RaindropClient(cfg) as client:
                print("Testing API connection...")
                profile = client.test_connection()
            print(f"Connected as: {profile.full_name or profile.email}")
        except RaindropError as exc:
            logger.debug("Configuration check failed", exc_info=True)
            print(f"Configuration test failed: {exc}")
            print("You can still proceed, but you may need to fix issues later.")


def main() -> None:
    SetupWizard().run()
