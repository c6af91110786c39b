"""Pytest fixtures for raindrop_shots tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from raindrop_shots.api import RaindropClient
from raindrop_shots.config import Config

# Smallest valid PNG (1x1 transparent pixel)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000b4944415478da63000100000500010d0a2db4000000"
    "0049454e44ae426082"
)


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from the real per-user config directory and cwd .env."""
    config_dir = tmp_path / "appconfig"
    config_dir.mkdir()
    monkeypatch.setattr("raindrop_shots.config.get_env_path", lambda: config_dir / ".env")
    monkeypatch.setattr("raindrop_shots.platform_utils.get_config_dir", lambda: config_dir)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return config_dir


@pytest.fixture
def screenshot_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "Desktop"
    folder.mkdir()
    return folder


@pytest.fixture
def uploaded_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "Uploaded"
    folder.mkdir()
    return folder


@pytest.fixture
def config(screenshot_dir: Path, uploaded_dir: Path) -> Config:
    """A configuration with a refresh token and the default tags."""
    return Config(
        access_token="old_token",
        refresh_token="refresh_token",
        screenshot_folder=screenshot_dir,
        uploaded_folder=uploaded_dir,
    )


@pytest.fixture
def make_screenshot(screenshot_dir: Path) -> Callable[[str], Path]:
    """Create a PNG file with the given name in the screenshot folder."""

    def _make(name: str = "Screenshot 2024-01-01 at 10.00.00.png") -> Path:
        path = screenshot_dir / name
        path.write_bytes(PNG_BYTES)
        return path

    return _make


@pytest.fixture
def make_client(config: Config) -> Callable[..., RaindropClient]:
    """Build a RaindropClient whose HTTP traffic goes to *handler*."""
    clients: list[RaindropClient] = []

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        cfg: Config | None = None,
    ) -> RaindropClient:
        client = RaindropClient(cfg or config, transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
