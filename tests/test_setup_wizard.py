"""Tests for the interactive setup wizard."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from unittest.mock import patch

import pytest

from raindrop_shots.config import load_config
from raindrop_shots.exceptions import AuthError
from raindrop_shots.models import UserProfile
from raindrop_shots.setup_wizard import SetupWizard


def scripted(answers: Iterable[str]):
    """Return an ``input`` replacement that replays *answers*."""
    it = iter(answers)
    return lambda prompt: next(it)


@pytest.fixture
def fake_client():
    with patch("raindrop_shots.setup_wizard.RaindropClient") as client_class:
        client = client_class.return_value.__enter__.return_value
        client.test_connection.return_value = UserProfile(id=1, full_name="Ada", email="a@b.c")
        yield client


class TestSetupWizard:
    """Tests for SetupWizard.run()."""

    def test_writes_env_file(
        self, tmp_path: Path, fake_client, capsys: pytest.CaptureFixture[str]
    ) -> None:
        env_path = tmp_path / "conf" / ".env"
        shots = tmp_path / "shots"
        uploaded = tmp_path / "up"
        wizard = SetupWizard(
            env_path,
            ask=scripted(
                [
                    "tok",  # access token
                    "",  # refresh token
                    "123",  # collection
                    str(shots),
                    str(uploaded),
                    "a,b",  # tags
                    "y",  # auto delete
                    "",  # notifications (default yes)
                    "y",  # create screenshot folder
                ]
            ),
        )

        assert wizard.run() is True

        cfg = load_config(environ={}, env_file=env_path)
        assert cfg.access_token == "tok"
        assert cfg.refresh_token is None
        assert cfg.collection_id == "123"
        assert cfg.screenshot_folder == shots
        assert cfg.tags == ("a", "b")
        assert cfg.auto_delete is True
        assert cfg.notifications is True
        assert shots.is_dir()
        assert uploaded.is_dir()
        assert "Connected as: Ada" in capsys.readouterr().out

    def test_requires_token(self, tmp_path: Path, fake_client) -> None:
        env_path = tmp_path / ".env"
        wizard = SetupWizard(env_path, ask=scripted([""]))

        assert wizard.run() is False
        assert not env_path.exists()

    def test_keeps_existing_file_unless_confirmed(self, tmp_path: Path, fake_client) -> None:
        env_path = tmp_path / ".env"
        env_path.write_text("RAINDROP_ACCESS_TOKEN=keep\n")

        assert SetupWizard(env_path, ask=scripted(["n"])).run() is False
        assert env_path.read_text() == "RAINDROP_ACCESS_TOKEN=keep\n"

    def test_connection_failure_still_writes_config(
        self, tmp_path: Path, fake_client, capsys: pytest.CaptureFixture[str]
    ) -> None:
        fake_client.test_connection.side_effect = AuthError("bad token")
        env_path = tmp_path / ".env"
        shots = tmp_path / "shots"
        shots.mkdir()
        answers = ["tok", "", "", str(shots), str(tmp_path / "up"), "", "n", "n"]

        assert SetupWizard(env_path, ask=scripted(answers)).run() is True

        assert env_path.exists()
        assert "Configuration test failed: bad token" in capsys.readouterr().out
