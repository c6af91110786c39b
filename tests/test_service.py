"""Tests for the service manager helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from raindrop_shots import service


class TestLaunchctlList:
    """Tests for parsing ``launchctl list`` output."""

    OUTPUT = (
        "PID\tStatus\tLabel\n"
        "-\t0\tcom.apple.something\n"
        "4242\t0\tcom.raindrop.screenshot.automation\n"
    )

    def test_running_agent(self) -> None:
        assert service.parse_launchctl_list(self.OUTPUT) == {"pid": "4242", "status": "0"}

    def test_loaded_but_stopped(self) -> None:
        output = "-\t78\tcom.raindrop.screenshot.automation\n"
        assert service.parse_launchctl_list(output) == {"pid": "-", "status": "78"}

    def test_not_loaded(self) -> None:
        assert service.parse_launchctl_list("-\t0\tcom.apple.something\n") is None


class TestPlist:
    """Tests for the generated launchd plist."""

    def test_runs_module_with_run_command(self) -> None:
        content = service._macos_plist_content()
        assert f"<string>{service.LAUNCHD_LABEL}</string>" in content
        assert "<string>raindrop_shots</string>" in content
        assert "<string>run</string>" in content
        assert "<key>KeepAlive</key>" in content


class TestLogs:
    """Tests for log tailing."""

    def _write_log(self, isolated_config_dir: Path, lines: list[str]) -> Path:
        path = isolated_config_dir / "raindrop_screenshots.log"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    def test_tail_keeps_last_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "log.txt"
        path.write_text("".join(f"line {i}\n" for i in range(100)))

        lines = service.tail_lines(path, n=3)

        assert lines == ["line 97", "line 98", "line 99"]

    def test_tail_missing_file(self, tmp_path: Path) -> None:
        assert service.tail_lines(tmp_path / "missing.log") == []

    def test_show_logs(self, isolated_config_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        self._write_log(isolated_config_dir, ["2024 [INFO] a: started"])

        service.show_logs()

        assert "started" in capsys.readouterr().out

    def test_show_errors_filters_levels(
        self, isolated_config_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        self._write_log(
            isolated_config_dir,
            [
                "2024 [INFO] x: uploaded",
                "2024 [WARNING] x: could not check duplicates",
                "2024 [ERROR] x: upload failed",
            ],
        )

        service.show_errors()

        out = capsys.readouterr().out
        assert "upload failed" in out
        assert "could not check duplicates" in out
        assert "uploaded\n" not in out

    def test_show_logs_without_file(
        self, isolated_config_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        service.show_logs()
        assert "No logs found" in capsys.readouterr().out


class TestMain:
    """Tests for command dispatch."""

    def test_logs_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        service.main(["logs"])
        assert "No logs found" in capsys.readouterr().out

    def test_unknown_command_shows_help(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setattr(service, "IS_WINDOWS", False)
        monkeypatch.setattr(service, "IS_MACOS", False)

        service.main(["bogus"])

        assert "Usage:" in capsys.readouterr().out

    def test_macos_install_requires_configuration(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
    ) -> None:
        monkeypatch.setattr(service, "IS_WINDOWS", False)
        monkeypatch.setattr(service, "IS_MACOS", True)
        monkeypatch.setattr(service, "_PLIST_PATH", tmp_path / "agent.plist")

        service.main(["install"])

        assert "setup" in capsys.readouterr().out
        assert not (tmp_path / "agent.plist").exists()
