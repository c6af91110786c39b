"""Tests for the folder watcher."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileMovedEvent

from raindrop_shots.watcher import FolderWatcher, NewFileHandler, _StabilityTracker


class TestNewFileHandler:
    """Tests for event filtering."""

    def test_tracks_created_files(self, tmp_path: Path) -> None:
        tracker = MagicMock()
        handler = NewFileHandler(tracker)
        path = tmp_path / "Screenshot.png"

        handler.on_created(FileCreatedEvent(str(path)))

        tracker.track.assert_called_once_with(path)

    def test_tracks_rename_target(self, tmp_path: Path) -> None:
        tracker = MagicMock()
        handler = NewFileHandler(tracker)
        src = tmp_path / ".Screenshot.png-abc"
        dest = tmp_path / "Screenshot.png"

        handler.on_moved(FileMovedEvent(str(src), str(dest)))

        tracker.track.assert_called_once_with(dest)

    def test_ignores_hidden_files(self, tmp_path: Path) -> None:
        tracker = MagicMock()
        NewFileHandler(tracker).on_created(FileCreatedEvent(str(tmp_path / ".Screenshot.png")))
        tracker.track.assert_not_called()

    def test_ignores_directories(self, tmp_path: Path) -> None:
        tracker = MagicMock()
        NewFileHandler(tracker).on_created(DirCreatedEvent(str(tmp_path / "Screenshots")))
        tracker.track.assert_not_called()

    def test_ignores_uploaded_folder(self, tmp_path: Path) -> None:
        tracker = MagicMock()
        uploaded = tmp_path / "Uploaded"
        handler = NewFileHandler(tracker, ignore_dirs=[uploaded])

        handler.on_created(FileCreatedEvent(str(uploaded / "Screenshot.png")))

        tracker.track.assert_not_called()


class TestStabilityTracker:
    """Tests for the write-finished check."""

    def test_stable_file_is_released_once(self, tmp_path: Path) -> None:
        path = tmp_path / "Screenshot.png"
        path.write_bytes(b"1234")
        tracker = _StabilityTracker(0, MagicMock())

        tracker.track(path)

        assert tracker.check_once() == [path]
        assert tracker.check_once() == []
        assert tracker.pending_count == 0

    def test_growing_file_is_held_back(self, tmp_path: Path) -> None:
        path = tmp_path / "Screenshot.png"
        path.write_bytes(b"12")
        tracker = _StabilityTracker(0, MagicMock())
        tracker.track(path)

        path.write_bytes(b"1234")

        assert tracker.check_once() == []
        assert tracker.check_once() == [path]

    def test_waits_for_stable_time(self, tmp_path: Path) -> None:
        path = tmp_path / "Screenshot.png"
        path.write_bytes(b"12")
        tracker = _StabilityTracker(60, MagicMock())
        tracker.track(path)

        assert tracker.check_once() == []
        assert tracker.pending_count == 1

    def test_vanished_file_is_dropped(self, tmp_path: Path) -> None:
        path = tmp_path / "Screenshot.png"
        path.write_bytes(b"12")
        tracker = _StabilityTracker(0, MagicMock())
        tracker.track(path)
        path.unlink()

        assert tracker.check_once() == []
        assert tracker.pending_count == 0

    def test_missing_file_is_not_tracked(self, tmp_path: Path) -> None:
        tracker = _StabilityTracker(0, MagicMock())
        tracker.track(tmp_path / "nope.png")
        assert tracker.pending_count == 0


class TestFolderWatcher:
    """Tests for the watchdog-backed watcher."""

    def test_missing_folder_is_fatal(self, tmp_path: Path) -> None:
        watcher = FolderWatcher(tmp_path / "missing", MagicMock())
        with pytest.raises(FileNotFoundError):
            watcher.start()
        assert not watcher.is_running

    def test_reports_new_file(self, tmp_path: Path) -> None:
        ready = threading.Event()
        seen: list[Path] = []

        def on_ready(path: Path) -> None:
            seen.append(path)
            ready.set()

        watcher = FolderWatcher(tmp_path, on_ready, stable_seconds=0, poll_interval=0.05)
        watcher.start()
        try:
            assert watcher.is_running
            (tmp_path / "Screenshot.png").write_bytes(b"png")
            assert ready.wait(timeout=10)
        finally:
            watcher.stop()

        assert seen[0].name == "Screenshot.png"
        assert not watcher.is_running
