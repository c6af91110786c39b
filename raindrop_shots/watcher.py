"""File system watcher for Raindrop Screenshots.

Uses the watchdog library to monitor the screenshot folder for new
files, waits until each has finished being written, then hands it to
the uploader.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    FileCreatedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class _StabilityTracker:
    """Tracks files until their size has been unchanged for a given duration."""

    def __init__(
        self,
        stable_seconds: float,
        on_stable: Callable[[Path], Any],
        poll_interval: float = 0.1,
    ):
        self._stable_seconds = stable_seconds
        self._on_stable = on_stable
        self._poll_interval = poll_interval
        # file_path -> (last_change_time, last_size)
        self._pending: dict[Path, tuple[float, int]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def stable_seconds(self) -> float:
        return self._stable_seconds

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll, daemon=True, name="StabilityTracker"
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def track(self, path: Path) -> None:
        """Register or update a file for stability tracking."""
        try:
            stat = path.stat()
        except OSError:
            return
        with self._lock:
            self._pending[path] = (time.monotonic(), stat.st_size)
        logger.debug("Tracking %s (size=%d)", path, stat.st_size)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def check_once(self) -> list[Path]:
        """Pop and return the files that have become stable."""
        stable: list[Path] = []
        now = time.monotonic()
        with self._lock:
            for path, (last_seen, last_size) in list(self._pending.items()):
                try:
                    current_size = path.stat().st_size
                except OSError:
                    # File vanished before it settled
                    del self._pending[path]
                    continue
                if current_size != last_size:
                    self._pending[path] = (now, current_size)
                elif now - last_seen >= self._stable_seconds:
                    stable.append(path)
            for p in stable:
                del self._pending[p]
        return stable

    def _poll(self) -> None:
        while not self._stop.is_set():
            for p in self.check_once():
                logger.debug("File stable: %s", p)
                try:
                    self._on_stable(p)
                except Exception:
                    logger.exception("Error in on_stable callback for %s", p)
            self._stop.wait(timeout=self._poll_interval)


class NewFileHandler(FileSystemEventHandler):
    """Watchdog handler that feeds new files into the stability tracker.

    Hidden files are skipped (macOS writes screenshots to a dotfile first
    and renames them when done), as is anything under *ignore_dirs*.
    """

    def __init__(
        self,
        tracker: _StabilityTracker,
        ignore_dirs: list[str | Path] | None = None,
    ):
        super().__init__()
        self._tracker = tracker
        self._ignore_dirs = [Path(d).resolve() for d in (ignore_dirs or [])]

    def _should_track(self, path: str) -> bool:
        name = os.path.basename(path)
        if name.startswith("."):
            return False
        resolved = Path(path).resolve()
        for ignored in self._ignore_dirs:
            if resolved == ignored or ignored in resolved.parents:
                logger.debug("Ignoring %s (inside %s)", name, ignored)
                return False
        return True

    def on_created(self, event: FileCreatedEvent) -> None:  # type: ignore[override]
        """Handle a new file creation event."""
        if event.is_directory:
            return
        if self._should_track(event.src_path):
            self._tracker.track(Path(event.src_path))

    def on_moved(self, event: FileMovedEvent) -> None:  # type: ignore[override]
        """Handle a rename into its final name."""
        if event.is_directory:
            return
        if self._should_track(event.dest_path):
            self._tracker.track(Path(event.dest_path))


class FolderWatcher:
    """High-level watcher that combines watchdog + stability tracking.

    Usage:
        watcher = FolderWatcher(folder, uploader.handle_new_file, stable_seconds=1)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        folder: str | Path,
        on_file_ready: Callable[[Path], Any],
        stable_seconds: float = 1.0,
        ignore_dirs: list[str | Path] | None = None,
        poll_interval: float = 0.1,
    ):
        """Create a watcher for *folder* (not recursive)."""
        self.folder = Path(folder)
        self._tracker = _StabilityTracker(stable_seconds, on_file_ready, poll_interval)
        self._handler = NewFileHandler(self._tracker, ignore_dirs)
        self._observer: Any | None = None

    # ---- lifecycle ----

    def start(self) -> None:
        """Start watching the folder.

        Raises FileNotFoundError if the folder does not exist.
        """
        if not self.folder.is_dir():
            logger.error("Screenshot folder does not exist: %s", self.folder)
            raise FileNotFoundError(f"Screenshot folder does not exist: {self.folder}")

        observer = Observer()
        self._observer = observer
        observer.schedule(self._handler, str(self.folder), recursive=False)
        observer.start()
        self._tracker.start()
        logger.info(
            "Watching '%s' (stable=%.1fs)", self.folder, self._tracker.stable_seconds
        )

    def stop(self) -> None:
        """Stop watching and release resources."""
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        self._tracker.stop()
        logger.info("Watcher stopped.")

    @property
    def is_running(self) -> bool:
        """Return whether the watcher is currently active."""
        return self._observer is not None and self._observer.is_alive()

    @property
    def pending_count(self) -> int:
        """Return the number of files still being written."""
        return self._tracker.pending_count
