"""
Upload pipeline for Raindrop Screenshots.

Takes files reported by the watcher, keeps only screenshots, skips paths
already seen in this process and files Raindrop.io already holds, uploads
the rest, then moves each uploaded file into the uploaded folder (renaming
on collision) or deletes it.  Remote work runs on a small thread pool so
the watcher is never blocked.
"""

import enum
import logging
import shutil
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from itertools import count
from pathlib import Path

from raindrop_shots.api import RaindropClient
from raindrop_shots.config import Config, is_screenshot_file
from raindrop_shots.models import UploadResult
from raindrop_shots.notify import DesktopNotifier

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4


class FileOutcome(enum.Enum):
    """Terminal state of one detected file."""

    FILTERED_OUT = "filtered_out"
    ALREADY_PROCESSED = "already_processed"
    DUPLICATE_SKIPPED = "duplicate_skipped"
    UPLOAD_FAILED = "upload_failed"
    UPLOADED_AND_MOVED = "uploaded_and_moved"
    UPLOADED_AND_DELETED = "uploaded_and_deleted"


def unique_destination(path: Path) -> Path:
    """Return *path*, or ``name (1).ext``, ``name (2).ext``… if it is taken."""
    candidate = path
    counter = count(1)
    while candidate.exists():
        candidate = path.with_name(f"{path.stem} ({next(counter)}){path.suffix}")
    return candidate


@dataclass
class UploadRecord:
    """Record of a single admitted file."""
    source: str
    outcome: FileOutcome | None = None
    destination: str = ""
    link: str = ""
    started: float = 0.0
    finished: float = 0.0
    error: str = ""

    @property
    def duration(self) -> float:
        if self.finished and self.started:
            return self.finished - self.started
        return 0.0

    @property
    def timestamp_str(self) -> str:
        """Human-readable timestamp of when processing finished."""
        if self.finished:
            return datetime.fromtimestamp(self.finished).strftime("%Y-%m-%d %H:%M:%S")
        return ""


@dataclass
class UploadStats:
    """Aggregated upload statistics."""
    total_uploaded: int = 0
    total_failed: int = 0
    total_duplicates: int = 0
    last_uploaded_file: str = ""
    history: list[UploadRecord] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, rec: UploadRecord) -> None:
        with self._lock:
            self.history.append(rec)
            if rec.outcome is FileOutcome.DUPLICATE_SKIPPED:
                self.total_duplicates += 1
            elif rec.outcome is FileOutcome.UPLOAD_FAILED:
                self.total_failed += 1
            elif rec.outcome in (
                FileOutcome.UPLOADED_AND_MOVED,
                FileOutcome.UPLOADED_AND_DELETED,
            ):
                self.total_uploaded += 1
                self.last_uploaded_file = rec.source
            # Keep last 1000 records
            if len(self.history) > 1000:
                self.history = self.history[-1000:]


class ScreenshotUploader:
    """
    Uploads detected screenshots to Raindrop.io.

    Parameters
    ----------
    config : Config
        Runtime configuration (uploaded folder, auto-delete flag).
    client : RaindropClient
        Remote API client.
    notifier : DesktopNotifier
        Desktop notification sink.
    max_workers : int
        Number of files processed concurrently.
    """

    def __init__(
        self,
        config: Config,
        client: RaindropClient,
        notifier: DesktopNotifier,
        max_workers: int = DEFAULT_WORKERS,
    ):
        self._config = config
        self._client = client
        self._notifier = notifier
        self._processed: set[str] = set()
        self._lock = threading.Lock()
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="Upload"
        )
        self.stats = UploadStats()

    @property
    def processed_count(self) -> int:
        with self._lock:
            return len(self._processed)

    # ---- entry points ----

    def handle_new_file(self, path: str | Path) -> "Future[FileOutcome] | None":
        """Admit *path* and queue its upload.

        Filtering and the processed-path check happen synchronously on the
        calling thread.  Returns the queued future, or None if the file was
        rejected or the uploader is shut down.
        """
        if self._closed:
            logger.warning("Uploader is shut down; ignoring %s", path)
            return None
        resolved, outcome = self._admit(Path(path))
        if outcome is not None:
            return None
        return self._executor.submit(self._process_admitted, resolved)

    def process_file(self, path: str | Path) -> FileOutcome:
        """Run the whole pipeline for *path* on the calling thread."""
        resolved, outcome = self._admit(Path(path))
        if outcome is not None:
            return outcome
        return self._process_admitted(resolved)

    def shutdown(self, wait: bool = False, cancel_pending: bool | None = None) -> None:
        """Stop accepting files.

        Queued files are dropped when *cancel_pending* is true (default:
        ``not wait``).  With *wait* the call returns only after every upload
        already running has finished.
        """
        self._closed = True
        if cancel_pending is None:
            cancel_pending = not wait
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)
        logger.info("Uploader stopped.")

    # ---- pipeline ----

    def _admit(self, path: Path) -> tuple[Path, FileOutcome | None]:
        """Apply the name filter and claim the path in the processed set."""
        filename = path.name
        if not is_screenshot_file(filename):
            logger.info("Skipping non-screenshot file: %s", filename)
            return path, FileOutcome.FILTERED_OUT

        resolved = path.resolve()
        key = str(resolved)
        with self._lock:
            if key in self._processed:
                logger.info("File already processed: %s", filename)
                return resolved, FileOutcome.ALREADY_PROCESSED
            self._processed.add(key)

        logger.info("New screenshot detected: %s", filename)
        return resolved, None

    def _process_admitted(self, path: Path) -> FileOutcome:
        rec = UploadRecord(source=str(path), started=time.time())
        try:
            rec.outcome = self._upload_and_finish(path, rec)
        except Exception as exc:
            # Last-resort guard for the worker thread
            logger.exception("Unexpected error processing %s", path.name)
            rec.outcome = FileOutcome.UPLOAD_FAILED
            rec.error = str(exc)
        finally:
            rec.finished = time.time()
            self.stats.record(rec)
        return rec.outcome

    def _upload_and_finish(self, path: Path, rec: UploadRecord) -> FileOutcome:
        filename = path.name

        if self._client.check_duplicate(filename):
            logger.info("Duplicate detected, skipping: %s", filename)
            self._notifier.notify("Raindrop Watcher", f"Skipped duplicate: {filename}")
            return FileOutcome.DUPLICATE_SKIPPED

        try:
            result = self._client.upload_file(path)
        except Exception as exc:
            logger.error("Upload failed for %s: %s", filename, exc)
            rec.error = str(exc)
            self._notifier.notify(
                "Raindrop Upload Failed", f"Failed to upload {filename}: {exc}"
            )
            return FileOutcome.UPLOAD_FAILED

        rec.link = result.link
        self._on_uploaded(filename, result)

        if self._config.auto_delete:
            self._delete(path, rec)
            return FileOutcome.UPLOADED_AND_DELETED
        self._move(path, rec)
        return FileOutcome.UPLOADED_AND_MOVED

    def _on_uploaded(self, filename: str, result: UploadResult) -> None:
        logger.info("Successfully uploaded: %s (%s)", filename, result.link)
        self._notifier.notify(
            "Raindrop Upload Success",
            f"Uploaded: {filename}",
            url=result.link or None,
        )
        try:
            self._executor.submit(self._report_quota)
        except RuntimeError:
            logger.debug("Uploader shutting down; skipping quota report")

    def _report_quota(self) -> None:
        try:
            quota = self._client.get_user_quota()
        except Exception as exc:
            logger.warning("Could not fetch storage quota: %s", exc)
            return
        if quota is None:
            return
        logger.info(
            "Storage: %.2f MB of %.2f MB used (%d%%)",
            quota.used_mb,
            quota.total_mb,
            quota.used_percent,
        )
        self._notifier.notify(
            "Raindrop Storage",
            f"{quota.used_percent}% used, {quota.remaining_mb:.2f} MB remaining "
            f"of {quota.total_mb:.2f} MB",
        )

    # ---- local file handling ----

    def _move(self, path: Path, rec: UploadRecord) -> None:
        try:
            dest = unique_destination(self._config.uploaded_folder / path.name)
            shutil.move(str(path), str(dest))
            rec.destination = str(dest)
            logger.info("Moved to: %s", dest)
        except OSError as exc:
            rec.error = f"Move failed: {exc}"
            logger.error("Failed to move %s: %s", path.name, exc)

    def _delete(self, path: Path, rec: UploadRecord) -> None:
        try:
            path.unlink()
            logger.info("Deleted: %s", path.name)
        except OSError as exc:
            rec.error = f"Delete failed: {exc}"
            logger.error("Failed to delete %s: %s", path.name, exc)
