"""
Main application controller for Raindrop Screenshots.

Ties together configuration, the Raindrop.io client, the folder watcher,
the upload pipeline and desktop notifications, and runs them headless
until interrupted.
"""

import logging
import logging.handlers
import signal
import sys
import tempfile
import threading
from datetime import datetime
from pathlib import Path

from raindrop_shots import __app_name__, __version__
from raindrop_shots.api import RaindropClient, short_date
from raindrop_shots.config import Config, load_config
from raindrop_shots.exceptions import ConfigError, RaindropError
from raindrop_shots.models import QuotaSnapshot
from raindrop_shots.notify import DesktopNotifier
from raindrop_shots.platform_utils import get_log_path
from raindrop_shots.uploader import ScreenshotUploader
from raindrop_shots.watcher import FolderWatcher

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_MAX_LOG_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 3

# 1x1 transparent PNG used by `check --upload`
TEST_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000b49444154789c63000100000500010d0a2db4000000"
    "0049454e44ae426082"
)


def setup_logging(level: str = "INFO", log_path: Path | None = None) -> None:
    """Configure rotating file log and stderr handler."""
    log_path = log_path or get_log_path()
    numeric = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric)

    fmt = logging.Formatter(_LOG_FORMAT)

    fh = logging.handlers.RotatingFileHandler(
        str(log_path),
        maxBytes=_MAX_LOG_BYTES,
        backupCount=_LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    fh.setLevel(numeric)
    fh.setFormatter(fmt)
    root_logger.addHandler(fh)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(numeric)
    sh.setFormatter(fmt)
    root_logger.addHandler(sh)


class App:
    """
    Central orchestrator.

    ``start()`` brings the pipeline up, ``stop()`` tears it down, and
    ``run()`` does both around a blocking wait for SIGINT/SIGTERM.
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config
        self.client: RaindropClient | None = None
        self.notifier: DesktopNotifier | None = None
        self.uploader: ScreenshotUploader | None = None
        self.watcher: FolderWatcher | None = None
        self._stop_event = threading.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        """Run until interrupted.  Returns a process exit code."""
        if self.config is None:
            self.config = load_config()
        setup_logging(self.config.log_level)
        logger.info("%s %s starting.", __app_name__, __version__)

        try:
            self.start()
        except Exception as exc:
            logger.error("Failed to initialize: %s", exc)
            if self.notifier:
                self.notifier.notify(
                    f"{__app_name__} Error",
                    "Failed to initialize. Check your configuration.",
                    block=True,
                )
            self.stop()
            return 1

        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGINT, self._on_signal)
            signal.signal(signal.SIGTERM, self._on_signal)

        print(f"{__app_name__} running (press Ctrl-C to stop)…")
        self._stop_event.wait()
        self.stop()
        print(f"{__app_name__} stopped.")
        return 0

    def start(self) -> None:
        """Connect to Raindrop.io and start watching the screenshot folder."""
        cfg = self.config if self.config is not None else load_config()
        self.config = cfg

        logger.info("Watching folder: %s", cfg.screenshot_folder)
        logger.info("Upload folder: %s", cfg.uploaded_folder)
        logger.info("Tags: %s", ", ".join(cfg.tags))

        self.notifier = DesktopNotifier(enabled=cfg.notifications)
        self.client = RaindropClient(cfg)
        profile = self.client.test_connection()
        logger.info("Connected as %s", profile.full_name or profile.email)

        self.uploader = ScreenshotUploader(cfg, self.client, self.notifier)
        self.watcher = FolderWatcher(
            cfg.screenshot_folder,
            on_file_ready=self.uploader.handle_new_file,
            stable_seconds=cfg.stable_seconds,
            ignore_dirs=[cfg.uploaded_folder],
        )
        self.watcher.start()
        logger.info("Watcher is ready and monitoring for new screenshots.")
        self.notifier.notify(__app_name__, "Started monitoring for new screenshots")

    def stop(self) -> None:
        """Release the watcher, drop queued uploads, let running ones finish.

        The HTTP client is closed only after the upload workers are idle.
        """
        if self.watcher:
            self.watcher.stop()
            self.watcher = None
        if self.uploader:
            self.uploader.shutdown(wait=True, cancel_pending=True)
            self.uploader = None
        if self.client:
            self.client.close()
            self.client = None

    def request_stop(self) -> None:
        """Ask ``run()`` to return (thread-safe)."""
        self._stop_event.set()

    def _on_signal(self, signum, frame) -> None:
        logger.info("Received signal %d, shutting down…", signum)
        self.request_stop()


def run_foreground() -> int:
    """Load the configuration and run the app until interrupted."""
    try:
        config = load_config()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    return App(config).run()


def check_connection(config: Config | None = None, upload: bool = False) -> int:
    """Print account, collections and storage quota.  Returns an exit code.

    With *upload* a generated 1x1 screenshot is also uploaded and searched
    for, exercising the whole remote side of the pipeline.
    """
    try:
        config = config or load_config()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    with RaindropClient(config) as client:
        try:
            profile = client.test_connection()
            print(f"Connected as: {profile.full_name} ({profile.email})")

            print("Available collections:")
            for collection in client.list_collections():
                print(f"  - {collection.title} (ID: {collection.id}) - {collection.count} items")

            quota = client.get_user_quota()
            _print_quota(quota)

            if upload:
                _check_upload(client)
        except RaindropError as exc:
            print(f"API check failed: {exc}", file=sys.stderr)
            return 1
    return 0


def _print_quota(quota: QuotaSnapshot | None) -> None:
    if quota is None:
        print("Storage: no file quota reported")
        return
    plan = "pro" if quota.is_pro else "free"
    print(
        f"Storage ({plan}): {quota.used_mb:.2f} MB of {quota.total_mb:.2f} MB used "
        f"({quota.used_percent}%), {quota.remaining_mb:.2f} MB remaining"
    )


def _check_upload(client: RaindropClient) -> None:
    """Upload a throwaway screenshot, then run the duplicate search for it."""
    now = datetime.now()
    filename = f"Screenshot {now:%Y-%m-%d at %H.%M.%S}.png"
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / filename
        path.write_bytes(TEST_PNG)
        print(f"Uploading test screenshot: {filename}")
        result = client.upload_file(
            path,
            title=f"Test Upload - {now:%Y-%m-%d %H:%M:%S}",
            excerpt=f"Test upload on {short_date(now.date())}",
        )
    print(f"Upload successful: {result.link}")

    duplicate = client.check_duplicate(filename)
    print(f"Duplicate check: {'duplicate found' if duplicate else 'no duplicates'}")
