"""Desktop notification helper for Raindrop Screenshots.

- macOS: ``terminal-notifier`` when installed (clicking opens the link),
  otherwise ``osascript`` with the link appended to the message.
- Linux: ``notify-send``; notifications carrying a link get an "Open"
  action that launches the default browser.
- Windows: spoken through the active screen reader via accessible_output2
  when it is installed; otherwise only logged.
"""

import logging
import shutil
import subprocess
import threading

from raindrop_shots.platform_utils import IS_LINUX, IS_MACOS, IS_WINDOWS, open_url

logger = logging.getLogger(__name__)

_OPEN_ACTION = "open"

# ---- accessible_output2 (Windows screen readers) ----
_HAS_AO2 = False
if IS_WINDOWS:
    try:
        from accessible_output2.outputs.auto import (
            Auto as _AO2Auto,  # type: ignore[import-untyped]
        )

        _HAS_AO2 = True
    except ImportError:
        logger.warning(
            "accessible_output2 not installed — Windows notifications disabled."
        )


def _applescript_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class DesktopNotifier:
    """Thread-safe cross-platform desktop notifier.

    Call ``notify(title, message, url=None)``.  The call never blocks and
    never raises: delivery happens on a daemon thread and failures are
    logged.  When *enabled* is False every call is a no-op.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._output = _AO2Auto() if (enabled and _HAS_AO2) else None  # type: ignore[name-defined]

    def notify(
        self, title: str, message: str, url: str | None = None, block: bool = False
    ) -> None:
        """Show a notification; clicking it opens *url* where supported.

        Delivery runs on a daemon thread unless *block* is set, which is
        needed when the process is about to exit.
        """
        if not self.enabled:
            return
        if block:
            self._deliver(title, message, url)
            return
        threading.Thread(
            target=self._deliver,
            args=(title, message, url),
            daemon=True,
            name="Notify",
        ).start()

    def _deliver(self, title: str, message: str, url: str | None) -> None:
        try:
            if IS_MACOS:
                self._notify_macos(title, message, url)
            elif IS_LINUX:
                self._notify_linux(title, message, url)
            elif self._output:
                self._output.speak(f"{title}. {message}", interrupt=False)
            else:
                logger.debug("Notify (no backend): %s — %s", title, message)
        except Exception:
            logger.warning("Notification failed: %s", title, exc_info=True)

    def _notify_macos(self, title: str, message: str, url: str | None) -> None:
        notifier_bin = shutil.which("terminal-notifier")
        if notifier_bin:
            cmd = [notifier_bin, "-title", title, "-message", message, "-sound", "default"]
            if url:
                cmd += ["-open", url]
            subprocess.run(
                cmd,
                timeout=15,
                check=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            return

        # osascript notifications can't carry a click action
        if url:
            message = f"{message}\n{url}"
        script = (
            f'display notification "{_applescript_escape(message)}" '
            f'with title "{_applescript_escape(title)}" sound name "default"'
        )
        subprocess.run(
            ["osascript", "-e", script],
            timeout=15,
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def _notify_linux(self, title: str, message: str, url: str | None) -> None:
        if not url:
            subprocess.run(
                ["notify-send", title, message],
                timeout=15,
                check=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            return

        # --wait blocks until the notification is closed and prints the
        # name of the invoked action, if any.
        result = subprocess.run(
            ["notify-send", f"--action={_OPEN_ACTION}=Open", "--wait", title, message],
            check=True,
            capture_output=True,
            text=True,
        )
        if result.stdout.strip() == _OPEN_ACTION:
            logger.debug("Notification clicked, opening %s", url)
            open_url(url)
