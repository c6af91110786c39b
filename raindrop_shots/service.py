"""
Background service / daemon support for Raindrop Screenshots.

Runs the upload pipeline headless and manages it as a login service.

**macOS** — a launchd LaunchAgent:
    raindrop-screenshots service install     (write plist + launchctl load)
    raindrop-screenshots service start|stop|restart|status
    raindrop-screenshots service uninstall   (launchctl unload + delete plist)

**Windows** — a Windows service via pywin32:
    raindrop-screenshots service install|start|stop|restart|status|uninstall

**Linux** — a headless foreground process:
    raindrop-screenshots service start       (blocks until Ctrl-C)

On every platform ``logs`` prints the tail of the log file and ``errors``
the recent warnings and errors from it.
"""

import logging
import subprocess
import sys
import time
from collections import deque
from collections.abc import Callable
from pathlib import Path

from raindrop_shots import __app_name__
from raindrop_shots.platform_utils import IS_MACOS, IS_WINDOWS, get_env_path, get_log_path

logger = logging.getLogger(__name__)

TAIL_LINES = 50
_ERROR_MARKERS = ("[WARNING]", "[ERROR]", "[CRITICAL]")

# ---- Windows service (pywin32) -----------------------------------------

_HAS_WIN32 = False
if IS_WINDOWS:
    try:
        import servicemanager  # type: ignore[import-untyped]
        import win32event  # type: ignore[import-untyped]
        import win32service  # type: ignore[import-untyped]
        import win32serviceutil  # type: ignore[import-untyped]
        _HAS_WIN32 = True
    except ImportError:
        pass

_WIN_SERVICE_NAME = "RaindropScreenshots"

# ---- macOS launchd constants -------------------------------------------

LAUNCHD_LABEL = "com.raindrop.screenshot.automation"
_PLIST_DIR = Path.home() / "Library" / "LaunchAgents"
_PLIST_PATH = _PLIST_DIR / f"{LAUNCHD_LABEL}.plist"
_LAUNCHD_LOG_DIR = Path.home() / "Library" / "Logs" / "RaindropScreenshots"


def _is_configured() -> bool:
    return get_env_path().is_file() or (Path.cwd() / ".env").is_file()


# ======================================================================
# Windows service
# ======================================================================

if _HAS_WIN32:

    class RaindropScreenshotsService(win32serviceutil.ServiceFramework):
        """Windows service implementation for Raindrop Screenshots."""

        _svc_name_ = _WIN_SERVICE_NAME
        _svc_display_name_ = __app_name__
        _svc_description_ = (
            "Watches a folder for new screenshots and uploads them to Raindrop.io."
        )

        def __init__(self, args):
            super().__init__(args)
            self._stop_event = win32event.CreateEvent(None, 0, 0, None)
            self._app = None

        def SvcStop(self):
            self.ReportServiceStatus(win32service.SERVICE_STOP_PENDING)
            win32event.SetEvent(self._stop_event)
            logger.info("Service stop requested.")

        def SvcDoRun(self):
            from raindrop_shots.app import App, setup_logging
            from raindrop_shots.config import load_config

            servicemanager.LogMsg(
                servicemanager.EVENTLOG_INFORMATION_TYPE,
                servicemanager.PYS_SERVICE_STARTED,
                (self._svc_name_, ""),
            )
            try:
                cfg = load_config()
                setup_logging(cfg.log_level)
                self._app = App(cfg)
                self._app.start()
                win32event.WaitForSingleObject(self._stop_event, win32event.INFINITE)
            except Exception as exc:
                logger.exception("Service error: %s", exc)
                servicemanager.LogErrorMsg(f"{__app_name__} error: {exc}")
            finally:
                if self._app:
                    self._app.stop()
            logger.info("Service stopped.")


def _windows_command(cmd: str) -> None:
    if cmd == "status":
        try:
            state = win32serviceutil.QueryServiceStatus(_WIN_SERVICE_NAME)[1]
        except Exception:
            print(f"{__app_name__} service is not installed.")
            return
        running = state == win32service.SERVICE_RUNNING
        print(f"{__app_name__} service is {'running' if running else 'not running'}.")
        return
    if cmd == "install" and not _is_configured():
        print("No configuration found. Run 'raindrop-screenshots setup' first.")
        return
    win_cmd = "remove" if cmd == "uninstall" else cmd
    sys.argv = [sys.argv[0], win_cmd]
    win32serviceutil.HandleCommandLine(RaindropScreenshotsService)


# ======================================================================
# macOS launchd helpers
# ======================================================================

def _macos_plist_content() -> str:
    """Generate the launchd plist XML for the current Python environment."""
    exe = sys.executable
    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN"
  "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>{LAUNCHD_LABEL}</string>
    <key>ProgramArguments</key>
    <array>
        <string>{exe}</string>
        <string>-m</string>
        <string>raindrop_shots</string>
        <string>run</string>
    </array>
    <key>WorkingDirectory</key>
    <string>{Path.cwd()}</string>
    <key>RunAtLoad</key>
    <true/>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>{_LAUNCHD_LOG_DIR / 'stdout.log'}</string>
    <key>StandardErrorPath</key>
    <string>{_LAUNCHD_LOG_DIR / 'stderr.log'}</string>
</dict>
</plist>
"""


def _launchctl(*args: str, check: bool = True) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["launchctl", *args], check=check, capture_output=True, text=True
    )


def _macos_install() -> None:
    if not _is_configured():
        print("No configuration found. Run 'raindrop-screenshots setup' first.")
        return
    _PLIST_DIR.mkdir(parents=True, exist_ok=True)
    _LAUNCHD_LOG_DIR.mkdir(parents=True, exist_ok=True)
    _PLIST_PATH.write_text(_macos_plist_content(), encoding="utf-8")
    print(f"Installed launchd plist: {_PLIST_PATH}")
    _launchctl("load", str(_PLIST_PATH))
    print(f"{__app_name__} agent loaded; it will start at login.")


def _macos_uninstall() -> None:
    if _PLIST_PATH.exists():
        _launchctl("unload", str(_PLIST_PATH), check=False)
        _PLIST_PATH.unlink()
        print("Removed launchd plist.")
    else:
        print("Plist not found; nothing to uninstall.")


def _macos_start() -> None:
    if not _PLIST_PATH.exists():
        print("Plist not found. Run 'install' first.")
        return
    _launchctl("start", LAUNCHD_LABEL)
    print(f"{__app_name__} agent started.")


def _macos_stop() -> None:
    if not _PLIST_PATH.exists():
        print("Plist not found.")
        return
    _launchctl("stop", LAUNCHD_LABEL, check=False)
    print(f"{__app_name__} agent stopped.")


def _macos_restart() -> None:
    _macos_stop()
    time.sleep(2)
    _macos_start()


def parse_launchctl_list(output: str, label: str = LAUNCHD_LABEL) -> dict[str, str] | None:
    """Find *label* in ``launchctl list`` output.

    Returns ``{"pid": ..., "status": ...}`` or None when the agent is not
    loaded.  A pid of ``-`` means loaded but not running.
    """
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) >= 3 and parts[2].strip() == label:
            return {"pid": parts[0].strip(), "status": parts[1].strip()}
    return None


def _macos_status() -> None:
    result = _launchctl("list", check=False)
    info = parse_launchctl_list(result.stdout)
    if info is None:
        print(f"{__app_name__} agent is not loaded.")
    elif info["pid"] == "-":
        print(f"{__app_name__} agent is loaded but not running "
              f"(last exit status {info['status']}).")
    else:
        print(f"{__app_name__} agent is running (PID {info['pid']}).")


# ======================================================================
# Log viewing (all platforms)
# ======================================================================

def tail_lines(
    path: Path,
    n: int = TAIL_LINES,
    predicate: Callable[[str], bool] | None = None,
) -> list[str]:
    """Return the last *n* lines of *path* (optionally only matching ones)."""
    if not path.is_file():
        return []
    lines: deque = deque(maxlen=n)
    with open(path, encoding="utf-8", errors="replace") as fh:
        for line in fh:
            if predicate is None or predicate(line):
                lines.append(line.rstrip("\n"))
    return list(lines)


def _is_problem_line(line: str) -> bool:
    return any(marker in line for marker in _ERROR_MARKERS)


def show_logs() -> None:
    """Print the most recent log lines."""
    path = get_log_path()
    lines = tail_lines(path)
    if not lines:
        print(f"No logs found at: {path}")
        return
    print("\n".join(lines))
    print(f"\nFull log file: {path}")


def show_errors() -> None:
    """Print the most recent warnings and errors."""
    path = get_log_path()
    lines = tail_lines(path, predicate=_is_problem_line)
    if not lines:
        print(f"No errors found in: {path}")
        return
    print("\n".join(lines))
    print(f"\nFull log file: {path}")


# ======================================================================
# Cross-platform headless runner (Linux / fallback)
# ======================================================================

def _run_foreground() -> None:
    """Run the pipeline in the foreground until SIGINT/SIGTERM."""
    from raindrop_shots.app import run_foreground

    sys.exit(run_foreground())


# ======================================================================
# CLI entry
# ======================================================================

def main(argv: list[str] | None = None) -> None:
    """Entry point for service/daemon control."""
    args = sys.argv[1:] if argv is None else argv
    cmd = args[0] if args else ""

    if cmd == "logs":
        show_logs()
        return
    if cmd == "errors":
        show_errors()
        return
    if cmd == "run":
        _run_foreground()
        return

    # ---- Windows ----
    if IS_WINDOWS:
        if not _HAS_WIN32:
            print("ERROR: pywin32 is required for service mode on Windows.")
            print("       pip install pywin32")
            sys.exit(1)
        if cmd == "":
            try:
                servicemanager.Initialize()
                servicemanager.PrepareToHostSingle(RaindropScreenshotsService)
                servicemanager.StartServiceCtrlDispatcher()
            except Exception:
                _show_help()
        elif cmd in ("install", "uninstall", "start", "stop", "restart", "status"):
            _windows_command(cmd)
        else:
            _show_help()
        return

    # ---- macOS ----
    if IS_MACOS:
        actions = {
            "install": _macos_install,
            "uninstall": _macos_uninstall,
            "start": _macos_start,
            "stop": _macos_stop,
            "restart": _macos_restart,
            "status": _macos_status,
        }
        if cmd in actions:
            try:
                actions[cmd]()
            except subprocess.CalledProcessError as exc:
                print(f"launchctl failed: {(exc.stderr or '').strip() or exc}")
                sys.exit(1)
        else:
            _show_help()
        return

    # ---- Linux / other ----
    if cmd == "start":
        _run_foreground()
    else:
        _show_help()


def _show_help() -> None:
    platform = "Windows" if IS_WINDOWS else ("macOS" if IS_MACOS else "Linux")
    prog = "raindrop-screenshots service"
    print(f"{__app_name__} — Background Service  ({platform})")
    print()
    print("Usage:")
    if IS_WINDOWS or IS_MACOS:
        print(f"  {prog} install     Install and start at login")
        print(f"  {prog} uninstall   Stop and remove the service")
        print(f"  {prog} start       Start the service")
        print(f"  {prog} stop        Stop the service")
        print(f"  {prog} restart     Restart the service")
        print(f"  {prog} status      Show whether the service is running")
    else:
        print(f"  {prog} start       Run in foreground (Ctrl-C to stop)")
    print(f"  {prog} run         Run in foreground")
    print(f"  {prog} logs        Show recent log lines")
    print(f"  {prog} errors      Show recent warnings and errors")
