"""Entry point for Raindrop Screenshots.

Usage:
    raindrop-screenshots [run]           Watch and upload in the foreground
    raindrop-screenshots setup           Interactive first-run configuration
    raindrop-screenshots check           Test the token, list collections and quota
    raindrop-screenshots check --upload  Also upload a test screenshot and search for it
    raindrop-screenshots service <cmd>   Manage the background service
                                         (launchd agent, Windows service, or
                                         Linux foreground daemon)
"""

import sys

_USAGE = __doc__


def main() -> None:
    """Dispatch to the runner, setup wizard, connection check or service CLI."""
    cmd = sys.argv[1] if len(sys.argv) > 1 else "run"

    if cmd in ("--service", "service"):
        from raindrop_shots.service import main as service_main

        service_main(sys.argv[2:])
    elif cmd == "setup":
        from raindrop_shots.setup_wizard import main as setup_main

        setup_main()
    elif cmd == "check":
        from raindrop_shots.app import check_connection

        sys.exit(check_connection(upload="--upload" in sys.argv[2:]))
    elif cmd == "run":
        from raindrop_shots.app import run_foreground

        sys.exit(run_foreground())
    else:
        print(_USAGE)
        sys.exit(0 if cmd in ("-h", "--help", "help") else 2)


if __name__ == "__main__":
    main()
