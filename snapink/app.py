"""
SnapInk entry point.

Run with: python -m snapink.app, or the snapink console script.
"""

import fcntl
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from snapink import __version__
from snapink.core.app_core import AppCore
from snapink.services.logging_service import get_logger, setup_logging

LOCK_FILE = Path.home() / ".cache" / "snapink" / "snapink.lock"

# Python only runs signal handlers when Qt hands control back to it
SIGNAL_POLL_MS = 200


class InstanceLock:
    """
    Exclusive flock on a lock file, so only one SnapInk runs per user.

    Two instances would both register the same global hotkeys.
    """

    def __init__(self, path: Path = LOCK_FILE) -> None:
        self._path = path
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> bool:
        """Take the lock. Returns False if another process holds it."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(self._path), os.O_CREAT | os.O_RDWR)
        except OSError as e:
            get_logger(__name__).error(f"Could not open lock file {self._path}: {e}")
            return False

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            os.close(fd)
            return False

        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode())
        self._fd = fd
        return True

    def release(self) -> None:
        if self._fd is None:
            return
        fcntl.flock(self._fd, fcntl.LOCK_UN)
        os.close(self._fd)
        self._fd = None


def install_signal_handlers(app: QApplication) -> QTimer:
    """
    Quit the application on SIGINT and SIGTERM.

    Returns the timer that lets the handlers run; keep a reference to it.
    """
    def quit_app(signum, frame):
        get_logger(__name__).info(f"Received {signal.Signals(signum).name}, quitting")
        app.quit()

    signal.signal(signal.SIGINT, quit_app)
    signal.signal(signal.SIGTERM, quit_app)

    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(SIGNAL_POLL_MS)
    return timer


def main() -> int:
    """
    Main entry point for SnapInk application.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    setup_logging()
    logger = get_logger(__name__)

    lock = InstanceLock()
    if not lock.acquire():
        logger.warning("Another instance of SnapInk is already running. Exiting.")
        return 1

    try:
        logger.info(f"Starting SnapInk {__version__}")

        app = QApplication(sys.argv)
        app.setApplicationName("SnapInk")
        app.setOrganizationName("SnapInk")
        app.setApplicationVersion(__version__)

        signal_timer = install_signal_handlers(app)  # noqa: F841
        core = AppCore(app)  # noqa: F841

        exit_code = app.exec()
        logger.info(f"SnapInk exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1

    finally:
        lock.release()


if __name__ == "__main__":
    sys.exit(main())
