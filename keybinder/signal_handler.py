"""Turns SIGINT and SIGTERM into an orderly shutdown of the daemon thread."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable
from types import FrameType

log = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 5.0


class SignalHandler:
    """Requests a quit on the first interrupt and stops the daemon thread."""

    def __init__(self, on_quit: Callable[[], None] | None = None) -> None:
        self.on_quit = on_quit
        self.quit_requested = threading.Event()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    def set_daemon_thread(
        self, thread: threading.Thread, stop_event: threading.Event | None = None
    ) -> None:
        """Remember the thread to stop and the event that asks it to stop."""
        self._thread = thread
        self._stop_event = stop_event

    def config_handler(self) -> None:
        """Install the handler for SIGINT and SIGTERM; call from the main thread."""
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, self.handle_signal)

    def handle_signal(self, signum: int, frame: FrameType | None = None) -> None:
        """Request a quit; later signals are ignored."""
        if self.quit_requested.is_set():
            return
        self.quit_requested.set()
        log.debug("Received signal %s, quitting", signum)
        if self.on_quit is not None:
            self.on_quit()

    def shutdown(self, timeout: float = SHUTDOWN_TIMEOUT_SECONDS) -> bool:
        """Ask the daemon thread to stop and wait; False if it did not stop in time."""
        if self._stop_event is not None:
            self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        if thread.is_alive():
            log.warning(
                "Daemon thread didn't stop in %ss, forcing termination", timeout
            )
            return False
        return True