"""Command entry point: load a profile, start the daemon and serve the front end."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path

from keybinder.evdev_daemon import EvdevDaemon
from keybinder.keymap import KeyMap
from keybinder.local_server import LocalServer
from keybinder.logger import Logger, RollingFileHandler
from keybinder.mapper import Mapper
from keybinder.profile import (
    EMPTY_PROFILE_NAME,
    LATEST_PROFILE_FILE_LOCATION,
    Profile,
)
from keybinder.signal_handler import SignalHandler

log = logging.getLogger(__name__)

_WAIT_SECONDS = 0.5


def load_profile(
    path: str | Path | None = None,
    key_map: KeyMap | None = None,
    latest_path: str | Path = LATEST_PROFILE_FILE_LOCATION,
) -> Profile:
    """Load the given profile file, or the last loaded one when no path is given."""
    if path is None or str(path) == EMPTY_PROFILE_NAME:
        return Profile.load_latest(key_map, latest_path)
    return Profile.from_file(path, key_map, latest_path)


def _run_daemon(daemon: EvdevDaemon) -> None:
    try:
        daemon.start()
    except OSError as exc:
        log.critical("Daemon stopped: %s", exc)


def _run(profile: Profile, logger: Logger) -> int:
    stop_event = threading.Event()
    mapper = Mapper(profile)
    daemon = EvdevDaemon(mapper, stop_event=stop_event)
    mapper.set_daemon(daemon)

    daemon_thread = threading.Thread(
        target=_run_daemon, args=(daemon,), name="keybinder-daemon", daemon=True
    )
    daemon_thread.start()

    signals = SignalHandler()
    signals.set_daemon_thread(daemon_thread, stop_event)
    signals.config_handler()

    server = LocalServer(mapper)
    server.start()
    server_thread = threading.Thread(
        target=server.serve_forever, name="keybinder-server", daemon=True
    )
    server_thread.start()

    try:
        while not signals.quit_requested.wait(_WAIT_SECONDS):
            pass
    finally:
        server.close()
        signals.shutdown()
        daemon.cleanup()
        logger.clean_up()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the key binder; returns the process exit status."""
    parser = argparse.ArgumentParser(
        prog="keybinder", description="Remap keyboard keys using a JSON profile."
    )
    parser.add_argument(
        "profile",
        nargs="?",
        help="profile file to load (default: the last loaded profile)",
    )
    args = parser.parse_args(argv)

    logger = Logger()
    handler = RollingFileHandler(logger)
    root = logging.getLogger()
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    try:
        if args.profile is None:
            log.debug("Not enough arguments, using default profile location.")
        try:
            profile = load_profile(args.profile)
        except ValueError as exc:
            log.critical("Could not load profile: %s", exc)
            print(f"keybinder: {exc}", file=sys.stderr)
            return 1
        return _run(profile, logger)
    finally:
        root.removeHandler(handler)
        root.setLevel(previous_level)
        handler.close()


if __name__ == "__main__":
    sys.exit(main())