"""Finding the keyboard's evdev device and remembering it in a config file."""

from __future__ import annotations

import logging
import os
import struct
import time
from pathlib import Path

try:
    import fcntl
except ImportError:  # not available outside Unix
    fcntl = None

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "clickr" / "config.json"
INPUT_DIR = "/dev/input"
DETECT_TIMEOUT_SECONDS = 30
KEYBOARD_PREFIX = "keyboard="

_EV_KEY = 0x01
_EV_MAX = 0x1F
_KEY_MAX = 0x2FF
_KEY_X = 45
_KEY_SPACE = 57
_IOC_READ = 2
_O_NONBLOCK = getattr(os, "O_NONBLOCK", 0)
_EVENT = struct.Struct("llHHi")


def _config_path(config_file_path: str | Path | None) -> Path:
    return DEFAULT_CONFIG_PATH if config_file_path is None else Path(config_file_path)


def retrieve_event_path(config_file_path: str | Path | None = None) -> str:
    """Return the keyboard device recorded in the config, or "" if none."""
    path = _config_path(config_file_path)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        log.critical("Could not open config file at path: %s", path)
        return ""
    for line in lines:
        if KEYBOARD_PREFIX in line:
            return line[line.index("=") + 1 :]
    return ""


def record_event_path(event_path: str, config_file_path: str | Path | None = None) -> bool:
    """Store the keyboard device in the config, keeping its other lines."""
    path = _config_path(config_file_path)
    new_line = KEYBOARD_PREFIX + event_path

    if not path.exists():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(new_line + "\n", encoding="utf-8")
        except OSError:
            log.critical("Failed to create config file at path: %s", path)
            return False
        return True

    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        log.critical("Could not open config file at path: %s", path)
        return False

    replaced = [new_line if KEYBOARD_PREFIX in line else line for line in lines]
    if not any(KEYBOARD_PREFIX in line for line in lines):
        replaced.append(new_line)

    try:
        path.write_text("".join(line + "\n" for line in replaced), encoding="utf-8")
    except OSError:
        log.critical("Could not open config file for writing at path: %s", path)
        return False
    return True


def _eviocgbit(event_type: int, length: int) -> int:
    return (_IOC_READ << 30) | (length << 16) | (ord("E") << 8) | (0x20 + event_type)


def _has_bit(bits: bytes, n: int) -> bool:
    return bool(bits[n // 8] >> (n % 8) & 1)


def _looks_like_keyboard(fd: int) -> bool:
    """True when the device reports key events including space and X."""
    if fcntl is None:
        raise OSError("evdev devices are not available on this platform")
    types = bytearray(_EV_MAX // 8 + 1)
    fcntl.ioctl(fd, _eviocgbit(0, len(types)), types, True)
    if not _has_bit(types, _EV_KEY):
        return False
    keys = bytearray(_KEY_MAX // 8 + 1)
    fcntl.ioctl(fd, _eviocgbit(_EV_KEY, len(keys)), keys, True)
    return _has_bit(keys, _KEY_SPACE) and _has_bit(keys, _KEY_X)


def _read_events(fd: int) -> list[tuple[int, int, int]]:
    try:
        data = os.read(fd, _EVENT.size * 64)
    except (BlockingIOError, InterruptedError):
        return []
    usable = len(data) - len(data) % _EVENT.size
    return [(t, c, v) for _, _, t, c, v in _EVENT.iter_unpack(data[:usable])]


def _wait_for_space(candidates: dict[int, str], timeout_seconds: float) -> str:
    started = time.monotonic()
    while True:
        for fd, path in candidates.items():
            for event_type, code, value in _read_events(fd):
                if event_type == _EV_KEY and code == _KEY_SPACE and value == 1:
                    print(f"Detected spacebar press on: {path}")
                    return path
        if time.monotonic() - started >= timeout_seconds:
            log.debug(
                "%s seconds have passed and a keyboard has not been detected.",
                timeout_seconds,
            )
            return ""
        time.sleep(0.01)


def detect_keyboard(
    timeout_seconds: float = DETECT_TIMEOUT_SECONDS,
    input_dir: str | Path = INPUT_DIR,
    config_file_path: str | Path | None = None,
) -> str:
    """Ask for a space press and return the device it came from, or "".

    The result, empty on timeout, is recorded in the config file.
    """
    directory = Path(input_dir)
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        log.critical("Failed to open %s directory", directory)
        return ""

    candidates: dict[int, str] = {}
    event_count = 0
    try:
        for name in names:
            if not name.startswith("event"):
                continue
            event_count += 1
            event_path = str(directory / name)
            try:
                fd = os.open(event_path, os.O_RDONLY | _O_NONBLOCK)
            except OSError:
                log.critical("Failed to open %s", event_path)
                return ""
            try:
                is_keyboard = _looks_like_keyboard(fd)
            except OSError:
                log.critical("Failed to initialize evdev device")
                os.close(fd)
                return ""
            if is_keyboard:
                print(f"possible keyb path: {event_path}")
                candidates[fd] = event_path
            else:
                os.close(fd)

        print(f"Number of eventX devices: {event_count}")
        print(f"Number of possible keyboards: {len(candidates)}")
        print(
            "Press SPACEBAR to identify the correct keyboard device. "
            f"This will time out after {timeout_seconds} seconds."
        )
        keyboard_path = _wait_for_space(candidates, timeout_seconds)
        record_event_path(keyboard_path, config_file_path)
        return keyboard_path
    finally:
        for fd in candidates:
            os.close(fd)