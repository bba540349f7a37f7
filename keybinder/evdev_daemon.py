"""Linux daemon: grabs the keyboard's evdev device and re-injects keys through uinput."""

from __future__ import annotations

import contextlib
import logging
import os
import select
import struct
import threading
from collections.abc import Iterable
from pathlib import Path

from keybinder.event import AbstractDaemon, InputEvent, KeyEventType
from keybinder.linux_configure import detect_keyboard, retrieve_event_path
from keybinder.mapper import Mapper

try:
    import fcntl
except ImportError:  # not available outside Unix
    fcntl = None

log = logging.getLogger(__name__)

EV_SYN = 0x00
EV_KEY = 0x01
SYN_REPORT = 0
BUS_USB = 0x03
UINPUT_PATH = "/dev/uinput"
DEVICE_NAME = "h_key_mapper"

_EVENT = struct.Struct("llHHi")
EVENT_SIZE = _EVENT.size
_SETUP = struct.Struct("HHHH80sI")
_INT_SIZE = struct.calcsize("i")
_REGISTERED_KEYS = range(128)
_POLL_SECONDS = 0.1
_O_NONBLOCK = getattr(os, "O_NONBLOCK", 0)


def _ioc(direction: int, kind: str, number: int, size: int) -> int:
    return (direction << 30) | (size << 16) | (ord(kind) << 8) | number


UI_DEV_CREATE = _ioc(0, "U", 1, 0)
UI_DEV_DESTROY = _ioc(0, "U", 2, 0)
UI_DEV_SETUP = _ioc(1, "U", 3, _SETUP.size)
UI_SET_EVBIT = _ioc(1, "U", 100, _INT_SIZE)
UI_SET_KEYBIT = _ioc(1, "U", 101, _INT_SIZE)
EVIOCGRAB = _ioc(1, "E", 0x90, _INT_SIZE)


def _ioctl(fd: int, request: int, arg: int | bytes = 0) -> None:
    if fcntl is None:
        raise OSError("evdev and uinput devices are not available on this platform")
    fcntl.ioctl(fd, request, arg)


def pack_event(event_type: int, code: int, value: int) -> bytes:
    """Encode an input_event with a zero timestamp."""
    return _EVENT.pack(0, 0, event_type, code, value)


def unpack_event(data: bytes) -> tuple[int, int, int]:
    """Decode one input_event into (type, code, value)."""
    if len(data) != EVENT_SIZE:
        raise ValueError(f"An input event is {EVENT_SIZE} bytes, got {len(data)}")
    _, _, event_type, code, value = _EVENT.unpack(data)
    return event_type, code, value


class EvdevDaemon(AbstractDaemon):
    """Captures keys from a grabbed evdev keyboard and feeds them to a mapper."""

    def __init__(
        self,
        mapper: Mapper,
        keyboard_path: str | Path | None = None,
        uinput_path: str | Path = UINPUT_PATH,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.mapper = mapper
        if keyboard_path is None:
            keyboard_path = retrieve_event_path()
            if not keyboard_path:
                # detect_keyboard records what it finds in the config file.
                keyboard_path = detect_keyboard()
        self.keyboard_path = str(keyboard_path)
        self.uinput_path = str(uinput_path)
        self.stop_event = threading.Event() if stop_event is None else stop_event
        self.keyboard_fd: int | None = None
        self.uinput_fd: int | None = None
        self.is_running = False
        self._grabbed = False
        log.debug("Daemon created")

    def setup_uinput_device(self) -> None:
        """Create the virtual keyboard used to inject keys; raise OSError on failure."""
        try:
            fd = os.open(self.uinput_path, os.O_WRONLY | _O_NONBLOCK)
        except OSError:
            log.critical("Failed to open %s", self.uinput_path)
            raise
        try:
            _ioctl(fd, UI_SET_EVBIT, EV_KEY)
            _ioctl(fd, UI_SET_EVBIT, EV_SYN)
            for key in _REGISTERED_KEYS:
                _ioctl(fd, UI_SET_KEYBIT, key)
            setup = _SETUP.pack(BUS_USB, 0x1, 0x1, 0, DEVICE_NAME.encode(), 0)
            _ioctl(fd, UI_DEV_SETUP, setup)
            _ioctl(fd, UI_DEV_CREATE)
        except OSError:
            os.close(fd)
            log.critical("Failed to create uinput device")
            raise
        self.uinput_fd = fd

    def _release_keyboard(self) -> None:
        fd = self.keyboard_fd
        if fd is None:
            return
        if self._grabbed:
            with contextlib.suppress(OSError):
                _ioctl(fd, EVIOCGRAB, 0)
            self._grabbed = False
        os.close(fd)
        self.keyboard_fd = None

    def _read_events(self, fd: int) -> list[tuple[int, int, int]]:
        ready, _, _ = select.select([fd], [], [], _POLL_SECONDS)
        if not ready:
            return []
        try:
            data = os.read(fd, EVENT_SIZE * 64)
        except (BlockingIOError, InterruptedError):
            return []
        usable = len(data) - len(data) % EVENT_SIZE
        return [
            unpack_event(data[start : start + EVENT_SIZE])
            for start in range(0, usable, EVENT_SIZE)
        ]

    def start(self) -> None:
        """Grab the keyboard and map its events until the stop event is set."""
        log.debug("Daemon started")
        try:
            fd = os.open(self.keyboard_path, os.O_RDWR | _O_NONBLOCK)
        except OSError as exc:
            log.critical("Failed to open device: %s", exc)
            raise
        self.keyboard_fd = fd
        try:
            _ioctl(fd, EVIOCGRAB, 1)
        except OSError:
            log.critical("Failed to grab the keyboard device")
            self._release_keyboard()
            raise
        self._grabbed = True
        try:
            self.setup_uinput_device()
        except OSError:
            log.critical("Failed to set up uinput")
            self._release_keyboard()
            raise

        self.is_running = True
        try:
            while not self.stop_event.is_set():
                for event_type, code, value in self._read_events(fd):
                    self.handle_raw_event(event_type, code, value)
        finally:
            self.cleanup()

    def handle_raw_event(self, event_type: int, code: int, value: int) -> bool:
        """Feed one raw event to the mapper; True when the mapper consumed it.

        Key events the mapper does not consume are injected unchanged.
        """
        if event_type != EV_KEY:
            return False
        kind = KeyEventType.PRESS if value == 1 else KeyEventType.RELEASE
        event = InputEvent(code, kind)
        if self.mapper.map_input(event):
            return True
        self.send_keys([event])
        return False

    def send_keys(self, events: Iterable[InputEvent]) -> None:
        """Write each event, followed by a sync report, to the virtual keyboard."""
        fd = self.uinput_fd
        if fd is None:
            log.warning("Cannot send keys: the uinput device is not set up")
            return
        for event in events:
            value = 1 if event.type is KeyEventType.PRESS else 0
            os.write(fd, pack_event(EV_KEY, event.keycode, value))
            os.write(fd, pack_event(EV_SYN, SYN_REPORT, 0))
            log.debug("Key sent: %s : %s", event.keycode, value)

    def cleanup(self) -> None:
        """Destroy the virtual keyboard and release the grabbed device."""
        if not self.is_running:
            log.debug("cleanup() called but daemon not running.")
            return
        if self.uinput_fd is not None:
            with contextlib.suppress(OSError):
                _ioctl(self.uinput_fd, UI_DEV_DESTROY)
            os.close(self.uinput_fd)
            self.uinput_fd = None
        self._release_keyboard()
        self.is_running = False
        log.debug("Daemon cleaned up")