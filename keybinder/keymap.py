"""Two-way mapping between key names used in profiles and platform key codes."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Iterator

_WINDOWS_SPECIAL: list[tuple[str, int]] = [
    ("Space", 0x20),
    ("Enter", 0x0D),
    ("Esc", 0x1B),
    ("Escape", 0x1B),
    ("Tab", 0x09),
    ("Backspace", 0x08),
    ("Pause", 0x13),
    ("CapsLock", 0x14),
    ("Shift", 0x10),
    ("ShiftLeft", 0xA0),
    ("ShiftRight", 0xA1),
    ("Ctrl", 0x11),
    ("CtrlLeft", 0xA2),
    ("CtrlRight", 0xA3),
    ("Alt", 0x12),
    ("AltLeft", 0xA4),
    ("AltRight", 0xA5),
    *((f"F{n}", 0x70 + n - 1) for n in range(1, 13)),
    ("~", 0xC0),
    ("`", 0xC0),
    ("-", 0xBD),
    ("=", 0xBB),
    ("[", 0xDB),
    ("]", 0xDD),
    ("\\", 0xDC),
    (";", 0xBA),
    ("'", 0xDE),
    (",", 0xBC),
    (".", 0xBE),
    ("/", 0xBF),
    ("Up", 0x26),
    ("Down", 0x28),
    ("Left", 0x25),
    ("Right", 0x27),
    ("Insert", 0x2D),
    ("Delete", 0x2E),
    ("Home", 0x24),
    ("End", 0x23),
    ("PageUp", 0x21),
    ("PageDown", 0x22),
    ("Cmd", 0x5B),
    ("Alt", 0xA4),
]

_LINUX_LETTERS = {
    "A": 30, "B": 48, "C": 46, "D": 32, "E": 18, "F": 33, "G": 34,
    "H": 35, "I": 23, "J": 36, "K": 37, "L": 38, "M": 50, "N": 49,
    "O": 24, "P": 25, "Q": 16, "R": 19, "S": 31, "T": 20, "U": 22,
    "V": 47, "W": 17, "X": 45, "Y": 21, "Z": 44,
}

_LINUX_REST: list[tuple[str, int]] = [
    ("0", 11),
    *((str(n), n + 1) for n in range(1, 10)),
    ("Space", 57),
    ("Enter", 28),
    ("Esc", 1),
    ("Escape", 1),
    ("Tab", 15),
    ("Shift", 42),
    ("Ctrl", 29),
    ("Alt", 56),
    ("Backspace", 14),
    ("Pause", 119),
    ("CapsLock", 58),
    *((f"F{n}", 58 + n) for n in range(1, 11)),
    ("F11", 87),
    ("F12", 88),
    ("~", 41),
    ("`", 41),
    ("-", 12),
    ("=", 13),
    ("[", 26),
    ("]", 27),
    ("\\", 43),
    (";", 39),
    ("'", 40),
    (",", 51),
    (".", 52),
    ("/", 53),
    ("Up", 103),
    ("Down", 108),
    ("Left", 105),
    ("Right", 106),
    ("Insert", 110),
    ("Delete", 111),
    ("Home", 102),
    ("End", 107),
    ("PageUp", 104),
    ("PageDown", 109),
    ("Cmd", 125),
    ("Super", 125),
    ("Meta", 125),
    ("Menu", 139),
]


def _windows_entries() -> list[tuple[str, int]]:
    letters = [(c, ord(c)) for c in "ABCDEFGHIJKLMNOPQRSTUVWXYZ"]
    digits = [(c, ord(c)) for c in "0123456789"]
    return letters + digits + list(_WINDOWS_SPECIAL)


def _mac_entries() -> list[tuple[str, int]]:
    letters = [(c, 4 + i) for i, c in enumerate("ABCDEFGHIJKLMNOPQRSTUVWXYZ")]
    digits = [(c, 30 + i) for i, c in enumerate("1234567890")]
    return letters + digits + [("Space", 44)]


def _linux_entries() -> list[tuple[str, int]]:
    return list(_LINUX_LETTERS.items()) + list(_LINUX_REST)


def default_entries(platform: str | None = None) -> list[tuple[str, int]]:
    """Return the (name, key code) pairs for a platform, in insertion order.

    ``platform`` follows ``sys.platform`` naming and defaults to it.
    """
    platform = sys.platform if platform is None else platform
    if platform in ("win32", "cygwin", "windows"):
        return _windows_entries()
    if platform == "darwin":
        return _mac_entries()
    if platform.startswith("linux"):
        return _linux_entries()
    raise ValueError(f"Unknown operating system: {platform}")


class KeyMap:
    """Bidirectional lookup between key names and key codes."""

    def __init__(self, entries: Iterable[tuple[str, int]] | None = None) -> None:
        self._by_name: dict[str, int] = {}
        self._by_code: dict[int, str] = {}
        for name, key_code in default_entries() if entries is None else entries:
            self.insert(name, key_code)

    @classmethod
    def for_platform(cls, platform: str) -> KeyMap:
        """Build the key map used on the given platform."""
        return cls(default_entries(platform))

    def insert(self, name: str, key_code: int) -> None:
        """Add or overwrite a name and its key code in both directions."""
        self._by_name[name] = key_code
        self._by_code[key_code] = name

    def remove(self, name: str, key_code: int) -> None:
        """Drop the name and the key code; missing entries are ignored."""
        self._by_name.pop(name, None)
        self._by_code.pop(key_code, None)

    def string_to_key_code(self, name: str) -> int:
        """Return the key code for a name, or -1 when unknown."""
        return self._by_name.get(name, -1)

    def key_code_to_string(self, key_code: int) -> str:
        """Return the name for a key code, or an empty string when unknown."""
        return self._by_code.get(key_code, "")

    def contains_string(self, name: str) -> bool:
        return name in self._by_name

    def contains_key_code(self, key_code: int) -> bool:
        return key_code in self._by_code

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)