"""Keyboard input events and the interface every platform daemon implements."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass


class KeyEventType(enum.Enum):
    """Whether a key went down or came up."""

    PRESS = "press"
    RELEASE = "release"


@dataclass(frozen=True)
class InputEvent:
    """A single key press or release for a platform key code."""

    keycode: int
    type: KeyEventType


class AbstractDaemon(ABC):
    """Captures keys from the system and injects keys back into it."""

    @abstractmethod
    def start(self) -> None:
        """Run the capture loop until asked to stop."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release every device and handle the daemon holds."""

    @abstractmethod
    def send_keys(self, events: Iterable[InputEvent]) -> None:
        """Inject the given events into the system, in order."""