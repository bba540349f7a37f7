"""Turns captured key events into the binds of the active profile layer."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from keybinder.event import AbstractDaemon, InputEvent, KeyEventType
from keybinder.profile import (
    Bind,
    KeyPress,
    KeyRelease,
    Macro,
    PressKey,
    Profile,
    ReleaseKey,
    SwapLayer,
    TapKey,
    TapSequence,
    TimedTriggerBehavior,
)

log = logging.getLogger(__name__)


@dataclass
class _TapProgress:
    """A tap sequence being typed: the next key index and the event type expected."""

    sequence: TapSequence
    bind: Bind
    index: int = 0
    expected: KeyEventType = KeyEventType.PRESS


class Mapper:
    """Matches input events against the active layer and sends binds to a daemon."""

    def __init__(self, profile: Profile, daemon: AbstractDaemon | None = None) -> None:
        self._lock = threading.RLock()
        self._daemon = daemon
        self._profile = profile
        self._layer = 0
        self._press_triggers: dict[int, Bind] = {}
        self._release_triggers: dict[int, Bind] = {}
        self._tap_starts: dict[int, tuple[TapSequence, Bind]] = {}
        self._tap: _TapProgress | None = None
        self.set_profile(profile)

    @property
    def current_layer(self) -> int:
        """Index of the layer whose remappings are active."""
        with self._lock:
            return self._layer

    def set_daemon(self, daemon: AbstractDaemon | None) -> None:
        """Attach the daemon that receives the produced key events."""
        with self._lock:
            self._daemon = daemon

    def set_profile(self, profile: Profile) -> None:
        """Switch to a new profile and activate its default layer."""
        with self._lock:
            self._profile = profile
            log.debug("Profile layer is: %s", profile.default_layer)
            self._activate_layer(profile.default_layer)

    def set_layer(self, new_layer: int) -> bool:
        """Activate a layer; return False when the profile has no such layer."""
        with self._lock:
            if not 0 <= new_layer < len(self._profile.layers):
                return False
            self._activate_layer(new_layer)
            return True

    def _activate_layer(self, new_layer: int) -> None:
        layers = self._profile.layers
        if not 0 <= new_layer < len(layers):
            raise ValueError(
                f"Layer {new_layer} does not exist; the profile has {len(layers)}"
            )
        self._layer = new_layer
        log.debug("Cur Layer: %s Length = %s", new_layer, len(layers))
        self._press_triggers = {}
        self._release_triggers = {}
        self._tap_starts = {}
        self._tap = None
        for trigger, bind in layers[new_layer].remappings:
            if isinstance(trigger, KeyPress):
                self._press_triggers[trigger.key_code] = bind
            elif isinstance(trigger, KeyRelease):
                self._release_triggers[trigger.key_code] = bind
            elif isinstance(trigger, TapSequence):
                if not trigger.key_sequence:
                    raise ValueError("A tap sequence needs at least one key")
                self._tap_starts[trigger.key_sequence[0]] = (trigger, bind)

    def map_input(self, event: InputEvent) -> bool:
        """Handle one captured event; return True when it was consumed."""
        with self._lock:
            if (
                self._tap is None
                and event.type is KeyEventType.PRESS
                and event.keycode in self._tap_starts
            ):
                sequence, bind = self._tap_starts[event.keycode]
                self._tap = _TapProgress(sequence, bind)

            if self._tap is not None and self._advance_tap(event):
                return True

            if event.type is KeyEventType.PRESS and event.keycode in self._press_triggers:
                log.debug("Mapping keydown of: %s", event.keycode)
                self._perform_binds([self._press_triggers[event.keycode]])
            elif (
                event.type is KeyEventType.RELEASE
                and event.keycode in self._release_triggers
            ):
                log.debug("Mapping keyup of: %s", event.keycode)
                self._perform_binds([self._release_triggers[event.keycode]])
            else:
                return False
            return True

    def _advance_tap(self, event: InputEvent) -> bool:
        """Feed an event to the running tap sequence; True means it is consumed."""
        tap = self._tap
        keys = tap.sequence.key_sequence
        behavior = tap.sequence.behavior
        log.debug(
            "Checking for tap sequence cur_key: %s looking for %s",
            tap.index,
            keys[tap.index],
        )

        if keys[tap.index] == event.keycode and event.type is tap.expected:
            if tap.expected is KeyEventType.PRESS:
                tap.expected = KeyEventType.RELEASE
            else:
                tap.expected = KeyEventType.PRESS
                tap.index += 1

            if tap.index == len(keys):
                self._tap = None
                self._perform_binds([tap.bind])
                log.debug("Tap Sequence Over")

            return behavior is not TimedTriggerBehavior.RELEASE

        if behavior is TimedTriggerBehavior.DEFAULT:
            log.debug("Tap Sequence stopped, sending out captured keys")
            binds: list[Bind] = []
            for key_code in keys[: tap.index]:
                binds += [PressKey(key_code), ReleaseKey(key_code)]
            if tap.expected is KeyEventType.RELEASE:
                binds.append(PressKey(keys[tap.index]))
            self._tap = None
            self._perform_binds(binds)
        else:
            self._tap = None
        return False

    def _perform_binds(self, binds: Iterable[Bind]) -> None:
        events: list[InputEvent] = []
        for bind in binds:
            if isinstance(bind, PressKey):
                events.append(InputEvent(bind.key_code, KeyEventType.PRESS))
            elif isinstance(bind, ReleaseKey):
                events.append(InputEvent(bind.key_code, KeyEventType.RELEASE))
            elif isinstance(bind, TapKey):
                events += [
                    InputEvent(bind.key_code, KeyEventType.PRESS),
                    InputEvent(bind.key_code, KeyEventType.RELEASE),
                ]
            elif isinstance(bind, SwapLayer):
                self._activate_layer(bind.new_layer)
            elif isinstance(bind, Macro):
                self._perform_binds(bind.binds)
        if self._daemon is None:
            raise RuntimeError("No daemon is attached to the mapper")
        self._daemon.send_keys(events)