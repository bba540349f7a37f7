"""Profiles: layers of trigger-to-bind remappings, parsed from JSON."""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from keybinder.keymap import KeyMap

log = logging.getLogger(__name__)

LATEST_PROFILE_FILE_LOCATION = "./last_loaded.profile.json"
EMPTY_PROFILE_NAME = "empty"


class ProfileError(ValueError):
    """Raised when a profile document is missing, malformed or invalid."""


class TimedTriggerBehavior(enum.Enum):
    """What happens to the keys of a tap sequence while it is being typed."""

    CAPTURE = "capture"
    RELEASE = "release"
    DEFAULT = "default"


@dataclass(frozen=True)
class KeyPress:
    key_code: int


@dataclass(frozen=True)
class KeyRelease:
    key_code: int


@dataclass(frozen=True)
class TapSequence:
    key_sequence: tuple[int, ...]
    behavior: TimedTriggerBehavior


@dataclass(frozen=True)
class PressKey:
    key_code: int


@dataclass(frozen=True)
class ReleaseKey:
    key_code: int


@dataclass(frozen=True)
class TapKey:
    key_code: int


@dataclass(frozen=True)
class SwapLayer:
    new_layer: int


@dataclass(frozen=True)
class Macro:
    binds: tuple[Bind, ...] = ()


Trigger = Union[KeyPress, KeyRelease, TapSequence]
Bind = Union[PressKey, ReleaseKey, TapKey, SwapLayer, Macro]

_default_key_map: KeyMap | None = None


def _resolve_key_map(key_map: KeyMap | None) -> KeyMap:
    global _default_key_map
    if key_map is not None:
        return key_map
    if _default_key_map is None:
        _default_key_map = KeyMap()
    return _default_key_map


def _expect_object(value: Any) -> dict:
    if not isinstance(value, dict):
        raise ProfileError("expected object")
    return value


def _expect_array(value: Any) -> list:
    if not isinstance(value, list):
        raise ProfileError("expected array")
    return value


def _expect_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ProfileError("expected string")
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_KIND_CHECKS = {
    "an object": lambda v: isinstance(v, dict),
    "a string": lambda v: isinstance(v, str),
    "an array": lambda v: isinstance(v, list),
    "a number": _is_number,
}


def _property(obj: Mapping[str, Any], key: str, kind: str) -> Any:
    if key not in obj:
        raise ProfileError(f"Invalid or missing '{key}' in JSON.")
    value = obj[key]
    if not _KIND_CHECKS[kind](value):
        raise ProfileError(f"The property '{key}' is not {kind}.")
    return value


def _warn_extra_properties(obj: Mapping[str, Any], valid_keys: Iterable[str]) -> None:
    allowed = set(valid_keys)
    for key in obj:
        if key not in allowed:
            log.warning("Warning: Extra property found in JSON object: %s", key)


def parse_behavior(text: str) -> TimedTriggerBehavior:
    """Turn "capture", "release" or "default" into a behaviour."""
    try:
        return TimedTriggerBehavior(text)
    except ValueError:
        raise ProfileError(f"Invalid Timed Bind Behavior: {text}") from None


def str_to_keycode(name: str, key_map: KeyMap | None = None) -> int:
    """Look up a key name, raising when the key map does not know it."""
    km = _resolve_key_map(key_map)
    if not km.contains_string(name):
        raise ProfileError(f"The string '{name}' is not a valid key.")
    return km.string_to_key_code(name)


def _key_value(obj: Mapping[str, Any], key_map: KeyMap | None) -> int:
    _warn_extra_properties(obj, ("type", "value"))
    return str_to_keycode(_property(obj, "value", "a string"), key_map)


def _parse_tap_sequence(obj: Mapping[str, Any], key_map: KeyMap | None) -> TapSequence:
    _warn_extra_properties(obj, ("type", "key_time_pairs", "behavior"))
    keys = []
    for entry in _property(obj, "key_time_pairs", "an array"):
        pair = _expect_array(entry)
        first = pair[0] if pair else None
        # The second element of each pair is a timeout that is not used yet.
        keys.append(str_to_keycode(_expect_string(first), key_map))
    behavior = parse_behavior(_property(obj, "behavior", "a string"))
    return TapSequence(tuple(keys), behavior)


def parse_trigger(obj: Mapping[str, Any], key_map: KeyMap | None = None) -> Trigger:
    """Parse a trigger object by its "type"."""
    trigger_type = _property(obj, "type", "a string")
    if trigger_type == "key_press":
        return KeyPress(_key_value(obj, key_map))
    if trigger_type == "key_release":
        return KeyRelease(_key_value(obj, key_map))
    if trigger_type == "tap_sequence":
        return _parse_tap_sequence(obj, key_map)
    raise ProfileError(f"Invalid trigger type: {trigger_type}")


def parse_bind(obj: Mapping[str, Any], key_map: KeyMap | None = None) -> Bind:
    """Parse a bind object by its "type"."""
    bind_type = _property(obj, "type", "a string")
    if bind_type == "press_key":
        return PressKey(_key_value(obj, key_map))
    if bind_type == "release_key":
        return ReleaseKey(_key_value(obj, key_map))
    if bind_type == "tap_key":
        return TapKey(_key_value(obj, key_map))
    if bind_type == "switch_layer":
        _warn_extra_properties(obj, ("type", "value"))
        return SwapLayer(int(_property(obj, "value", "a number")))
    if bind_type == "macro":
        _warn_extra_properties(obj, ("type", "binds"))
        binds = tuple(
            parse_bind(_expect_object(item), key_map)
            for item in _property(obj, "binds", "an array")
        )
        return Macro(binds)
    raise ProfileError(f"Invalid bind type: {bind_type}")


def parse_remapping(
    obj: Mapping[str, Any], key_map: KeyMap | None = None
) -> tuple[Trigger, Bind]:
    """Parse one {"trigger": ..., "bind": ...} pair."""
    _warn_extra_properties(obj, ("trigger", "bind"))
    trigger = parse_trigger(_property(obj, "trigger", "an object"), key_map)
    bind = parse_bind(_property(obj, "bind", "an object"), key_map)
    return trigger, bind


@dataclass(frozen=True)
class Layer:
    """A named set of remappings that is active at one time."""

    layer_name: str
    remappings: tuple[tuple[Trigger, Bind], ...] = ()

    @classmethod
    def from_json(cls, obj: Mapping[str, Any], key_map: KeyMap | None = None) -> Layer:
        _warn_extra_properties(obj, ("layer_name", "layer_number", "remappings"))
        name = _property(obj, "layer_name", "a string")
        remappings = tuple(
            parse_remapping(_expect_object(item), key_map)
            for item in _property(obj, "remappings", "an array")
        )
        return cls(name, remappings)


def default_profile_json() -> dict[str, Any]:
    """The startup profile: one empty layer."""
    return {
        "profile_name": "EMPTY-STARTUP-PROFILE",
        "layer_count": 1,
        "layers": [
            {"layer_name": "default", "layer_number": 0, "remappings": []},
        ],
    }


def save_latest_json_profile(
    obj: Mapping[str, Any], path: str | Path = LATEST_PROFILE_FILE_LOCATION
) -> bool:
    """Write the profile JSON to ``path``; log and return False on failure."""
    try:
        Path(path).write_text(json.dumps(obj, indent=4) + "\n", encoding="utf-8")
    except OSError as exc:
        log.error("Failed to save latest JSON profile to %s: %s", path, exc)
        return False
    log.debug("Latest JSON profile saved successfully to %s", path)
    return True


@dataclass(frozen=True)
class Profile:
    """A named list of layers and the layer to start on."""

    name: str = ""
    layers: tuple[Layer, ...] = field(default_factory=tuple)
    default_layer: int = 0

    @classmethod
    def from_json(
        cls,
        obj: Mapping[str, Any],
        key_map: KeyMap | None = None,
        latest_path: str | Path | None = LATEST_PROFILE_FILE_LOCATION,
    ) -> Profile:
        """Parse a profile object and remember it as the latest one loaded.

        Pass ``latest_path=None`` to skip saving.
        """
        _warn_extra_properties(obj, ("profile_name", "default_layer", "layers"))
        name = _property(obj, "profile_name", "a string")
        log.debug("Loading PROFILE_NAME: %s", name)
        layers = tuple(
            Layer.from_json(_expect_object(item), key_map)
            for item in _property(obj, "layers", "an array")
        )
        log.debug("Loaded PROFILE_NAME: %s", name)
        if latest_path is not None:
            save_latest_json_profile(obj, latest_path)
        return cls(name=name, layers=layers, default_layer=0)

    @classmethod
    def from_bytes(
        cls,
        data: bytes | str,
        key_map: KeyMap | None = None,
        latest_path: str | Path | None = LATEST_PROFILE_FILE_LOCATION,
    ) -> Profile:
        """Parse a profile from a JSON document."""
        try:
            doc = json.loads(data)
        except ValueError:
            doc = None
        if not isinstance(doc, dict):
            log.critical("Invalid JSON!")
            raise ProfileError("Invalid JSON document")
        return cls.from_json(doc, key_map, latest_path)

    @classmethod
    def from_file(
        cls,
        filename: str | Path,
        key_map: KeyMap | None = None,
        latest_path: str | Path | None = LATEST_PROFILE_FILE_LOCATION,
    ) -> Profile:
        """Load a profile file; the name "empty" gives the startup profile."""
        if str(filename) == EMPTY_PROFILE_NAME:
            log.debug("Using empty json mapping.")
            data = json.dumps(default_profile_json(), indent=4)
            return cls.from_bytes(data, key_map, latest_path)

        path = Path(filename)
        log.debug("Checking file at: %s", path)
        if not path.exists():
            log.critical("Profile does not exist: %s", path)
            raise ProfileError("File does not exist")
        try:
            data = path.read_bytes()
        except OSError:
            log.critical("Could not open file!")
            raise ProfileError("Could not open file") from None
        if key_map is None:
            key_map = KeyMap()
        return cls.from_bytes(data, key_map, latest_path)

    @classmethod
    def load_latest(
        cls,
        key_map: KeyMap | None = None,
        latest_path: str | Path = LATEST_PROFILE_FILE_LOCATION,
    ) -> Profile:
        """Load the profile saved by the last successful load."""
        log.debug("Loading latest profile")
        return cls.from_file(latest_path, key_map, latest_path)