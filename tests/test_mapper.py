import pytest

from keybinder.event import AbstractDaemon, InputEvent, KeyEventType
from keybinder.mapper import Mapper
from keybinder.profile import (
    KeyPress,
    KeyRelease,
    Layer,
    Macro,
    PressKey,
    Profile,
    ReleaseKey,
    SwapLayer,
    TapKey,
    TapSequence,
    TimedTriggerBehavior,
)

P = KeyEventType.PRESS
R = KeyEventType.RELEASE


class RecordingDaemon(AbstractDaemon):
    def __init__(self):
        self.batches = []

    def start(self):
        pass

    def cleanup(self):
        pass

    def send_keys(self, events):
        self.batches.append(list(events))


def press(code):
    return InputEvent(code, P)


def release(code):
    return InputEvent(code, R)


def make(*layers):
    daemon = RecordingDaemon()
    profile = Profile(
        name="test",
        layers=tuple(Layer(f"l{i}", tuple(r)) for i, r in enumerate(layers)),
    )
    return Mapper(profile, daemon), daemon


def test_press_trigger_taps_key():
    mapper, daemon = make([(KeyPress(1), TapKey(2))])
    assert mapper.map_input(press(1)) is True
    assert daemon.batches == [[press(2), release(2)]]


def test_unmapped_event_passes_through():
    mapper, daemon = make([(KeyPress(1), TapKey(2))])
    assert mapper.map_input(press(3)) is False
    assert mapper.map_input(release(1)) is False
    assert daemon.batches == []


def test_release_trigger():
    mapper, daemon = make([(KeyRelease(4), PressKey(5))])
    assert mapper.map_input(release(4)) is True
    assert daemon.batches == [[press(5)]]


def test_set_layer_bounds():
    mapper, _ = make([], [])
    assert mapper.set_layer(2) is False
    assert mapper.current_layer == 0
    assert mapper.set_layer(1) is True
    assert mapper.current_layer == 1


def test_swap_layer_bind_changes_triggers():
    mapper, daemon = make(
        [(KeyPress(1), SwapLayer(1))],
        [(KeyPress(1), TapKey(7))],
    )
    assert mapper.map_input(press(1)) is True
    assert mapper.current_layer == 1
    assert daemon.batches == [[]]
    mapper.map_input(press(1))
    assert daemon.batches[-1] == [press(7), release(7)]


def test_swap_to_missing_layer_raises():
    mapper, _ = make([(KeyPress(1), SwapLayer(3))])
    with pytest.raises(ValueError):
        mapper.map_input(press(1))
    assert mapper.current_layer == 0


def test_capture_tap_sequence_fires_once_complete():
    seq = TapSequence((1, 1), TimedTriggerBehavior.CAPTURE)
    mapper, daemon = make([(seq, TapKey(9))])
    results = [
        mapper.map_input(e) for e in (press(1), release(1), press(1))
    ]
    assert results == [True, True, True]
    assert daemon.batches == []
    assert mapper.map_input(release(1)) is True
    assert daemon.batches == [[press(9), release(9)]]


def test_release_behavior_passes_keys_but_still_fires():
    seq = TapSequence((1, 2), TimedTriggerBehavior.RELEASE)
    mapper, daemon = make([(seq, TapKey(9))])
    results = [
        mapper.map_input(e) for e in (press(1), release(1), press(2), release(2))
    ]
    assert results == [False, False, False, False]
    assert daemon.batches == [[press(9), release(9)]]


def test_default_behavior_replays_captured_keys_on_failure():
    seq = TapSequence((1, 2), TimedTriggerBehavior.DEFAULT)
    mapper, daemon = make([(seq, TapKey(9))])
    assert mapper.map_input(press(1)) is True
    assert mapper.map_input(release(1)) is True
    assert mapper.map_input(press(3)) is False
    assert daemon.batches == [[press(1), release(1)]]


def test_default_behavior_replays_pending_press():
    seq = TapSequence((1, 2), TimedTriggerBehavior.DEFAULT)
    mapper, daemon = make([(seq, TapKey(9))])
    mapper.map_input(press(1))
    assert mapper.map_input(press(3)) is False
    assert daemon.batches == [[press(1)]]


def test_failed_capture_sequence_can_restart():
    seq = TapSequence((1, 2), TimedTriggerBehavior.CAPTURE)
    mapper, daemon = make([(seq, TapKey(9))])
    mapper.map_input(press(1))
    mapper.map_input(release(1))
    assert mapper.map_input(press(3)) is False
    assert daemon.batches == []
    for e in (press(1), release(1), press(2), release(2)):
        assert mapper.map_input(e) is True
    assert daemon.batches == [[press(9), release(9)]]


def test_failed_sequence_event_still_uses_simple_trigger():
    seq = TapSequence((1, 2), TimedTriggerBehavior.CAPTURE)
    mapper, daemon = make([(seq, TapKey(9)), (KeyPress(3), TapKey(4))])
    mapper.map_input(press(1))
    assert mapper.map_input(press(3)) is True
    assert daemon.batches == [[press(4), release(4)]]


def test_set_profile_resets_to_default_layer():
    mapper, daemon = make([], [])
    mapper.set_layer(1)
    new_profile = Profile("other", (Layer("a", ((KeyPress(1), TapKey(2)),)),))
    mapper.set_profile(new_profile)
    assert mapper.current_layer == 0
    assert mapper.map_input(press(1)) is True
    assert daemon.batches == [[press(2), release(2)]]


def test_profile_without_layers_is_rejected():
    with pytest.raises(ValueError):
        Mapper(Profile("none", ()), RecordingDaemon())


def test_missing_daemon_raises_when_binding():
    mapper = Mapper(Profile("p", (Layer("a", ((KeyPress(1), TapKey(2)),)),)))
    with pytest.raises(RuntimeError):
        mapper.map_input(press(1))
    daemon = RecordingDaemon()
    mapper.set_daemon(daemon)
    assert mapper.map_input(press(1)) is True
    assert daemon.batches == [[press(2), release(2)]]