import pytest

from keybinder.event import AbstractDaemon, InputEvent, KeyEventType


class RecordingDaemon(AbstractDaemon):
    def __init__(self):
        self.sent = []
        self.started = False
        self.cleaned = False

    def start(self):
        self.started = True

    def cleanup(self):
        self.cleaned = True

    def send_keys(self, events):
        self.sent.extend(events)


def test_input_event_accepts_each_event_type_in_order():
    events = [InputEvent(1, event_type) for event_type in KeyEventType]
    assert [event.type.name for event in events] == ["PRESS", "RELEASE"]


def test_input_event_equality():
    a = InputEvent(30, KeyEventType.PRESS)
    assert a == InputEvent(30, KeyEventType.PRESS)
    assert a != InputEvent(30, KeyEventType.RELEASE)
    assert a.keycode == 30
    assert a.type is KeyEventType.PRESS


def test_input_event_is_frozen():
    event = InputEvent(5, KeyEventType.RELEASE)
    with pytest.raises(AttributeError):
        event.keycode = 6
    assert event.keycode == 5
    assert event.type is KeyEventType.RELEASE


def test_input_event_hashable():
    events = {InputEvent(1, KeyEventType.PRESS), InputEvent(1, KeyEventType.PRESS)}
    assert len(events) == 1


def test_abstract_daemon_cannot_be_instantiated():
    with pytest.raises(TypeError):
        AbstractDaemon()
    assert set(AbstractDaemon.__abstractmethods__) == {"start", "cleanup", "send_keys"}


def test_concrete_daemon_receives_events_in_order():
    daemon = RecordingDaemon()
    events = [InputEvent(7, KeyEventType.PRESS), InputEvent(7, KeyEventType.RELEASE)]
    daemon.send_keys(events)
    daemon.start()
    daemon.cleanup()
    assert daemon.sent == events
    assert daemon.started and daemon.cleaned