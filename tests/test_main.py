import json
import logging

import pytest

from keybinder.keymap import KeyMap
from keybinder.main import load_profile, main
from keybinder.profile import KeyPress, ProfileError, TapKey

PROFILE = {
    "profile_name": "Test",
    "layers": [
        {
            "layer_name": "base",
            "remappings": [
                {
                    "trigger": {"type": "key_press", "value": "A"},
                    "bind": {"type": "tap_key", "value": "B"},
                }
            ],
        }
    ],
}


@pytest.fixture
def key_map():
    return KeyMap.for_platform("linux")


@pytest.fixture
def profile_file(tmp_path):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(PROFILE), encoding="utf-8")
    return path


def test_load_profile_from_file(profile_file, key_map, tmp_path):
    profile = load_profile(profile_file, key_map, tmp_path / "latest.json")
    assert profile.name == "Test"
    trigger, bind = profile.layers[0].remappings[0]
    assert trigger == KeyPress(key_map.string_to_key_code("A"))
    assert bind == TapKey(key_map.string_to_key_code("B"))


def test_load_profile_without_path_uses_latest(profile_file, key_map, tmp_path):
    latest = tmp_path / "latest.json"
    loaded = load_profile(profile_file, key_map, latest)
    assert load_profile(None, key_map, latest) == loaded


def test_empty_name_loads_latest(profile_file, key_map, tmp_path):
    latest = tmp_path / "latest.json"
    loaded = load_profile(profile_file, key_map, latest)
    assert load_profile("empty", key_map, latest) == loaded


def test_load_profile_missing_file_raises(key_map, tmp_path):
    with pytest.raises(ProfileError):
        load_profile(tmp_path / "nope.json", key_map, tmp_path / "latest.json")


def test_load_profile_without_latest_raises(key_map, tmp_path):
    with pytest.raises(ProfileError):
        load_profile(None, key_map, tmp_path / "latest.json")


def test_main_fails_on_missing_profile(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    handlers_before = list(logging.getLogger().handlers)
    assert main([str(tmp_path / "nope.json")]) == 1
    assert logging.getLogger().handlers == handlers_before
    text = (tmp_path / "logs" / "myapp.log").read_text(encoding="utf-8")
    assert "CRITICAL" in text
    assert "START-OF-PROGRAM" in text


def test_main_without_latest_profile_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main([]) == 1