# keybinder

A keyboard remapping daemon for Linux. It grabs a keyboard's evdev device,
passes every key event through a mapper built from a JSON profile, and injects
the result through a uinput virtual keyboard. A local Unix socket accepts new
profiles while the daemon is running.

## Running

```
keybinder [PROFILE]
```

With a path, the profile in that file is loaded. Without one (or with the
name `empty`), the profile loaded most recently is used; every successfully
parsed profile is saved to `./last_loaded.profile.json` for this purpose. If
the profile cannot be found or parsed, the command prints the error and exits
with status 1.

The keyboard device is read from a `keyboard=` line in
`~/.config/clickr/config.json`. If there is none, the daemon lists the
`/dev/input/event*` devices that report the space and X keys and asks you to
press SPACE on the keyboard you want to remap, waiting up to 30 seconds; the
result is recorded in that file and reused afterwards. Read and write access
to the input devices and to `/dev/uinput` is required.

Stop the daemon with Ctrl+C or SIGTERM: the socket is closed and removed, the
daemon thread is asked to stop (waiting up to 5 seconds), the keyboard is
released and the virtual device destroyed.

## Profiles

A profile is a JSON object with a name and a list of layers. Each layer holds
remappings, each a trigger paired with a bind:

```json
{
  "profile_name": "Example",
  "layers": [
    {
      "layer_name": "base",
      "remappings": [
        {
          "trigger": {"type": "key_press", "value": "A"},
          "bind": {"type": "tap_key", "value": "B"}
        },
        {
          "trigger": {
            "type": "tap_sequence",
            "key_time_pairs": [["Q", 300], ["Q", 300]],
            "behavior": "default"
          },
          "bind": {"type": "switch_layer", "value": 1}
        }
      ]
    }
  ]
}
```

Triggers:

- `key_press`, `key_release` — fire on that event of one key.
- `tap_sequence` — fires once every key in `key_time_pairs` has been pressed
  and released in order. `behavior` decides what happens to the typed keys:
  `capture` swallows them, `release` lets them through, and `default`
  swallows them but sends them out if the sequence is broken.

Binds: `press_key`, `release_key`, `tap_key` (press then release),
`switch_layer` (by layer index), and `macro` (with a `binds` list of further
binds, performed in order).

Unknown properties are logged as warnings. Missing or mistyped properties,
unknown key names and unknown trigger or bind types raise
`keybinder.profile.ProfileError`.

Key names on Linux: letters `A`–`Z`, digits `0`–`9`, `Space`, `Enter`,
`Esc`/`Escape`, `Tab`, `Shift`, `Ctrl`, `Alt`, `Backspace`, `Pause`,
`CapsLock`, `F1`–`F12`, `~` `` ` `` `-` `=` `[` `]` `\` `;` `'` `,` `.` `/`,
`Up`, `Down`, `Left`, `Right`, `Insert`, `Delete`, `Home`, `End`, `PageUp`,
`PageDown`, `Cmd`/`Super`/`Meta` and `Menu`. `KeyMap.for_platform` also
provides the code tables for `win32` and `darwin`.

## Loading profiles at run time

Connect to the Unix socket `/tmp/clickr.sock` and send one JSON object per
line:

```json
{"type": "load_profile", "profile": { ... }}
```

Each line is answered with `{"status":"ok"}` or
`{"error":"...","status":"fail"}`. A loaded profile replaces the active one,
resets to its first layer and is saved as the latest profile.

## Logs

All log records are written to `logs/myapp.log` as
`YYYY-MM-DD HH:MM:SS LEVEL message`, with start- and end-of-program banner
lines. When the file passes 10 MB it is renamed to a timestamped
`myapp.log_<time>.bak` backup; once five backups exist, the oldest is removed
before the next one is made.

## Library use

```python
from keybinder.event import AbstractDaemon, InputEvent, KeyEventType
from keybinder.keymap import KeyMap
from keybinder.mapper import Mapper
from keybinder.profile import Profile


class PrintDaemon(AbstractDaemon):
    def start(self):
        pass

    def cleanup(self):
        pass

    def send_keys(self, events):
        for event in events:
            print(event)


key_map = KeyMap.for_platform("linux")
profile = Profile.from_file("profile.json", key_map, latest_path=None)
mapper = Mapper(profile, PrintDaemon())
consumed = mapper.map_input(InputEvent(30, KeyEventType.PRESS))
```

`map_input` returns True when the event was consumed by a remapping.
`Mapper.set_layer` switches layers and returns False for an index the profile
does not have. `Profile.from_bytes` and `Profile.from_json` parse documents
already in memory; pass `latest_path=None` to any of them to skip saving the
latest profile.

## Limits

- Capturing and injecting keys works on Linux only (`keybinder.evdev_daemon`);
  there is no daemon for Windows or macOS, and the socket server needs Unix
  sockets.
- The timeouts in `key_time_pairs` are read but not enforced: a tap sequence
  stays pending until it completes or is broken by another key.
- A profile's `default_layer` is ignored; the first layer is always active
  after loading, and a profile without layers cannot be activated.
- The virtual keyboard registers key codes 0–127 only.