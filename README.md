# emidi

Building blocks for a MIDI player:

- `emidi.songs` has the song, track and note records: `SongInfo`, `TrackInfo`, `Note`, `SongData`, `SongSource`, `SongType`, `XmlSongInfo` and `XmlTrackInfo`.
- `emidi.midi` has the General MIDI instrument names (`GM_INSTRUMENT_NAMES`, `gm_instrument_name`).
- `emidi.embed_midi` reads `.mid` files into per-track note timelines and track summaries (`extract_midi_songs`, `program_family`). It uses `mido` to do this.
- `emidi.embed_musicxml` reads partwise MusicXML `.xml` files the same way. It takes instrument names and programs from the part list (`extract_musicxml_songs`, `extract_part_list_mapping`, `instrument_name_to_program`, `step_to_midi`).
- `emidi.ipc_protocol` has the fixed little-endian binary layout of synchronised-playback messages (`PlaySongAtHeartbeat`, `TrackVoiceOverride`, `MidiNoteEvent`).
- `emidi.ipc` is an event bus that works inside one process:
  - `common`: app ids, error classes and JSON payload encoding into 4096-byte buffers.
  - `events`: `Event`, `EventKind` and `StateType`.
  - `channel`: named publish/subscribe services.
  - `publisher` and `subscriber`: `EventPublisher`, `EventSubscriber` and `EventFilter`.
  - `service`: `ServiceRegistry`, `IpcServiceManager` and an event relay thread.
  - `music_sync`: `MusicSyncPublisher` and `MusicSyncSubscriber` for `PlaySongAtHeartbeat` requests.
- `emidi.media_playback` plays audio and video files through an external `mpv` (`play_media_file`).

## Installation

```
pip install .
```

To install with the test tools:

```
pip install ".[test]"
```

## Examples

Look up General MIDI instrument names:

```python
from emidi.midi import gm_instrument_name

gm_instrument_name(0)    # "Acoustic Grand Piano"
gm_instrument_name(200)  # "Unknown"
```

Scan a directory of MIDI files. This loads every `.mid` file directly inside the directory, sorted by file name. A missing directory gives an empty list.

```python
from pathlib import Path
from emidi.embed_midi import extract_midi_songs

for song in extract_midi_songs(Path("songs")):
    print(song.name, song.default_tempo, len(song.tracks))
```

`default_tempo` is in BPM. Each entry in `track_notes` is `(start, duration, channel, pitch, velocity, track)`, with times in ticks.

`extract_musicxml_songs` reads MusicXML scores. It skips scores that cannot be read as partwise MusicXML. Each timeline entry is `(start, duration, voice, pitch, velocity)`.

Publish and receive events:

```python
from emidi.ipc.common import AppId
from emidi.ipc.events import Event
from emidi.ipc.publisher import EventPublisher
from emidi.ipc.subscriber import EventSubscriber

publisher = EventPublisher(AppId.E_MIDI)
subscriber = EventSubscriber(AppId.E_MIDI, AppId.E_MIDI)
publisher.publish(Event.midi_command_play(3))
events = subscriber.try_receive()
```

A subscriber opens an existing service and does not create one. If no publisher has opened the service yet, it raises `ServiceCreationError`. A subscriber only receives payloads sent while it is connected.

On the wire, events are JSON of the form `{"MidiCommandPlay": {"song_index": 3, "timestamp": ...}}`. `EventFilter.midi_only()` and `EventFilter.system_only()` select events by category.

Pack a synchronised-playback request into bytes:

```python
from emidi.ipc_protocol import PlaySongAtHeartbeat

msg = PlaySongAtHeartbeat(song_index=2, start_heartbeat=100)
assert PlaySongAtHeartbeat.from_bytes(msg.to_bytes()) == msg
```

Play a media file. This call blocks until the file ends or the `threading.Event` passed as `stop_flag` is set:

```python
import threading
from emidi.media_playback import play_media_file

play_media_file("intro.ogg", file_path="/tmp/intro.ogg", stop_flag=threading.Event())
```

If `mpv` is not on the `PATH`, `MediaPlaybackError` is raised.

## What it does not do

- There is no command-line program and no terminal or graphical interface.
- The package does not produce sound from MIDI note timelines. It extracts them but does not play them.
- The event bus connects publishers and subscribers within one Python process only. Nothing is sent between processes.
- Media playback uses `mpv` only. There is no other audio backend.

## Running the tests

```
pytest
```