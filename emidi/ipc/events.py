"""Events exchanged between the player, its front ends and other applications."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from emidi.ipc.common import AppId, generate_event_id


class EventKind(Enum):
    """Every kind of event, named as it appears on the wire."""

    WINDOW_FOCUSED = "WindowFocused"
    WINDOW_CLOSED = "WindowClosed"
    WINDOW_RESIZED = "WindowResized"
    MIDI_COMMAND_PLAY = "MidiCommandPlay"
    MIDI_COMMAND_STOP = "MidiCommandStop"
    MIDI_COMMAND_PAUSE = "MidiCommandPause"
    MIDI_COMMAND_RESUME = "MidiCommandResume"
    MIDI_COMMAND_NEXT = "MidiCommandNext"
    MIDI_COMMAND_PREVIOUS = "MidiCommandPrevious"
    MIDI_COMMAND_SET_TEMPO = "MidiCommandSetTempo"
    MIDI_COMMAND_SONG_LIST_REQUEST = "MidiCommandSongListRequest"
    MIDI_PLAYBACK_STARTED = "MidiPlaybackStarted"
    MIDI_PLAYBACK_STOPPED = "MidiPlaybackStopped"
    MIDI_PLAYBACK_PAUSED = "MidiPlaybackPaused"
    MIDI_PLAYBACK_RESUMED = "MidiPlaybackResumed"
    MIDI_TEMPO_CHANGED = "MidiTempoChanged"
    MIDI_SONG_CHANGED = "MidiSongChanged"
    MIDI_PROGRESS_UPDATE = "MidiProgressUpdate"
    MIDI_SONG_LIST_UPDATED = "MidiSongListUpdated"
    GRID_CELL_SELECTED = "GridCellSelected"
    GRID_CELL_UPDATED = "GridCellUpdated"
    GRID_STATE_CHANGED = "GridStateChanged"
    SYSTEM_SHUTDOWN = "SystemShutdown"
    SYSTEM_HEARTBEAT = "SystemHeartbeat"
    STATE_REQUEST = "StateRequest"
    STATE_RESPONSE = "StateResponse"
    MIDI_NOTE_ON = "MidiNoteOn"
    MIDI_NOTE_OFF = "MidiNoteOff"
    MIDI_PROGRAM_CHANGE = "MidiProgramChange"


_K = EventKind

# Field names of each kind, in wire order; every kind carries a timestamp.
_FIELDS: dict[EventKind, tuple[str, ...]] = {
    _K.WINDOW_FOCUSED: ("window_id", "app_id", "timestamp"),
    _K.WINDOW_CLOSED: ("window_id", "app_id", "timestamp"),
    _K.WINDOW_RESIZED: ("window_id", "size", "timestamp"),
    _K.MIDI_COMMAND_PLAY: ("song_index", "timestamp"),
    _K.MIDI_COMMAND_STOP: ("timestamp",),
    _K.MIDI_COMMAND_PAUSE: ("timestamp",),
    _K.MIDI_COMMAND_RESUME: ("timestamp",),
    _K.MIDI_COMMAND_NEXT: ("timestamp",),
    _K.MIDI_COMMAND_PREVIOUS: ("timestamp",),
    _K.MIDI_COMMAND_SET_TEMPO: ("new_tempo", "timestamp"),
    _K.MIDI_COMMAND_SONG_LIST_REQUEST: ("timestamp",),
    _K.MIDI_PLAYBACK_STARTED: ("song_index", "song_name", "timestamp"),
    _K.MIDI_PLAYBACK_STOPPED: ("timestamp",),
    _K.MIDI_PLAYBACK_PAUSED: ("timestamp",),
    _K.MIDI_PLAYBACK_RESUMED: ("timestamp",),
    _K.MIDI_TEMPO_CHANGED: ("new_tempo", "timestamp"),
    _K.MIDI_SONG_CHANGED: ("song_index", "song_name", "timestamp"),
    _K.MIDI_PROGRESS_UPDATE: ("progress_ms", "total_ms", "timestamp"),
    _K.MIDI_SONG_LIST_UPDATED: ("song_count", "timestamp"),
    _K.GRID_CELL_SELECTED: ("grid_id", "cell", "timestamp"),
    _K.GRID_CELL_UPDATED: ("grid_id", "cell", "value", "timestamp"),
    _K.GRID_STATE_CHANGED: ("grid_id", "timestamp"),
    _K.SYSTEM_SHUTDOWN: ("timestamp",),
    _K.SYSTEM_HEARTBEAT: ("app_id", "timestamp"),
    _K.STATE_REQUEST: ("requesting_app", "state_type", "timestamp"),
    _K.STATE_RESPONSE: ("state_type", "data", "timestamp"),
    _K.MIDI_NOTE_ON: ("channel", "pitch", "velocity", "timestamp"),
    _K.MIDI_NOTE_OFF: ("channel", "pitch", "timestamp"),
    _K.MIDI_PROGRAM_CHANGE: ("channel", "program", "timestamp"),
}

_APP_FIELDS = frozenset({"app_id", "requesting_app"})
_PAIR_FIELDS = frozenset({"size", "cell"})
_STR_FIELDS = frozenset({"window_id", "song_name", "grid_id", "value"})

_MIDI_KINDS = frozenset(
    {
        _K.MIDI_COMMAND_PLAY,
        _K.MIDI_COMMAND_STOP,
        _K.MIDI_COMMAND_PAUSE,
        _K.MIDI_COMMAND_RESUME,
        _K.MIDI_COMMAND_NEXT,
        _K.MIDI_COMMAND_PREVIOUS,
        _K.MIDI_COMMAND_SET_TEMPO,
        _K.MIDI_COMMAND_SONG_LIST_REQUEST,
        _K.MIDI_PLAYBACK_STARTED,
        _K.MIDI_PLAYBACK_STOPPED,
        _K.MIDI_PLAYBACK_PAUSED,
        _K.MIDI_PLAYBACK_RESUMED,
        _K.MIDI_TEMPO_CHANGED,
        _K.MIDI_SONG_CHANGED,
        _K.MIDI_PROGRESS_UPDATE,
        _K.MIDI_SONG_LIST_UPDATED,
    }
)
_GRID_KINDS = frozenset(
    {_K.GRID_CELL_SELECTED, _K.GRID_CELL_UPDATED, _K.GRID_STATE_CHANGED}
)

_UNIT_STATES = ("WindowStates", "MidiPlayback", "MidiSongList", "AllStates")
_GRID_STATE = "GridState"


def _is_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class StateType:
    """A kind of state that applications can ask each other for.

    ``name`` is one of WindowStates, MidiPlayback, MidiSongList, AllStates
    or GridState; only GridState carries a ``grid_id``.
    """

    name: str
    grid_id: str | None = None

    def __post_init__(self) -> None:
        if self.name == _GRID_STATE:
            if not isinstance(self.grid_id, str):
                raise ValueError("GridState needs a grid id")
        elif self.name in _UNIT_STATES:
            if self.grid_id is not None:
                raise ValueError(f"{self.name} takes no grid id")
        else:
            raise ValueError(f"unknown state type {self.name!r}")

    def to_json(self) -> Any:
        """Return the JSON-ready form of this state type."""
        if self.name == _GRID_STATE:
            return {_GRID_STATE: self.grid_id}
        return self.name

    @classmethod
    def from_json(cls, value: Any) -> StateType:
        """Build a state type from its JSON-ready form."""
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, dict) and len(value) == 1:
            (name, grid_id), = value.items()
            return cls(name, grid_id)
        raise ValueError(f"malformed state type {value!r}")


def _normalise(name: str, value: Any) -> Any:
    if name in _APP_FIELDS:
        return value if isinstance(value, AppId) else AppId(value)
    if name == "state_type":
        return value if isinstance(value, StateType) else StateType.from_json(value)
    if name in _PAIR_FIELDS:
        if isinstance(value, (str, bytes)):
            raise ValueError(f"{name} must be a pair of integers")
        pair = tuple(value)
        if len(pair) != 2 or not all(_is_uint(v) for v in pair):
            raise ValueError(f"{name} must be a pair of non-negative integers")
        return pair
    if name == "data":
        if isinstance(value, (int, str)):
            raise ValueError("data must be a byte sequence")
        try:
            return bytes(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"data must be a byte sequence: {exc}") from exc
    if name in _STR_FIELDS:
        if not isinstance(value, str):
            raise ValueError(f"{name} must be a string")
        return value
    if not _is_uint(value):
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def _encode(value: Any) -> Any:
    if isinstance(value, AppId):
        return value.value
    if isinstance(value, StateType):
        return value.to_json()
    if isinstance(value, tuple):
        return list(value)
    if isinstance(value, bytes):
        return list(value)
    return value


@dataclass(frozen=True)
class Event:
    """One event: its kind, its timestamp and the kind's other fields."""

    kind: EventKind
    timestamp: int
    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.kind, EventKind):
            raise ValueError(f"not an event kind: {self.kind!r}")
        if not _is_uint(self.timestamp):
            raise ValueError("timestamp must be a non-negative integer")
        names = [n for n in _FIELDS[self.kind] if n != "timestamp"]
        given = dict(self.values)
        missing = [n for n in names if n not in given]
        extra = sorted(set(given) - set(names))
        if missing or extra:
            raise ValueError(
                f"{self.kind.value}: missing fields {missing}, unexpected {extra}"
            )
        normalised = {n: _normalise(n, given[n]) for n in names}
        object.__setattr__(self, "values", MappingProxyType(normalised))

    def __getitem__(self, name: str) -> Any:
        if name == "timestamp":
            return self.timestamp
        return self.values[name]

    def event_id(self) -> int:
        """Return the event id, which is its timestamp."""
        return self.timestamp

    def typical_source(self) -> AppId:
        """Return the application that usually sends this kind of event."""
        if self.kind in _MIDI_KINDS:
            return AppId.E_MIDI
        if self.kind in _GRID_KINDS:
            return AppId.E_GRID
        if self.kind in (_K.WINDOW_FOCUSED, _K.WINDOW_CLOSED):
            return self.values["app_id"]
        if self.kind is _K.STATE_REQUEST:
            return self.values["requesting_app"]
        return AppId.UNKNOWN

    def to_json(self) -> dict[str, dict[str, Any]]:
        """Return the JSON-ready form: the kind name mapped to its fields."""
        body = {n: _encode(self[n]) for n in _FIELDS[self.kind]}
        return {self.kind.value: body}

    @classmethod
    def from_json(cls, value: Any) -> Event:
        """Build an event from its JSON-ready form."""
        if not isinstance(value, dict) or len(value) != 1:
            raise ValueError("an event is an object with exactly one key")
        (name, body), = value.items()
        kind = EventKind(name)
        if not isinstance(body, dict) or "timestamp" not in body:
            raise ValueError(f"{name}: body must be an object with a timestamp")
        fields = {k: v for k, v in body.items() if k != "timestamp"}
        return cls(kind, body["timestamp"], fields)

    @classmethod
    def midi_playback_started(cls, song_index: int, song_name: str) -> Event:
        return cls(
            _K.MIDI_PLAYBACK_STARTED,
            generate_event_id(),
            {"song_index": song_index, "song_name": song_name},
        )

    @classmethod
    def midi_playback_stopped(cls) -> Event:
        return cls(_K.MIDI_PLAYBACK_STOPPED, generate_event_id())

    @classmethod
    def midi_tempo_changed(cls, new_tempo: int) -> Event:
        return cls(_K.MIDI_TEMPO_CHANGED, generate_event_id(), {"new_tempo": new_tempo})

    @classmethod
    def midi_progress_update(cls, progress_ms: int, total_ms: int) -> Event:
        return cls(
            _K.MIDI_PROGRESS_UPDATE,
            generate_event_id(),
            {"progress_ms": progress_ms, "total_ms": total_ms},
        )

    @classmethod
    def system_heartbeat(cls, app_id: AppId) -> Event:
        return cls(_K.SYSTEM_HEARTBEAT, generate_event_id(), {"app_id": app_id})

    @classmethod
    def midi_command_play(cls, song_index: int) -> Event:
        return cls(_K.MIDI_COMMAND_PLAY, _now_ms(), {"song_index": song_index})

    @classmethod
    def midi_command_stop(cls) -> Event:
        return cls(_K.MIDI_COMMAND_STOP, _now_ms())

    @classmethod
    def midi_command_next(cls) -> Event:
        return cls(_K.MIDI_COMMAND_NEXT, _now_ms())

    @classmethod
    def midi_command_previous(cls) -> Event:
        return cls(_K.MIDI_COMMAND_PREVIOUS, _now_ms())

    @classmethod
    def midi_command_set_tempo(cls, new_tempo: int) -> Event:
        return cls(_K.MIDI_COMMAND_SET_TEMPO, _now_ms(), {"new_tempo": new_tempo})