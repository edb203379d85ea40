"""Fixed-layout messages for synchronised multi-client playback.

Layouts are little-endian and match a C struct layout with natural
alignment, so messages can be exchanged with other processes as raw bytes.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

NOTE_ON = 0
NOTE_OFF = 1
MAX_TRACK_OVERRIDES = 16

_OVERRIDE = struct.Struct("<BB2s")
_HEARTBEAT_HEADER = struct.Struct("<H2xIIIB3s")


def _check_range(name: str, value: int, bits: int) -> None:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in {bits} bits, got {value}")


def _check_reserved(value: bytes, size: int) -> None:
    if len(value) != size:
        raise ValueError(f"reserved field must be {size} bytes, got {len(value)}")


@dataclass(frozen=True)
class MidiNoteEvent:
    """A single note on/off message with a timestamp."""

    channel: int
    pitch: int
    velocity: int
    kind: int
    timestamp: int
    reserved: bytes = bytes(4)

    def __post_init__(self) -> None:
        for name in ("channel", "pitch", "velocity", "kind"):
            _check_range(name, getattr(self, name), 8)
        _check_range("timestamp", self.timestamp, 64)
        _check_reserved(self.reserved, 4)


@dataclass(frozen=True)
class TrackVoiceOverride:
    """Replaces the MIDI program used for one track."""

    BYTE_SIZE: ClassVar[int] = _OVERRIDE.size

    track_index: int = 0
    voice: int = 0
    reserved: bytes = bytes(2)

    def __post_init__(self) -> None:
        _check_range("track_index", self.track_index, 8)
        _check_range("voice", self.voice, 8)
        _check_reserved(self.reserved, 2)

    def to_bytes(self) -> bytes:
        """Encode the override in its wire layout."""
        return _OVERRIDE.pack(self.track_index, self.voice, bytes(self.reserved))

    @classmethod
    def from_bytes(cls, data: bytes) -> TrackVoiceOverride:
        """Decode an override; raise ValueError if the size is wrong."""
        data = bytes(data)
        if len(data) != cls.BYTE_SIZE:
            raise ValueError(f"expected {cls.BYTE_SIZE} bytes, got {len(data)}")
        track_index, voice, reserved = _OVERRIDE.unpack(data)
        return cls(track_index, voice, reserved)


def _default_overrides() -> tuple[TrackVoiceOverride, ...]:
    return (TrackVoiceOverride(),) * MAX_TRACK_OVERRIDES


@dataclass(frozen=True)
class PlaySongAtHeartbeat:
    """Request to start a song at a given global heartbeat.

    ``stop_heartbeat`` and ``play_for_duration_ms`` are ignored when zero.
    """

    BYTE_SIZE: ClassVar[int] = (
        _HEARTBEAT_HEADER.size + MAX_TRACK_OVERRIDES * TrackVoiceOverride.BYTE_SIZE
    )

    song_index: int = 0
    start_heartbeat: int = 0
    stop_heartbeat: int = 0
    play_for_duration_ms: int = 0
    num_track_overrides: int = 0
    reserved: bytes = bytes(3)
    track_overrides: tuple[TrackVoiceOverride, ...] = field(
        default_factory=_default_overrides
    )

    def __post_init__(self) -> None:
        _check_range("song_index", self.song_index, 16)
        _check_range("start_heartbeat", self.start_heartbeat, 32)
        _check_range("stop_heartbeat", self.stop_heartbeat, 32)
        _check_range("play_for_duration_ms", self.play_for_duration_ms, 32)
        _check_range("num_track_overrides", self.num_track_overrides, 8)
        _check_reserved(self.reserved, 3)
        overrides = tuple(self.track_overrides)
        if len(overrides) != MAX_TRACK_OVERRIDES:
            raise ValueError(
                f"exactly {MAX_TRACK_OVERRIDES} track overrides are required, "
                f"got {len(overrides)}"
            )
        object.__setattr__(self, "track_overrides", overrides)

    @property
    def active_overrides(self) -> tuple[TrackVoiceOverride, ...]:
        """The overrides that ``num_track_overrides`` marks as in use."""
        return self.track_overrides[: self.num_track_overrides]

    def to_bytes(self) -> bytes:
        """Encode the message in its wire layout."""
        header = _HEARTBEAT_HEADER.pack(
            self.song_index,
            self.start_heartbeat,
            self.stop_heartbeat,
            self.play_for_duration_ms,
            self.num_track_overrides,
            bytes(self.reserved),
        )
        return header + b"".join(o.to_bytes() for o in self.track_overrides)

    @classmethod
    def from_bytes(cls, data: bytes) -> PlaySongAtHeartbeat:
        """Decode a message; raise ValueError if the size is wrong."""
        data = bytes(data)
        if len(data) != cls.BYTE_SIZE:
            raise ValueError(f"expected {cls.BYTE_SIZE} bytes, got {len(data)}")
        header_size = _HEARTBEAT_HEADER.size
        song, start, stop, duration, count, reserved = _HEARTBEAT_HEADER.unpack(
            data[:header_size]
        )
        overrides = tuple(
            TrackVoiceOverride(track, voice, res)
            for track, voice, res in _OVERRIDE.iter_unpack(data[header_size:])
        )
        return cls(song, start, stop, duration, count, reserved, overrides)