"""Shared types, errors and payload encoding for inter-process messages."""

from __future__ import annotations

import dataclasses
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MAX_PAYLOAD_SIZE = 4096


def generate_event_id() -> int:
    """Return an event id derived from the current time in nanoseconds."""
    return time.time_ns()


class AppId(Enum):
    """Applications that take part in the message exchange."""

    E_MIDI = "EMidi"
    E_GRID = "EGrid"
    STATE_SERVER = "StateServer"
    DEMO05 = "Demo05"
    UNKNOWN = "Unknown"


@dataclass
class WindowState:
    """Position and visibility of an application window."""

    app_id: AppId = AppId.UNKNOWN
    window_id: str = ""
    title: str = ""
    focused: bool = False
    visible: bool = True
    position: tuple[int, int] = (0, 0)
    size: tuple[int, int] = (800, 600)
    timestamp: int = field(default_factory=generate_event_id)


@dataclass
class MidiPlaybackState:
    """Snapshot of what the player is doing."""

    is_playing: bool = False
    current_song_index: int | None = None
    current_song_name: str = ""
    progress_ms: int = 0
    total_duration_ms: int = 0
    tempo_bpm: int = 120
    volume: float = 1.0
    timestamp: int = field(default_factory=generate_event_id)


@dataclass
class IpcSongInfo:
    """Song description as sent to other applications."""

    index: int
    name: str
    filename: str
    track_count: int
    default_tempo: int
    duration_ms: int | None
    is_dynamic: bool


@dataclass
class GridState:
    """Contents and selection of a grid."""

    grid_id: str = ""
    cells: list[list[str]] = field(default_factory=list)
    selected_cell: tuple[int, int] | None = None
    timestamp: int = field(default_factory=generate_event_id)


class IpcError(Exception):
    """Base class of all inter-process communication failures."""

    prefix = "IPC error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"


class NodeCreationError(IpcError):
    prefix = "Node creation failed"


class ServiceCreationError(IpcError):
    prefix = "Service creation failed"


class PublisherCreationError(IpcError):
    prefix = "Publisher creation failed"


class SubscriberCreationError(IpcError):
    prefix = "Subscriber creation failed"


class SendError(IpcError):
    prefix = "Send failed"


class ReceiveError(IpcError):
    prefix = "Receive failed"


class SerializationError(IpcError):
    prefix = "Serialization failed"


class DeserializationError(IpcError):
    prefix = "Deserialization failed"


class PayloadTooLargeError(IpcError):
    prefix = "Payload too large"


def _to_jsonable(obj: Any) -> Any:
    to_json = getattr(obj, "to_json", None)
    if callable(to_json) and not isinstance(obj, type):
        return to_json()
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, (bytes, bytearray)):
        return list(obj)
    raise TypeError(f"cannot serialise {type(obj).__name__}")


def serialize_to_payload(data: Any) -> bytes:
    """Encode ``data`` as JSON in a zero-padded buffer of MAX_PAYLOAD_SIZE bytes."""
    try:
        text = json.dumps(
            data, default=_to_jsonable, separators=(",", ":"), ensure_ascii=False
        )
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Serialization failed: {exc}") from exc
    encoded = text.encode("utf-8")
    if len(encoded) > MAX_PAYLOAD_SIZE:
        raise PayloadTooLargeError(
            f"Payload size {len(encoded)} exceeds maximum {MAX_PAYLOAD_SIZE}"
        )
    return encoded.ljust(MAX_PAYLOAD_SIZE, b"\x00")


def deserialize_from_payload(payload: bytes, size: int) -> Any:
    """Decode the JSON held in the first ``size`` bytes of ``payload``."""
    if size > MAX_PAYLOAD_SIZE:
        raise DeserializationError(
            f"Payload size {size} exceeds maximum {MAX_PAYLOAD_SIZE}"
        )
    try:
        return json.loads(bytes(payload[:size]).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise DeserializationError(f"Deserialization failed: {exc}") from exc