"""Song, track and note records shared by the player and its loaders."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

_YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={}"


@dataclass
class TrackInfo:
    """Summary of one track of a MIDI song."""

    index: int
    program: int | None = None
    guess: str | None = None
    channels: list[int] = field(default_factory=list)
    note_count: int = 0
    pitch_range: tuple[int, int] = (0, 0)
    sample_notes: list[int] = field(default_factory=list)


class SongType(Enum):
    """The kind of media a song is stored as."""

    MIDI = "Midi"
    MUSIC_XML = "MusicXml"
    OGG = "Ogg"
    MP3 = "Mp3"
    MP4 = "Mp4"
    WEBM = "Webm"
    YOUTUBE = "YouTube"
    TIDAL_CYCLES = "TidalCycles"
    OTHER = "Other"


class SourceKind(Enum):
    """Where the data of a song comes from."""

    EMBEDDED_MIDI = "EmbeddedMidi"
    EMBEDDED_OGG = "EmbeddedOgg"
    EMBEDDED_MP3 = "EmbeddedMp3"
    EMBEDDED_MP4 = "EmbeddedMp4"
    EMBEDDED_WEBM = "EmbeddedWebm"
    YOUTUBE = "YouTube"
    EMBEDDED_TIDAL_CYCLES = "EmbeddedTidalCycles"
    FILE_PATH = "FilePath"
    NONE = "None"


_BINARY_KINDS = frozenset(
    {
        SourceKind.EMBEDDED_MIDI,
        SourceKind.EMBEDDED_OGG,
        SourceKind.EMBEDDED_MP3,
        SourceKind.EMBEDDED_MP4,
        SourceKind.EMBEDDED_WEBM,
    }
)
_TEXT_KINDS = frozenset({SourceKind.EMBEDDED_TIDAL_CYCLES, SourceKind.FILE_PATH})


@dataclass(frozen=True)
class SongSource:
    """The origin of a song's data.

    Embedded binary kinds carry ``bytes`` in ``payload``; embedded Tidal
    patterns and file paths carry a ``str``; YouTube sources carry a
    ``video_id`` and optional ``start``/``end`` offsets in seconds.
    """

    kind: SourceKind = SourceKind.NONE
    payload: bytes | str | None = None
    video_id: str | None = None
    start: int | None = None
    end: int | None = None

    def __post_init__(self) -> None:
        if self.kind is SourceKind.YOUTUBE:
            if not self.video_id:
                raise ValueError("a YouTube source needs a video id")
        elif self.kind in _BINARY_KINDS:
            if not isinstance(self.payload, (bytes, bytearray)):
                raise ValueError(f"{self.kind.value} source needs bytes")
        elif self.kind in _TEXT_KINDS:
            if not isinstance(self.payload, str):
                raise ValueError(f"{self.kind.value} source needs a string")

    def url(self) -> str | None:
        """Return the web address of the song, if it has one."""
        if self.kind is SourceKind.YOUTUBE:
            return _YOUTUBE_WATCH_URL.format(self.video_id)
        return None


@dataclass
class SongInfo:
    """Everything the player knows about one song."""

    filename: str
    name: str
    tracks: list[TrackInfo]
    default_tempo: int
    ticks_per_q: int | None
    song_type: SongType
    source: SongSource = field(default_factory=SongSource)
    track_index_map: dict[int, int] = field(default_factory=dict)
    duration_ms: int | None = None


@dataclass(frozen=True)
class Note:
    """One scheduled note, timed in milliseconds."""

    start_ms: int
    dur_ms: int
    chan: int
    pitch: int
    vel: int
    track: int


@dataclass(frozen=True)
class SongData:
    """Pre-computed note timeline for an embedded song."""

    track_notes: tuple[tuple[Note, ...], ...]
    ticks_per_q: int
    default_tempo: int
    filename: str
    name: str


@dataclass
class XmlTrackInfo:
    """Summary of one part of a MusicXML score."""

    index: int
    name: str
    note_count: int
    pitch_range: tuple[int, int]
    sample_notes: list[int]
    program: int
    channels: list[int]


@dataclass
class XmlSongInfo:
    """A MusicXML score reduced to per-part note timelines.

    Each timeline entry is ``(start, duration, voice, pitch, velocity)``.
    """

    filename: str
    name: str
    tracks: list[XmlTrackInfo]
    track_notes: list[list[tuple[int, int, int, int, int]]]
    default_tempo: int
    ticks_per_q: int