"""Extraction of note timelines and track summaries from MIDI files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import mido

_log = logging.getLogger(__name__)

DEFAULT_TEMPO_US = 500_000
FALLBACK_TICKS_PER_Q = 96
NOTE_VELOCITY = 64
SAMPLE_NOTE_COUNT = 5

_U32 = 0xFFFFFFFF

_FAMILIES = (
    (0, 8, "Piano"),
    (9, 16, "Chromatic Percussion"),
    (17, 24, "Organ"),
    (25, 32, "Guitar"),
    (33, 40, "Bass"),
    (41, 48, "Strings"),
    (49, 56, "Ensemble"),
    (57, 64, "Brass"),
    (65, 72, "Reed"),
    (73, 80, "Pipe"),
    (81, 88, "Synth Lead"),
    (89, 96, "Synth Pad"),
    (97, 104, "Synth Effects"),
    (105, 112, "Ethnic"),
    (113, 120, "Percussive"),
    (121, 128, "Sound Effects"),
)


@dataclass
class MidiTrackInfo:
    """Summary of one track that holds notes."""

    index: int
    program: int | None
    guess: str | None
    channels: list[int]
    note_count: int
    pitch_range: tuple[int, int]
    sample_notes: list[int]


@dataclass
class MidiSongInfo:
    """A MIDI file reduced to per-track note timelines.

    Each timeline entry is ``(start, duration, channel, pitch, velocity,
    track)`` with times in ticks. ``default_tempo`` is in BPM.
    """

    filename: str
    name: str
    tracks: list[MidiTrackInfo]
    default_tempo: int
    ticks_per_q: int
    track_notes: list[list[tuple[int, int, int, int, int, int]]] = field(
        default_factory=list
    )


def program_family(program: int | None) -> str | None:
    """Return a rough instrument family for a program number, or None."""
    if program is None:
        return None
    for low, high, family in _FAMILIES:
        if low <= program <= high:
            return family
    return None


def _ticks_per_quarter(midi: mido.MidiFile, path: Path) -> int:
    ticks = midi.ticks_per_beat
    if 0 < ticks < 0x8000:
        return ticks
    _log.warning(
        "%s: non-metrical timing in MIDI header (%s); using %d ticks per quarter",
        path,
        ticks,
        FALLBACK_TICKS_PER_Q,
    )
    return FALLBACK_TICKS_PER_Q


def _log_tempo_events(midi: mido.MidiFile, path: Path) -> None:
    for track_idx, track in enumerate(midi.tracks):
        abs_time = 0
        for msg in track:
            abs_time = (abs_time + msg.time) & _U32
            if msg.is_meta and msg.type == "set_tempo" and msg.tempo:
                _log.info(
                    "%s: track %d tick %d: tempo %d us/qn (%d BPM)",
                    path,
                    track_idx,
                    abs_time,
                    msg.tempo,
                    60_000_000 // msg.tempo,
                )


def _first_tempo(midi: mido.MidiFile) -> int:
    tempo = DEFAULT_TEMPO_US
    for track in midi.tracks:
        for msg in track:
            if msg.is_meta and msg.type == "set_tempo":
                tempo = msg.tempo
                break
        if tempo != DEFAULT_TEMPO_US:
            break
    return tempo


def _scan_track(index: int, track: mido.MidiTrack, ticks_per_q: int):
    notes: list[tuple[int, int, int, int, int, int]] = []
    open_notes: dict[tuple[int, int], int] = {}
    channels: list[int] = []
    pitches: list[int] = []
    program: int | None = None
    min_pitch, max_pitch = 0xFF, 0
    min_duration = ticks_per_q // 8
    abs_time = 0

    for msg in track:
        abs_time = (abs_time + msg.time) & _U32
        if msg.is_meta or not hasattr(msg, "channel"):
            continue
        channel = msg.channel
        if channel not in channels:
            channels.append(channel)
        if msg.type == "note_on" and msg.velocity > 0:
            open_notes[(channel, msg.note)] = abs_time
            pitches.append(msg.note)
            min_pitch = min(min_pitch, msg.note)
            max_pitch = max(max_pitch, msg.note)
        elif msg.type in ("note_on", "note_off"):
            start = open_notes.pop((channel, msg.note), None)
            if start is not None:
                duration = max(abs_time - start, 0)
                notes.append(
                    (
                        start,
                        max(duration, min_duration),
                        channel,
                        msg.note,
                        NOTE_VELOCITY,
                        index,
                    )
                )
        elif msg.type == "program_change":
            program = msg.program

    info = None
    if pitches:
        info = MidiTrackInfo(
            index=index,
            program=program,
            guess=program_family(program),
            channels=channels,
            note_count=len(pitches),
            pitch_range=(min_pitch, max_pitch),
            sample_notes=pitches[:SAMPLE_NOTE_COUNT],
        )
    return notes, info


def _load_song(path: Path) -> MidiSongInfo:
    midi = mido.MidiFile(str(path))
    ticks_per_q = _ticks_per_quarter(midi, path)
    _log_tempo_events(midi, path)

    track_notes = []
    track_infos = []
    for index, track in enumerate(midi.tracks):
        notes, info = _scan_track(index, track, ticks_per_q)
        track_notes.append(notes)
        if info is not None:
            track_infos.append(info)

    tempo = _first_tempo(midi)
    bpm = 60_000_000 // tempo
    filename = path.name
    _log.info(
        "%s: tempo %d us/qn (%d BPM), ticks_per_q = %d",
        filename,
        tempo,
        bpm,
        ticks_per_q,
    )
    return MidiSongInfo(
        filename=filename,
        name=filename.replace(".mid", "").replace("_", " "),
        tracks=track_infos,
        default_tempo=bpm,
        ticks_per_q=ticks_per_q,
        track_notes=track_notes,
    )


def extract_midi_songs(midi_dir: str | Path) -> list[MidiSongInfo]:
    """Load every ``.mid`` file directly inside ``midi_dir``, by file name.

    A missing directory yields an empty list; unreadable files raise.
    """
    directory = Path(midi_dir)
    if not directory.exists():
        return []
    return [
        _load_song(path)
        for path in sorted(directory.iterdir())
        if path.suffix == ".mid"
    ]