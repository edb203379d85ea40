"""Extraction of note timelines and part summaries from MusicXML scores."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from emidi.songs import XmlSongInfo, XmlTrackInfo

_log = logging.getLogger(__name__)

DEFAULT_TEMPO_BPM = 120
NOTE_VELOCITY = 64
DEFAULT_VOICE = 1
SAMPLE_NOTE_COUNT = 5

_STEPS = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

_PROGRAMS: dict[str, int] = {
    "acoustic grand piano": 0,
    "piano": 0,
    "bright acoustic piano": 1,
    "electric grand piano": 2,
    "honky-tonk piano": 3,
    "electric piano 1": 4,
    "rhodes": 4,
    "electric piano 2": 5,
    "harpsichord": 6,
    "clavinet": 7,
    "celesta": 8,
    "glockenspiel": 9,
    "music box": 10,
    "vibraphone": 11,
    "marimba": 12,
    "xylophone": 13,
    "tubular bells": 14,
    "dulcimer": 15,
    "drawbar organ": 16,
    "percussive organ": 17,
    "rock organ": 18,
    "church organ": 19,
    "organ": 19,
    "reed organ": 20,
    "accordion": 21,
    "harmonica": 22,
    "tango accordion": 23,
    "guitar": 24,
    "acoustic guitar": 24,
    "electric guitar (jazz)": 26,
    "electric guitar (clean)": 27,
    "electric guitar (muted)": 28,
    "overdriven guitar": 29,
    "distortion guitar": 30,
    "guitar harmonics": 31,
    "acoustic bass": 32,
    "electric bass (finger)": 33,
    "electric bass (pick)": 34,
    "fretless bass": 35,
    "slap bass 1": 36,
    "slap bass 2": 37,
    "synth bass 1": 38,
    "synth bass 2": 39,
    "violin": 40,
    "viola": 41,
    "cello": 42,
    "violoncello": 42,
    "contrabass": 43,
    "double bass": 43,
    "tremolo strings": 44,
    "pizzicato strings": 45,
    "orchestral harp": 46,
    "timpani": 47,
    "string ensemble 1": 48,
    "string ensemble 2": 49,
    "synth strings 1": 50,
    "synth strings 2": 51,
    "choir aahs": 52,
    "voice oohs": 53,
    "synth voice": 54,
    "orchestra hit": 55,
    "trumpet": 56,
    "trombone": 57,
    "tuba": 58,
    "muted trumpet": 59,
    "french horn": 60,
    "horn": 60,
    "brass section": 61,
    "synth brass 1": 62,
    "synth brass 2": 63,
    "soprano sax": 64,
    "alto sax": 65,
    "tenor sax": 66,
    "baritone sax": 67,
    "oboe": 68,
    "english horn": 69,
    "bassoon": 70,
    "clarinet": 71,
    "piccolo": 72,
    "flute": 73,
    "recorder": 74,
    "pan flute": 75,
    "blown bottle": 76,
    "shakuhachi": 77,
    "whistle": 78,
    "ocarina": 79,
    "lead 1 (square)": 80,
    "lead 2 (sawtooth)": 81,
    "lead 3 (calliope)": 82,
    "lead 4 (chiff)": 83,
    "lead 5 (charang)": 84,
    "lead 6 (voice)": 85,
    "lead 7 (fifths)": 86,
    "lead 8 (bass + lead)": 87,
    "pad 1 (new age)": 88,
    "pad 2 (warm)": 89,
    "pad 3 (polysynth)": 90,
    "pad 4 (choir)": 91,
    "pad 5 (bowed)": 92,
    "pad 6 (metallic)": 93,
    "pad 7 (halo)": 94,
    "pad 8 (sweep)": 95,
    "fx 1 (rain)": 96,
    "fx 2 (soundtrack)": 97,
    "fx 3 (crystal)": 98,
    "fx 4 (atmosphere)": 99,
    "fx 5 (brightness)": 100,
    "fx 6 (goblins)": 101,
    "fx 7 (echoes)": 102,
    "fx 8 (sci-fi)": 103,
    "sitar": 104,
    "banjo": 105,
    "shamisen": 106,
    "koto": 107,
    "kalimba": 108,
    "bag pipe": 109,
    "fiddle": 110,
    "shanai": 111,
    "tinkle bell": 112,
    "agogo": 113,
    "steel drums": 114,
    "woodblock": 115,
    "taiko drum": 116,
    "melodic tom": 117,
    "synth drum": 118,
    "reverse cymbal": 119,
    "guitar fret noise": 120,
    "breath noise": 121,
    "seashore": 122,
    "bird tweet": 123,
    "telephone ring": 124,
    "helicopter": 125,
    "applause": 126,
    "gunshot": 127,
}


class _MalformedScore(ValueError):
    """The score does not have the structure a partwise score needs."""


def step_to_midi(step: object) -> int:
    """Return the semitone offset of a note step letter within an octave."""
    return _STEPS.get(str(step), 0)


def instrument_name_to_program(name: str) -> int:
    """Return the General MIDI program for an instrument name (default 0)."""
    return _PROGRAMS.get(name.lower(), 0)


def _local(tag: object) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _resolve_instrument(name: str | None, virtual_name: str | None) -> tuple[str, int]:
    name = "Unknown" if name is None else name
    program = instrument_name_to_program(name)
    if (
        program == 0
        and name.lower() != "acoustic grand piano"
        and virtual_name is not None
    ):
        virtual_program = instrument_name_to_program(virtual_name)
        if virtual_program != 0 or virtual_name.lower() == "flute":
            return virtual_name, virtual_program
    return name, program


def extract_part_list_mapping(xml_path: str | Path) -> dict[str, tuple[str, int]]:
    """Map each part id of a score's part list to (instrument name, program).

    The part name is preferred; a virtual instrument name replaces it when
    the part name does not map to a known program. An unreadable file gives
    an empty mapping; a file that stops parsing gives what was read so far.
    """
    mapping: dict[str, tuple[str, int]] = {}
    in_part_list = False
    in_score_part = False
    current_id: str | None = None
    current_name: str | None = None
    current_virtual: str | None = None
    try:
        for event, elem in ET.iterparse(str(xml_path), events=("start", "end")):
            tag = _local(elem.tag)
            if event == "start":
                if tag == "part-list":
                    in_part_list = True
                elif tag == "score-part" and in_part_list:
                    in_score_part = True
                    current_id = elem.get("id")
                    current_name = None
                    current_virtual = None
                continue
            if tag == "part-name" and in_score_part:
                if elem.text is not None:
                    current_name = elem.text.strip()
            elif tag == "virtual-name" and in_score_part:
                if elem.text is not None:
                    current_virtual = elem.text.strip()
            elif tag == "score-part" and in_score_part:
                if current_id is not None:
                    mapping[current_id] = _resolve_instrument(
                        current_name, current_virtual
                    )
                current_id = None
                in_score_part = False
            elif tag == "part-list":
                break
    except (OSError, ET.ParseError):
        pass
    return mapping


def _children(elem: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in elem if _local(child.tag) == name]


def _child(elem: ET.Element, name: str) -> ET.Element | None:
    found = _children(elem, name)
    return found[0] if found else None


def _int_text(elem: ET.Element | None, what: str) -> int:
    if elem is None or elem.text is None:
        raise _MalformedScore(f"missing {what}")
    try:
        value = int(elem.text.strip())
    except ValueError as exc:
        raise _MalformedScore(f"invalid {what}: {elem.text!r}") from exc
    if value < 0:
        raise _MalformedScore(f"negative {what}: {value}")
    return value


def _first_measure_divisions(part: ET.Element) -> int:
    divisions = 1
    measures = _children(part, "measure")
    if measures:
        for attributes in _children(measures[0], "attributes"):
            div = _child(attributes, "divisions")
            if div is not None:
                divisions = _int_text(div, "divisions")
    return divisions


def _note_pitch(pitch: ET.Element) -> int:
    step_elem = _child(pitch, "step")
    if step_elem is None or step_elem.text is None:
        raise _MalformedScore("pitch without a step")
    step = step_to_midi(step_elem.text.strip())
    octave = _int_text(_child(pitch, "octave"), "octave")
    alter = 0
    alter_elem = _child(pitch, "alter")
    if alter_elem is not None and alter_elem.text is not None:
        try:
            alter = int(float(alter_elem.text.strip()))
        except ValueError as exc:
            raise _MalformedScore(f"invalid alter: {alter_elem.text!r}") from exc
    return (step + alter + (octave + 1) * 12) & 0xFF


def _note_voice(note: ET.Element) -> int:
    voice = _child(note, "voice")
    if voice is None or voice.text is None:
        return DEFAULT_VOICE
    try:
        value = int(voice.text.strip())
    except ValueError:
        return DEFAULT_VOICE
    return value if 0 <= value <= 0xFF else DEFAULT_VOICE


def _read_part(
    part: ET.Element, index: int, part_map: dict[str, tuple[str, int]]
) -> tuple[XmlTrackInfo, list[tuple[int, int, int, int, int]], int]:
    part_id = part.get("id", "")
    name, program = part_map.get(part_id, (f"Part{index}", 0))
    _log.debug("assigning part id %r -> %r (program %d)", part_id, name, program)

    divisions = _first_measure_divisions(part)
    timeline: list[tuple[int, int, int, int, int]] = []
    sample_notes: list[int] = []
    min_pitch, max_pitch = 127, 0
    current_time = 0

    for measure in _children(part, "measure"):
        for note in _children(measure, "note"):
            if _child(note, "grace") is not None or _child(note, "cue") is not None:
                continue
            duration = _int_text(_child(note, "duration"), "duration")
            pitch_elem = _child(note, "pitch")
            if pitch_elem is None:
                continue
            pitch = _note_pitch(pitch_elem)
            timeline.append(
                (current_time, duration, _note_voice(note), pitch, NOTE_VELOCITY)
            )
            min_pitch = min(min_pitch, pitch)
            max_pitch = max(max_pitch, pitch)
            if len(sample_notes) < SAMPLE_NOTE_COUNT:
                sample_notes.append(pitch)
            current_time += duration

    info = XmlTrackInfo(
        index=index,
        name=name,
        note_count=len(timeline),
        pitch_range=(min_pitch, max_pitch),
        sample_notes=sample_notes,
        program=program,
        channels=[0],
    )
    return info, timeline, divisions


def _load_score(path: Path) -> XmlSongInfo | None:
    part_map = extract_part_list_mapping(path)
    _log.debug("part mapping for %s:", path.name)
    for part_id, (name, program) in part_map.items():
        _log.debug("  part_id: %s  name: %r  midi_program: %d", part_id, name, program)

    try:
        root = ET.parse(str(path)).getroot()
        if _local(root.tag) != "score-partwise":
            raise _MalformedScore("not a partwise score")
        tracks: list[XmlTrackInfo] = []
        track_notes: list[list[tuple[int, int, int, int, int]]] = []
        ticks_per_q = 1
        for index, part in enumerate(_children(root, "part")):
            info, timeline, divisions = _read_part(part, index, part_map)
            if index == 0:
                ticks_per_q = divisions
            tracks.append(info)
            track_notes.append(timeline)
    except (OSError, ET.ParseError, _MalformedScore) as exc:
        _log.debug("skipping %s: %s", path, exc)
        return None

    filename = path.name
    return XmlSongInfo(
        filename=filename,
        name=filename.replace(".xml", "").replace("_", " "),
        tracks=tracks,
        track_notes=track_notes,
        default_tempo=DEFAULT_TEMPO_BPM,
        ticks_per_q=ticks_per_q,
    )


def extract_musicxml_songs(xml_dir: str | Path) -> list[XmlSongInfo]:
    """Load every readable ``.xml`` score directly inside ``xml_dir``, by name.

    A missing directory yields an empty list; scores that cannot be read as
    partwise MusicXML are skipped.
    """
    directory = Path(xml_dir)
    if not directory.exists():
        return []
    songs = []
    for path in sorted(directory.iterdir()):
        if path.suffix != ".xml":
            continue
        song = _load_score(path)
        if song is not None:
            songs.append(song)
    return songs