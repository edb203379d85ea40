import pytest

from emidi.embed_musicxml import (
    extract_musicxml_songs,
    extract_part_list_mapping,
    instrument_name_to_program,
    step_to_midi,
)


def _score_part(part_id, part_name=None, virtual_name=None):
    name = f"<part-name>{part_name}</part-name>" if part_name is not None else ""
    virtual = ""
    if virtual_name is not None:
        virtual = (
            f'<score-instrument id="{part_id}-I1"><instrument-name>x</instrument-name>'
            f"<virtual-instrument><virtual-name>{virtual_name}</virtual-name>"
            f"</virtual-instrument></score-instrument>"
        )
    return f'<score-part id="{part_id}">{name}{virtual}</score-part>'


def _note(step, octave, duration, alter=None, voice=None, extra=""):
    alter_xml = f"<alter>{alter}</alter>" if alter is not None else ""
    voice_xml = f"<voice>{voice}</voice>" if voice is not None else ""
    return (
        f"<note>{extra}<pitch><step>{step}</step>{alter_xml}<octave>{octave}</octave>"
        f"</pitch><duration>{duration}</duration>{voice_xml}</note>"
    )


def _rest(duration):
    return f"<note><rest/><duration>{duration}</duration></note>"


def _measure(body, divisions=None):
    attrs = f"<attributes><divisions>{divisions}</divisions></attributes>" if divisions else ""
    return f'<measure number="1">{attrs}{body}</measure>'


def _score(score_parts, parts):
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        "<score-partwise>"
        f"<part-list>{''.join(score_parts)}</part-list>"
        + "".join(f'<part id="{pid}">{"".join(ms)}</part>' for pid, ms in parts)
        + "</score-partwise>"
    )


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "step, expected",
    [("C", 0), ("D", 2), ("E", 4), ("F", 5), ("G", 7), ("A", 9), ("B", 11), ("H", 0)],
)
def test_step_to_midi(step, expected):
    assert step_to_midi(step) == expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Violin", 40),
        ("FLUTE", 73),
        ("double bass", 43),
        ("Violoncello", 42),
        ("Gunshot", 127),
        ("kazoo", 0),
    ],
)
def test_instrument_name_to_program(name, expected):
    assert instrument_name_to_program(name) == expected


def test_mapping_prefers_part_name(tmp_path):
    path = _write(
        tmp_path / "s.xml",
        _score([_score_part("P1", "Violin", "Flute")], [("P1", [])]),
    )
    assert extract_part_list_mapping(path) == {"P1": ("Violin", 40)}


def test_mapping_falls_back_to_virtual_name(tmp_path):
    path = _write(
        tmp_path / "s.xml",
        _score(
            [_score_part("P1", "Solo", "Flute"), _score_part("P2", "Piano", "Trumpet")],
            [],
        ),
    )
    assert extract_part_list_mapping(path) == {
        "P1": ("Flute", 73),
        "P2": ("Trumpet", 56),
    }


def test_mapping_keeps_acoustic_grand_piano(tmp_path):
    path = _write(
        tmp_path / "s.xml",
        _score([_score_part("P1", "Acoustic Grand Piano", "Flute")], []),
    )
    assert extract_part_list_mapping(path) == {"P1": ("Acoustic Grand Piano", 0)}


def test_mapping_unknown_name_without_virtual(tmp_path):
    path = _write(
        tmp_path / "s.xml",
        _score([_score_part("P1"), _score_part("P2", "Mystery")], []),
    )
    assert extract_part_list_mapping(path) == {
        "P1": ("Unknown", 0),
        "P2": ("Mystery", 0),
    }


def test_mapping_missing_file_is_empty(tmp_path):
    assert extract_part_list_mapping(tmp_path / "absent.xml") == {}


def test_extract_missing_directory(tmp_path):
    assert extract_musicxml_songs(tmp_path / "nowhere") == []


def test_extract_song_timeline(tmp_path):
    body = (
        _note("C", 4, 4)
        + _rest(8)
        + _note("D", 4, 2, alter=1, voice=2)
        + _note("E", 4, 3, extra="<grace/>").replace("<duration>3</duration>", "")
    )
    text = _score(
        [_score_part("P1", "Violin")],
        [("P1", [_measure(body, divisions=4)])],
    )
    _write(tmp_path / "my_song.xml", text)

    (song,) = extract_musicxml_songs(tmp_path)
    assert song.filename == "my_song.xml"
    assert song.name == "my song"
    assert song.default_tempo == 120
    assert song.ticks_per_q == 4

    (track,) = song.tracks
    assert track.name == "Violin"
    assert track.program == 40
    assert track.channels == [0]
    assert track.note_count == 2

    first, second = song.track_notes[0]
    assert first == (0, 4, 1, 60, 64)
    # Rests do not advance the timeline; the second note follows the first.
    assert second[0] == first[1]
    assert second[1] == 2
    assert second[2] == 2
    assert second[3] > first[3]
    assert track.pitch_range == (first[3], second[3])
    assert track.sample_notes == [first[3], second[3]]


def test_chromatic_alteration_shifts_pitch(tmp_path):
    body = _note("C", 4, 1) + _note("C", 4, 1, alter=1) + _note("C", 4, 1, alter=-1)
    _write(tmp_path / "a.xml", _score([_score_part("P1", "Violin")], [("P1", [_measure(body)])]))
    (song,) = extract_musicxml_songs(tmp_path)
    natural, sharp, flat = (entry[3] for entry in song.track_notes[0])
    assert sharp == natural + 1
    assert flat == natural - 1


def test_octaves_are_twelve_semitones_apart(tmp_path):
    body = _note("G", 3, 1) + _note("G", 4, 1)
    _write(tmp_path / "a.xml", _score([_score_part("P1", "Violin")], [("P1", [_measure(body)])]))
    (song,) = extract_musicxml_songs(tmp_path)
    low, high = (entry[3] for entry in song.track_notes[0])
    assert high - low == 12


def test_time_continues_across_measures_and_samples_limited(tmp_path):
    m1 = _measure("".join(_note("C", 4, 2) for _ in range(3)), divisions=2)
    m2 = _measure("".join(_note("D", 4, 2) for _ in range(3)))
    _write(tmp_path / "a.xml", _score([_score_part("P1", "Cello")], [("P1", [m1, m2])]))
    (song,) = extract_musicxml_songs(tmp_path)
    timeline = song.track_notes[0]
    starts = [entry[0] for entry in timeline]
    assert starts == sorted(starts)
    for prev, nxt in zip(timeline, timeline[1:]):
        assert nxt[0] == prev[0] + prev[1]
    track = song.tracks[0]
    assert track.note_count == len(timeline)
    assert len(track.sample_notes) == 5
    assert track.sample_notes == [entry[3] for entry in timeline[:5]]


def test_unmapped_part_gets_default_name(tmp_path):
    parts = [
        ("P1", [_measure(_note("C", 4, 1), divisions=8)]),
        ("P2", [_measure(_note("E", 4, 1), divisions=3)]),
    ]
    _write(tmp_path / "a.xml", _score([_score_part("P1", "Oboe")], parts))
    (song,) = extract_musicxml_songs(tmp_path)
    assert [t.name for t in song.tracks] == ["Oboe", "Part1"]
    assert [t.program for t in song.tracks] == [68, 0]
    assert [t.index for t in song.tracks] == [0, 1]
    assert song.ticks_per_q == 8


def test_empty_part_has_initial_pitch_range(tmp_path):
    _write(tmp_path / "a.xml", _score([_score_part("P1", "Oboe")], [("P1", [_measure(_rest(4))])]))
    (song,) = extract_musicxml_songs(tmp_path)
    assert song.track_notes == [[]]
    assert song.tracks[0].note_count == 0
    assert song.tracks[0].pitch_range == (127, 0)


def test_skips_other_files_and_unreadable_scores(tmp_path):
    good = _score([_score_part("P1", "Flute")], [("P1", [_measure(_note("A", 4, 1))])])
    _write(tmp_path / "b_good.xml", good)
    _write(tmp_path / "a_broken.xml", "<score-partwise><part-list>")
    _write(tmp_path / "c_timewise.xml", "<score-timewise></score-timewise>")
    _write(tmp_path / "d_notes.txt", good)
    _write(tmp_path / "e_upper.XML", good)
    songs = extract_musicxml_songs(tmp_path)
    assert [s.filename for s in songs] == ["b_good.xml"]


def test_note_without_duration_skips_score(tmp_path):
    body = "<note><pitch><step>C</step><octave>4</octave></pitch></note>"
    _write(tmp_path / "a.xml", _score([_score_part("P1", "Flute")], [("P1", [_measure(body)])]))
    assert extract_musicxml_songs(tmp_path) == []


def test_songs_sorted_by_file_name(tmp_path):
    text = _score([_score_part("P1", "Flute")], [("P1", [_measure(_note("A", 4, 1))])])
    for name in ("zeta.xml", "alpha.xml", "mid.xml"):
        _write(tmp_path / name, text)
    names = [s.filename for s in extract_musicxml_songs(tmp_path)]
    assert names == sorted(names)
    assert len(names) == 3