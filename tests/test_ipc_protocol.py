import pytest

from emidi.ipc_protocol import (
    MAX_TRACK_OVERRIDES,
    NOTE_ON,
    MidiNoteEvent,
    PlaySongAtHeartbeat,
    TrackVoiceOverride,
)


def test_track_override_wire_bytes():
    assert TrackVoiceOverride(track_index=1, voice=2).to_bytes() == b"\x01\x02\x00\x00"


def test_track_override_round_trip():
    override = TrackVoiceOverride(track_index=7, voice=73)
    assert TrackVoiceOverride.from_bytes(override.to_bytes()) == override


def test_track_override_size():
    assert len(TrackVoiceOverride().to_bytes()) == TrackVoiceOverride.BYTE_SIZE


def test_track_override_wrong_length():
    with pytest.raises(ValueError):
        TrackVoiceOverride.from_bytes(b"\x01\x02\x00")


def test_track_override_rejects_out_of_range_voice():
    with pytest.raises(ValueError):
        TrackVoiceOverride(track_index=0, voice=256)


def test_heartbeat_size_matches_c_layout():
    assert PlaySongAtHeartbeat.BYTE_SIZE == 84
    assert len(PlaySongAtHeartbeat().to_bytes()) == PlaySongAtHeartbeat.BYTE_SIZE


def test_heartbeat_round_trip():
    overrides = [TrackVoiceOverride()] * MAX_TRACK_OVERRIDES
    overrides[0] = TrackVoiceOverride(0, 40)
    overrides[1] = TrackVoiceOverride(3, 73)
    msg = PlaySongAtHeartbeat(
        song_index=5,
        start_heartbeat=1000,
        stop_heartbeat=2000,
        play_for_duration_ms=30000,
        num_track_overrides=2,
        track_overrides=overrides,
    )
    decoded = PlaySongAtHeartbeat.from_bytes(msg.to_bytes())
    assert decoded == msg
    assert decoded.active_overrides == (TrackVoiceOverride(0, 40), TrackVoiceOverride(3, 73))


def test_heartbeat_song_index_is_little_endian_at_start():
    data = PlaySongAtHeartbeat(song_index=0x0102).to_bytes()
    assert data[:2] == b"\x02\x01"


def test_default_heartbeat_is_all_zero():
    assert PlaySongAtHeartbeat().to_bytes() == bytes(PlaySongAtHeartbeat.BYTE_SIZE)


def test_heartbeat_wrong_length():
    with pytest.raises(ValueError):
        PlaySongAtHeartbeat.from_bytes(bytes(PlaySongAtHeartbeat.BYTE_SIZE - 1))


def test_heartbeat_requires_sixteen_overrides():
    with pytest.raises(ValueError):
        PlaySongAtHeartbeat(track_overrides=[TrackVoiceOverride()] * 3)


def test_heartbeat_rejects_oversized_song_index():
    with pytest.raises(ValueError):
        PlaySongAtHeartbeat(song_index=1 << 16)


def test_note_event_equality():
    first = MidiNoteEvent(channel=0, pitch=60, velocity=100, kind=NOTE_ON, timestamp=5)
    assert first == MidiNoteEvent(0, 60, 100, NOTE_ON, 5)


def test_note_event_rejects_bad_pitch():
    with pytest.raises(ValueError):
        MidiNoteEvent(channel=0, pitch=300, velocity=0, kind=NOTE_ON, timestamp=0)