import pytest

from emidi.ipc.common import (
    MAX_PAYLOAD_SIZE,
    AppId,
    DeserializationError,
    GridState,
    IpcError,
    IpcSongInfo,
    MidiPlaybackState,
    NodeCreationError,
    PayloadTooLargeError,
    SendError,
    SerializationError,
    WindowState,
    deserialize_from_payload,
    generate_event_id,
    serialize_to_payload,
)


def _roundtrip(data):
    payload = serialize_to_payload(data)
    size = len(payload.rstrip(b"\x00"))
    return deserialize_from_payload(payload, size)


def test_event_ids_do_not_go_backwards():
    first = generate_event_id()
    second = generate_event_id()
    assert second >= first
    assert first > 0


def test_payload_is_fixed_size_and_zero_padded():
    payload = serialize_to_payload({"a": 1})
    assert len(payload) == MAX_PAYLOAD_SIZE
    assert payload.startswith(b'{"a":1}')
    assert payload[7:] == bytes(MAX_PAYLOAD_SIZE - 7)


def test_plain_round_trip():
    data = {"name": "Für Elise", "values": [1, 2, 3], "nested": {"ok": True}}
    assert _roundtrip(data) == data


def test_app_id_serialises_as_variant_name():
    assert _roundtrip(AppId.E_MIDI) == "EMidi"


def test_window_state_serialises_fields():
    decoded = _roundtrip(WindowState(window_id="w1"))
    assert decoded["app_id"] == "Unknown"
    assert decoded["size"] == [800, 600]
    assert decoded["visible"] is True
    assert decoded["window_id"] == "w1"


def test_playback_state_defaults_survive_round_trip():
    state = MidiPlaybackState()
    decoded = _roundtrip(state)
    assert decoded["tempo_bpm"] == state.tempo_bpm
    assert decoded["current_song_index"] is None
    assert decoded["timestamp"] == state.timestamp


def test_song_info_and_grid_state_round_trip():
    info = IpcSongInfo(2, "song", "song.mid", 3, 120, None, True)
    grid = GridState(grid_id="g", cells=[["a", "b"]], selected_cell=(0, 1))
    decoded = _roundtrip([info, grid])
    assert decoded[0]["is_dynamic"] is True
    assert decoded[1]["cells"] == [["a", "b"]]
    assert decoded[1]["selected_cell"] == [0, 1]


def test_payload_too_large():
    with pytest.raises(PayloadTooLargeError):
        serialize_to_payload("x" * MAX_PAYLOAD_SIZE)


def test_unserialisable_data():
    with pytest.raises(SerializationError):
        serialize_to_payload(object())


def test_size_beyond_maximum_is_rejected():
    payload = serialize_to_payload({"a": 1})
    with pytest.raises(DeserializationError):
        deserialize_from_payload(payload, MAX_PAYLOAD_SIZE + 1)


def test_garbage_payload_is_rejected():
    with pytest.raises(DeserializationError):
        deserialize_from_payload(b"not json" + bytes(10), 8)


def test_error_messages_carry_their_kind():
    assert str(NodeCreationError("boom")) == "Node creation failed: boom"
    assert str(SendError("boom")) == "Send failed: boom"


def test_payload_errors_are_caught_through_the_base_class():
    with pytest.raises(IpcError) as caught:
        serialize_to_payload("x" * MAX_PAYLOAD_SIZE)
    assert isinstance(caught.value, PayloadTooLargeError)
    assert str(caught.value).startswith("Payload too large")