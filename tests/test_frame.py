import pytest

from gosbot.shared.errors import MalformedFrameError
from gosbot.shared.frame import (
    EventCode,
    Frame,
    auth_frame,
    decode_frame,
    encode_frame,
    event_frame,
    pong_frame,
)


def test_bare_codes_have_no_payload():
    frame = decode_frame("2")
    assert frame.code == EventCode.PING
    assert frame.payload is None
    assert frame.raw == "2"
    assert decode_frame("0").event_code is EventCode.OPEN


def test_multi_digit_code_with_payload():
    frame = decode_frame('40{"sid":"abc"}')
    assert frame.code == 40
    assert frame.payload == {"sid": "abc"}


def test_unknown_code_still_decodes():
    frame = decode_frame("6")
    assert frame.code == 6
    assert frame.event_code is None


def test_bytes_frames_are_decoded():
    frame = decode_frame('42["a",{"uuid":"x"}]'.encode("utf-8"))
    assert frame.event == ("a", {"uuid": "x"})


@pytest.mark.parametrize("raw", ["", "hello", '{"a":1}', "42[oops", "2 ", "9" * 5000, "\u0662", "\uff14\uff12[]"])
def test_malformed_frames(raw):
    with pytest.raises(MalformedFrameError):
        decode_frame(raw)


def test_event_frame_round_trip():
    data = {"message": "Как оплатить штраф?"}
    wire = event_frame("search_broker", "3f2b8c1e-9a4d-4e7f-b123-0123456789ab", data).to_wire()

    assert wire.startswith('42["search_broker",')
    assert "Как оплатить штраф?" in wire

    frame = decode_frame(wire)
    assert frame.is_event
    assert frame.correlation_id == "3f2b8c1e-9a4d-4e7f-b123-0123456789ab"
    assert frame.payload == [
        "search_broker",
        {"action": "search_broker", "uuid": "3f2b8c1e-9a4d-4e7f-b123-0123456789ab", "data": data},
    ]


def test_event_frame_without_data_omits_key():
    frame = event_frame("hello_broker", "id-1")
    assert frame.payload == ["hello_broker", {"action": "hello_broker", "uuid": "id-1"}]


def test_control_frames_on_the_wire():
    assert pong_frame().to_wire() == "3"
    assert auth_frame("T").to_wire() == '40{"token":"T"}'
    assert encode_frame(EventCode.PING) == "2"


@pytest.mark.parametrize("payload", [
    ["only-one"],
    ["a", "not-a-dict"],
    [1, {"uuid": "x"}],
    {"uuid": "x"},
    None,
])
def test_non_event_shapes(payload):
    frame = Frame(code=42, payload=payload)
    assert not frame.is_event
    assert frame.correlation_id is None
    assert frame.event is None


def test_correlation_id_must_be_string():
    assert Frame(code=42, payload=["a", {"uuid": 7}]).correlation_id is None


def test_longest_accepted_code():
    assert decode_frame("99999999").code == 99999999
    with pytest.raises(MalformedFrameError):
        decode_frame("999999999")
