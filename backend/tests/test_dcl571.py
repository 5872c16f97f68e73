import asyncio
import base64

import pytest

from lora_connector.codec import encode_fixed_point
from lora_connector.decoders.dcl571 import (
    LEVEL_FORMULA_V2,
    WATER_LEVEL_OFFSET_KEY,
    DCL571Decoder,
    decode_float_window,
)
from lora_connector.errors import DecodeError
from lora_connector.state import ThingState

# register dump captured from a DCL 571 in the field
FRAME = base64.b64decode(
    "AQwAAKkAgwQBAExhgwQCAOUHgwQDAB0HgwQEAHpFgwQFAON4gwQGAAAAgwQHAAAAgwQIAIBA"
    "gwQJAOflgwQKAJlAgwQLAG7OgwQMAI0/gwQNAKH5gwQOAKBCgwQPAAAA"
)


def _decode(store, payload, thing_id="thing-1"):
    return asyncio.run(DCL571Decoder().decode(ThingState(store, thing_id), 1, payload, thing_id))


def _frame_with_pressure(lo: int, hi: int, length: int = 60) -> bytes:
    frame = bytearray(length)
    # window bytes 6, 7 stay zero
    frame[52] = lo
    frame[53] = hi
    return bytes(frame)


def test_float_window_byte_order():
    assert decode_float_window(FRAME, 52) == pytest.approx(4.0280643, rel=1e-7)
    assert decode_float_window(FRAME, 28) == pytest.approx(4007.5554, rel=1e-7)


def test_full_frame_yields_updates_in_frame_order(store):
    updates = _decode(store, FRAME)

    assert [(u.component_id, u.property_id) for u in updates] == [
        ("pressure", "maxPressure"),
        ("pressure", "minPressure"),
        ("pressure", "pressure"),
        ("waterlevel", "waterlevel"),
        ("pressure", "pressureUpperLimit"),
        ("pressure", "pressureLowerLimit"),
    ]
    values = {u.property_id: float(u.value) for u in updates}
    assert values["maxPressure"] == pytest.approx(4007.5554, rel=1e-6)
    assert values["minPressure"] == 0.0
    assert values["pressure"] == pytest.approx(4.0280643, rel=1e-6)
    assert values["pressureUpperLimit"] == pytest.approx(4.80596, rel=1e-5)
    assert values["pressureLowerLimit"] == pytest.approx(1.10918, rel=1e-5)
    assert values["waterlevel"] == pytest.approx(4.0280643 * 10.1972 * 100, rel=1e-6)


@pytest.mark.parametrize(
    "length, expected",
    [
        (36, ["maxPressure"]),
        (47, ["maxPressure"]),
        (48, ["maxPressure", "minPressure"]),
        (60, ["maxPressure", "minPressure", "pressure", "waterlevel"]),
        (72, ["maxPressure", "minPressure", "pressure", "waterlevel", "pressureUpperLimit"]),
    ],
)
def test_truncated_frames_yield_ordered_subset(store, length, expected):
    updates = _decode(store, FRAME[:length])

    assert [u.property_id for u in updates] == expected


@pytest.mark.parametrize("length", [0, 6, 35])
def test_frame_without_leading_window_is_an_error(store, length):
    with pytest.raises(DecodeError):
        _decode(store, FRAME[:length])
    assert store.state_writes == []


def test_exact_one_bar_window(store):
    updates = _decode(store, _frame_with_pressure(0x80, 0x3F))

    pressure = next(u for u in updates if u.property_id == "pressure")
    assert float(pressure.value) == 1.0


def test_split_window_reads_as_one_bar(store):
    updates = _decode(store, _frame_with_pressure(0x81, 0x3F))

    pressure = next(u for u in updates if u.property_id == "pressure")
    # 0x3F810000 is 1.0078125
    assert float(pressure.value) == pytest.approx(1.0078125, abs=1e-6)
    assert float(pressure.value) == pytest.approx(1.0, abs=0.01)


def test_level_uses_stored_offset(store):
    store.state[("thing-1", WATER_LEVEL_OFFSET_KEY)] = encode_fixed_point("-20.5")

    updates = _decode(store, _frame_with_pressure(0x80, 0x3F))

    level = next(u for u in updates if u.property_id == "waterlevel")
    assert float(level.value) == pytest.approx(-20.5 + 1019.72)


def test_offset_default_is_written_once(store):
    _decode(store, FRAME)
    _decode(store, FRAME)

    assert store.state_writes == [("thing-1", WATER_LEVEL_OFFSET_KEY, b"\x00")]


def test_non_finite_window_is_skipped(store):
    frame = bytearray(_frame_with_pressure(0x80, 0x3F))
    # 0x7FC00000 is a quiet NaN
    frame[40] = 0xC0
    frame[41] = 0x7F

    updates = _decode(store, bytes(frame))

    assert "minPressure" not in [u.property_id for u in updates]
    assert "pressure" in [u.property_id for u in updates]


def test_formula_is_versioned():
    assert LEVEL_FORMULA_V2.version == 2
    assert LEVEL_FORMULA_V2.level_cm(0.5, 10.0) == pytest.approx(10.0 + 509.86)

    thing = DCL571Decoder().describe([])
    assert {"name": "dcl571.levelFormula", "value": "2"} in [a.model_dump() for a in thing.attributes]
