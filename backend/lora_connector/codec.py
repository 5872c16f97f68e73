"""Variable-length integer codec for calibration state.

Calibration values are stored as a decimal scaled by ten, written as a
zig-zag encoded varint. The byte layout is identical to Go's
``binary.PutVarint`` so existing database rows stay readable.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

SCALE = 10
MAX_VARINT_LEN = 10
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


def encode_varint(value: int) -> bytes:
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"{value} does not fit into a signed 64-bit integer")
    zigzag = (value << 1) ^ (value >> 63)
    zigzag &= (1 << 64) - 1
    out = bytearray()
    while zigzag >= 0x80:
        out.append((zigzag & 0x7F) | 0x80)
        zigzag >>= 7
    out.append(zigzag)
    return bytes(out)


def decode_varint(data: bytes) -> int:
    if not data:
        raise ValueError("empty varint")
    result = 0
    shift = 0
    for i, byte in enumerate(data):
        if i == MAX_VARINT_LEN or (i == MAX_VARINT_LEN - 1 and byte > 1):
            raise ValueError("varint overflows 64 bits")
        result |= (byte & 0x7F) << shift
        if byte < 0x80:
            return (result >> 1) ^ -(result & 1)
        shift += 7
    raise ValueError("truncated varint")


def to_fixed_point(value: Decimal | float | int | str) -> int:
    """Scale *value* by ten and round half away from zero."""

    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc
    if not number.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    try:
        scaled = int((number * SCALE).to_integral_value(rounding=ROUND_HALF_UP))
    except ArithmeticError as exc:
        raise ValueError(f"{value} is out of range") from exc
    if not INT64_MIN <= scaled <= INT64_MAX:
        raise ValueError(f"{value} is out of range")
    return scaled


def encode_fixed_point(value: Decimal | float | int | str) -> bytes:
    return encode_varint(to_fixed_point(value))


def decode_fixed_point(data: bytes) -> float:
    return decode_varint(data) / SCALE
