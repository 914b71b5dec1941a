"""
Fixed-point decoding of raw sample bytes.

The device transmits samples MSB first. Pressure/altitude occupies three bytes
(OUT_P_MSB, OUT_P_CSB, OUT_P_LSB), temperature two (OUT_T_MSB, OUT_T_LSB).
Integer and fraction parts are returned separately so callers can keep the
exact register value around if they need it.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Sequence, Tuple

PRESSURE_BYTES = 3
TEMPERATURE_BYTES = 2


def _check_length(data: Sequence[int], expected: int, name: str) -> bytes:
    if len(data) != expected:
        raise ValueError(f"{name} requires {expected} bytes, got {len(data)}")
    return bytes(data)


def decode_signed_q16_4(data: Sequence[int]) -> Tuple[int, int]:
    """Altitude sample: signed 16-bit integer part, 4 fractional bits."""
    raw = _check_length(data, PRESSURE_BYTES, "Q16.4")
    (integer,) = struct.unpack(">h", raw[:2])
    fraction = (raw[2] & 0xF0) >> 4
    return integer, fraction


def decode_unsigned_q18_2(data: Sequence[int]) -> Tuple[int, int]:
    """Barometric sample: unsigned 18-bit integer part, 2 fractional bits."""
    raw = _check_length(data, PRESSURE_BYTES, "Q18.2")
    nibble = (raw[2] & 0xF0) >> 4
    integer = (raw[0] << 10) | (raw[1] << 2) | (nibble >> 2)
    fraction = nibble & 0x3
    return integer, fraction


def decode_signed_q8_4(data: Sequence[int]) -> Tuple[int, int]:
    """Temperature sample: signed 8-bit integer part, 4 fractional bits."""
    raw = _check_length(data, TEMPERATURE_BYTES, "Q8.4")
    (integer,) = struct.unpack(">b", raw[:1])
    fraction = (raw[1] & 0xF0) >> 4
    return integer, fraction


def q16_4_to_float(integer: int, fraction: int) -> float:
    return integer + fraction / 16.0


def q18_2_to_float(integer: int, fraction: int) -> float:
    return integer + fraction / 4.0


def q8_4_to_float(integer: int, fraction: int) -> float:
    return integer + fraction / 16.0


@dataclass(frozen=True)
class RawPressure:
    """Raw pressure/altitude sample as read from OUT_P_MSB..OUT_P_LSB."""

    msb: int
    csb: int
    lsb: int

    @staticmethod
    def from_bytes(data: Sequence[int]) -> "RawPressure":
        raw = _check_length(data, PRESSURE_BYTES, "RawPressure")
        return RawPressure(msb=raw[0], csb=raw[1], lsb=raw[2])

    def as_bytes(self) -> bytes:
        return bytes((self.msb, self.csb, self.lsb))

    def to_signed_q16_4(self) -> Tuple[int, int]:
        return decode_signed_q16_4(self.as_bytes())

    def to_unsigned_q18_2(self) -> Tuple[int, int]:
        return decode_unsigned_q18_2(self.as_bytes())

    def altitude_m(self) -> float:
        return q16_4_to_float(*self.to_signed_q16_4())

    def pressure_pa(self) -> float:
        return q18_2_to_float(*self.to_unsigned_q18_2())


@dataclass(frozen=True)
class RawTemperature:
    """Raw temperature sample as read from OUT_T_MSB..OUT_T_LSB."""

    msb: int
    lsb: int

    @staticmethod
    def from_bytes(data: Sequence[int]) -> "RawTemperature":
        raw = _check_length(data, TEMPERATURE_BYTES, "RawTemperature")
        return RawTemperature(msb=raw[0], lsb=raw[1])

    def as_bytes(self) -> bytes:
        return bytes((self.msb, self.lsb))

    def to_signed_q8_4(self) -> Tuple[int, int]:
        return decode_signed_q8_4(self.as_bytes())

    def celsius(self) -> float:
        return q8_4_to_float(*self.to_signed_q8_4())
