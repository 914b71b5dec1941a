from __future__ import annotations

import pytest

from mpl3115a2 import registers as reg
from mpl3115a2.errors import CompensationRangeError, OversampleRangeError
from mpl3115a2.fixed_point import PRESSURE_BYTES, TEMPERATURE_BYTES
from mpl3115a2.registers import PressureMode, StatusFlag


def test_register_map_addresses() -> None:
    assert reg.STATUS == 0x00
    assert reg.OUT_PRESSURE == 0x01
    assert reg.OUT_TEMPERATURE == 0x04
    assert reg.WHO_AM_I == 0x0C
    assert reg.PT_DATA_CFG == 0x13
    assert reg.BAR_IN == 0x14
    assert reg.PRES_MAX == 0x21
    assert reg.CTRL_REG1 == 0x26
    assert reg.OFF_PRES == 0x2B
    assert reg.OFF_TEMP == 0x2C
    assert reg.OFF_H == 0x2D
    assert len(reg.REGISTER_WIDTHS) == 31


def test_sample_register_widths_match_decoders() -> None:
    assert reg.REGISTER_WIDTHS[reg.OUT_PRESSURE] == PRESSURE_BYTES
    assert reg.REGISTER_WIDTHS[reg.OUT_TEMPERATURE] == TEMPERATURE_BYTES
    assert reg.REGISTER_WIDTHS[reg.PRES_MIN] == PRESSURE_BYTES
    assert reg.REGISTER_WIDTHS[reg.TEMP_MAX] == TEMPERATURE_BYTES
    assert reg.SAMPLE_BLOCK_BYTES == 6


@pytest.mark.parametrize("ratio", range(8))
def test_oversample_round_trip(ratio: int) -> None:
    flags = reg.encode_oversample_ratio(ratio)
    assert flags & ~reg.CTRL_OVERSAMPLE_MASK == 0
    assert reg.oversample_from_flags(flags) == ratio


@pytest.mark.parametrize("ratio", [8, -1, True, 2.0])
def test_oversample_out_of_range(ratio) -> None:
    with pytest.raises(OversampleRangeError):
        reg.encode_oversample_ratio(ratio)


def test_boolean_encoders() -> None:
    assert reg.encode_altimeter_mode(True) == 0x80
    assert reg.encode_altimeter_mode(False) == 0x00
    assert reg.encode_reset(True) == 0x04
    assert reg.encode_reset(False) == 0x00
    assert reg.encode_active(True) == 0x01
    assert reg.encode_active(False) == 0x00


def test_event_mode_flags() -> None:
    assert reg.encode_event_mode(False, False) == 0x00
    assert reg.encode_event_mode(True, False) == 0x05
    assert reg.encode_event_mode(False, True) == 0x06
    assert reg.encode_event_mode(True, True) == 0x07


def test_control_flags_is_or_of_fields() -> None:
    flags = reg.control_flags(5, PressureMode.ALTIMETER, active=True)
    assert flags == reg.encode_active(True) | reg.encode_oversample_ratio(5) | reg.encode_altimeter_mode(True)
    assert flags == 0xA9
    assert reg.control_flags(3, "barometer") == 0x18
    assert reg.control_flags(0, "barometer", reset=True) == 0x04


def test_decode_status() -> None:
    status = reg.decode_status(0x0E)
    assert StatusFlag.PRES_TEMP_DATA_READY in status
    assert StatusFlag.PRES_DATA_READY in status
    assert StatusFlag.TEMP_DATA_READY in status
    assert reg.decode_status(0xF1) == StatusFlag.NONE


def test_offset_encoders() -> None:
    assert reg.encode_pressure_offset(508) == 0x7F
    assert reg.encode_pressure_offset(-512) == 0x80
    assert reg.encode_pressure_offset(-6) == 0xFF
    assert reg.encode_temperature_offset(7.9375) == 127
    assert reg.encode_temperature_offset(-8) == 0x80
    assert reg.encode_altitude_offset(-50) == 206
    with pytest.raises(CompensationRangeError):
        reg.encode_pressure_offset(509)
    with pytest.raises(CompensationRangeError):
        reg.encode_temperature_offset(8)
    with pytest.raises(CompensationRangeError):
        reg.encode_altitude_offset(128)


def test_offset_decoders_invert_encoders() -> None:
    assert reg.decode_pressure_offset(reg.encode_pressure_offset(-512)) == -512
    assert reg.decode_temperature_offset(reg.encode_temperature_offset(-0.5)) == -0.5
    assert reg.decode_altitude_offset(reg.encode_altitude_offset(-50)) == -50


def test_sea_level_encoding() -> None:
    assert reg.encode_sea_level_pressure(101326) == bytes([0xC5, 0xE7])
    assert reg.encode_sea_level_pressure(131071) == bytes([0xFF, 0xFF])
    with pytest.raises(ValueError):
        reg.encode_sea_level_pressure(131072)
    with pytest.raises(ValueError):
        reg.encode_sea_level_pressure(-1)
