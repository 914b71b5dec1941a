"""Register map and bit-field encoders for the MPL3115A2."""
from __future__ import annotations

import enum
from typing import Dict

from .errors import CompensationRangeError, OversampleRangeError

# Alias for DR_STATUS or F_STATUS depending on FIFO mode
STATUS = 0x00
# 20-bit realtime pressure/altitude sample
OUT_PRESSURE = 0x01
# 12-bit realtime temperature sample
OUT_TEMPERATURE = 0x04
DR_STATUS = 0x06
OUT_PRESSURE_DELTA = 0x07
OUT_TEMPERATURE_DELTA = 0x0A
WHO_AM_I = 0x0C
F_STATUS = 0x0D
F_DATA = 0x0E
F_SETUP = 0x0F
TIME_DLY = 0x10
SYSMOD = 0x11
INT_SOURCE = 0x12
PT_DATA_CFG = 0x13
# Barometric input (sea level reference) in 2 Pa units
BAR_IN = 0x14
PRES_TGT = 0x16
T_TGT = 0x18
PRES_WND = 0x19
TEMP_WND = 0x1B
PRES_MIN = 0x1C
TEMP_MIN = 0x1E
PRES_MAX = 0x21
TEMP_MAX = 0x24
CTRL_REG1 = 0x26
CTRL_REG2 = 0x27
CTRL_REG3 = 0x28
CTRL_REG4 = 0x29
CTRL_REG5 = 0x2A
OFF_PRES = 0x2B
OFF_TEMP = 0x2C
OFF_H = 0x2D

REGISTER_WIDTHS: Dict[int, int] = {
    STATUS: 1,
    OUT_PRESSURE: 3,
    OUT_TEMPERATURE: 2,
    DR_STATUS: 1,
    OUT_PRESSURE_DELTA: 3,
    OUT_TEMPERATURE_DELTA: 2,
    WHO_AM_I: 1,
    F_STATUS: 1,
    F_DATA: 1,
    F_SETUP: 1,
    TIME_DLY: 1,
    SYSMOD: 1,
    INT_SOURCE: 1,
    PT_DATA_CFG: 1,
    BAR_IN: 2,
    PRES_TGT: 2,
    T_TGT: 1,
    PRES_WND: 2,
    TEMP_WND: 1,
    PRES_MIN: 3,
    TEMP_MIN: 2,
    PRES_MAX: 3,
    TEMP_MAX: 2,
    CTRL_REG1: 1,
    CTRL_REG2: 1,
    CTRL_REG3: 1,
    CTRL_REG4: 1,
    CTRL_REG5: 1,
    OFF_PRES: 1,
    OFF_TEMP: 1,
    OFF_H: 1,
}

# STATUS + pressure + temperature, read in one transfer
SAMPLE_BLOCK_BYTES = REGISTER_WIDTHS[STATUS] + REGISTER_WIDTHS[OUT_PRESSURE] + REGISTER_WIDTHS[OUT_TEMPERATURE]

WHO_AM_I_VALUE = 0xC4

CTRL_ALTIMETER = 0x80
CTRL_OVERSAMPLE_SHIFT = 3
CTRL_OVERSAMPLE_MASK = 0x38
CTRL_RESET = 0x04
CTRL_ACTIVE = 0x01

PT_DATA_TEMPERATURE_EVENT = 0x01
PT_DATA_PRESSURE_EVENT = 0x02
PT_DATA_READY_EVENT = 0x04

OVERSAMPLE_MIN = 0
OVERSAMPLE_MAX = 7

# Minimum time between samples per oversample ratio (datasheet table 59)
OVERSAMPLE_MIN_TIME_MS = (6, 10, 18, 34, 66, 130, 258, 512)

PRESSURE_OFFSET_MIN_PA = -512
PRESSURE_OFFSET_MAX_PA = 508
TEMPERATURE_OFFSET_MIN_C = -8.0
TEMPERATURE_OFFSET_MAX_C = 7.9375
ALTITUDE_OFFSET_MIN_M = -128
ALTITUDE_OFFSET_MAX_M = 127
SEA_LEVEL_MAX_PA = 0xFFFF * 2 + 1


class StatusFlag(enum.IntFlag):
    NONE = 0x00
    TEMP_DATA_READY = 0x02
    PRES_DATA_READY = 0x04
    PRES_TEMP_DATA_READY = 0x08


class PressureMode(str, enum.Enum):
    BAROMETER = "barometer"
    ALTIMETER = "altimeter"


def decode_status(value: int) -> StatusFlag:
    known = StatusFlag.TEMP_DATA_READY | StatusFlag.PRES_DATA_READY | StatusFlag.PRES_TEMP_DATA_READY
    return StatusFlag(value & known)


def encode_oversample_ratio(oversample: int) -> int:
    """Oversample ratio 0..7 (2^osr samples) into CTRL_REG1 bits 3-5."""
    if isinstance(oversample, bool) or not isinstance(oversample, int):
        raise OversampleRangeError(f"oversample ratio must be an integer, got {oversample!r}")
    if oversample < OVERSAMPLE_MIN or oversample > OVERSAMPLE_MAX:
        raise OversampleRangeError(
            f"oversample ratio should be in range [{OVERSAMPLE_MIN}..{OVERSAMPLE_MAX}], got {oversample}"
        )
    return oversample << CTRL_OVERSAMPLE_SHIFT


def oversample_from_flags(flags: int) -> int:
    return (flags & CTRL_OVERSAMPLE_MASK) >> CTRL_OVERSAMPLE_SHIFT


def encode_altimeter_mode(altimeter: bool) -> int:
    return CTRL_ALTIMETER if altimeter else 0


def encode_reset(reset: bool) -> int:
    return CTRL_RESET if reset else 0


def encode_active(active: bool) -> int:
    return CTRL_ACTIVE if active else 0


def encode_event_mode(temperature_event: bool, pressure_event: bool) -> int:
    flags = 0
    if temperature_event:
        flags |= PT_DATA_TEMPERATURE_EVENT
    if pressure_event:
        flags |= PT_DATA_PRESSURE_EVENT
    if temperature_event or pressure_event:
        flags |= PT_DATA_READY_EVENT
    return flags


def control_flags(
    oversample: int,
    mode: PressureMode | str,
    *,
    active: bool = False,
    reset: bool = False,
) -> int:
    """Assemble a CTRL_REG1 value; the encoded fields never overlap."""
    mode = PressureMode(mode)
    flags = encode_altimeter_mode(mode is PressureMode.ALTIMETER)
    flags |= encode_oversample_ratio(oversample)
    flags |= encode_active(active)
    flags |= encode_reset(reset)
    return flags


def _to_signed_byte(value: int) -> int:
    return value & 0xFF


def signed_byte(value: int) -> int:
    """Interpret a register byte as two's complement."""
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


def encode_altitude_offset(offset_m: int) -> int:
    if not ALTITUDE_OFFSET_MIN_M <= offset_m <= ALTITUDE_OFFSET_MAX_M:
        raise CompensationRangeError(
            f"altitude compensation exceed range [{ALTITUDE_OFFSET_MIN_M}..+{ALTITUDE_OFFSET_MAX_M}]"
        )
    return _to_signed_byte(int(offset_m))


def encode_pressure_offset(offset_pa: int) -> int:
    # OFF_PRES holds 4 Pa per LSB
    if offset_pa > PRESSURE_OFFSET_MAX_PA or offset_pa < PRESSURE_OFFSET_MIN_PA:
        raise CompensationRangeError(
            f"pressure compensation exceed range [{PRESSURE_OFFSET_MIN_PA}..+{PRESSURE_OFFSET_MAX_PA}]"
        )
    return _to_signed_byte(int(offset_pa / 4))


def encode_temperature_offset(offset_c: float) -> int:
    # OFF_TEMP holds 0.0625 degC per LSB
    if offset_c > TEMPERATURE_OFFSET_MAX_C or offset_c < TEMPERATURE_OFFSET_MIN_C:
        raise CompensationRangeError(
            f"temperature compensation exceed range [{TEMPERATURE_OFFSET_MIN_C:g}..+{TEMPERATURE_OFFSET_MAX_C:g}]"
        )
    return _to_signed_byte(int(offset_c * 16))


def encode_sea_level_pressure(pressure_pa: int) -> bytes:
    """BAR_IN payload: pressure in 2 Pa units, big-endian."""
    if pressure_pa < 0 or pressure_pa > SEA_LEVEL_MAX_PA:
        raise CompensationRangeError(f"sea level pressure must be in range [0..{SEA_LEVEL_MAX_PA}] Pa")
    half = int(pressure_pa) // 2
    return bytes(((half >> 8) & 0xFF, half & 0xFF))


def decode_pressure_offset(value: int) -> int:
    return signed_byte(value) * 4


def decode_temperature_offset(value: int) -> float:
    return signed_byte(value) / 16.0


def decode_altitude_offset(value: int) -> int:
    return signed_byte(value)
