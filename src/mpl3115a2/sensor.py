from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from .bus import RegisterBus
from .config import CalibrationConfig, PollPolicy
from .errors import DataReadyTimeout
from .fixed_point import PRESSURE_BYTES, RawPressure, RawTemperature
from .registers import (
    BAR_IN,
    CTRL_REG1,
    OFF_H,
    OFF_PRES,
    OFF_TEMP,
    PT_DATA_CFG,
    SAMPLE_BLOCK_BYTES,
    STATUS,
    WHO_AM_I,
    PressureMode,
    StatusFlag,
    control_flags,
    decode_altitude_offset,
    decode_pressure_offset,
    decode_status,
    decode_temperature_offset,
    encode_active,
    encode_altitude_offset,
    encode_event_mode,
    encode_pressure_offset,
    encode_reset,
    encode_sea_level_pressure,
    encode_temperature_offset,
)

logger = logging.getLogger(__name__)

DEFAULT_SEA_LEVEL_PA = 101326


class MeasurementPhase(str, enum.Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    POLLING = "polling"
    READING = "reading"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Measurement:
    """One pressure (or altitude) and temperature reading."""

    mode: PressureMode
    value: float
    temperature: float
    oversample: int
    status: int

    @property
    def unit(self) -> str:
        return "m" if self.mode is PressureMode.ALTIMETER else "Pa"


@dataclass(frozen=True)
class CalibrationOffsets:
    pressure_pa: int
    temperature_c: float
    altitude_m: int


class MPL3115A2:
    """
    Driver for the MPL3115A2 pressure/altitude/temperature sensor.

    The instance keeps no device state: every operation takes the bus it
    should talk to, and all real state lives in the sensor registers. Callers
    sharing one physical bus between threads must serialize access
    themselves, otherwise interleaved writes break the
    configure -> poll -> read sequence.
    """

    def __init__(self, poll: Optional[PollPolicy] = None):
        self.poll = poll or PollPolicy()

    def measure(self, bus: RegisterBus, oversample: int, mode: PressureMode | str) -> Measurement:
        """Run one conversion cycle and return the decoded result."""
        mode = PressureMode(mode)
        status, raw_pressure, raw_temperature = self.measure_raw(bus, oversample, mode)
        if mode is PressureMode.ALTIMETER:
            value = raw_pressure.altitude_m()
        else:
            value = raw_pressure.pressure_pa()
        return Measurement(
            mode=mode,
            value=value,
            temperature=raw_temperature.celsius(),
            oversample=oversample,
            status=status,
        )

    def measure_pressure(self, bus: RegisterBus, oversample: int) -> Tuple[float, float]:
        """Pressure in Pa and temperature in degC."""
        result = self.measure(bus, oversample, PressureMode.BAROMETER)
        return result.value, result.temperature

    def measure_altitude(self, bus: RegisterBus, oversample: int) -> Tuple[float, float]:
        """Altitude in m and temperature in degC."""
        result = self.measure(bus, oversample, PressureMode.ALTIMETER)
        return result.value, result.temperature

    def measure_raw(
        self,
        bus: RegisterBus,
        oversample: int,
        mode: PressureMode | str,
    ) -> Tuple[int, RawPressure, RawTemperature]:
        mode = PressureMode(mode)
        # Encoding validates the oversample ratio before the bus is touched.
        flags = control_flags(oversample, mode)
        attempts = self.poll.attempts_for(oversample)
        phase = MeasurementPhase.IDLE
        logger.debug("Measurement pressure and temperature (mode=%s, osr=%d)...", mode.value, oversample)
        try:
            phase = self._enter(MeasurementPhase.CONFIGURING)
            bus.write_byte(CTRL_REG1, flags)
            bus.write_byte(PT_DATA_CFG, encode_event_mode(True, True))
            flags |= encode_active(True)
            bus.write_byte(CTRL_REG1, flags)

            phase = self._enter(MeasurementPhase.POLLING)
            self._wait_data_ready(bus, attempts)

            phase = self._enter(MeasurementPhase.READING)
            status, raw_pressure, raw_temperature = self._read_sample_block(bus)
        except Exception as exc:
            logger.debug("Measurement %s while %s: %s", MeasurementPhase.FAILED.value, phase.value, exc)
            raise
        self._enter(MeasurementPhase.DONE)
        return status, raw_pressure, raw_temperature

    def read_status(self, bus: RegisterBus) -> StatusFlag:
        return decode_status(bus.read_byte(STATUS))

    def read_who_am_i(self, bus: RegisterBus) -> int:
        return bus.read_byte(WHO_AM_I)

    def reset(self, bus: RegisterBus) -> None:
        """Reboot the sensor; registers return to their power-on values."""
        logger.debug("Reset sensor...")
        try:
            bus.write_byte(CTRL_REG1, encode_reset(True))
        except OSError as exc:
            # The device drops the bus while it reboots.
            logger.debug("Bus error during reset ignored: %s", exc)

    def modify_sea_level_pressure(self, bus: RegisterBus, pressure_pa: int) -> None:
        """Replace the default 101326 Pa sea level reference used in altimeter mode."""
        payload = encode_sea_level_pressure(pressure_pa)
        bus.write_bytes(bytes([BAR_IN]) + payload)

    @staticmethod
    def default_sea_level_pressure() -> int:
        return DEFAULT_SEA_LEVEL_PA

    def compensate_altitude(self, bus: RegisterBus, shift_m: int) -> None:
        """Shift altitude by -128..+127 m."""
        bus.write_bytes([OFF_H, encode_altitude_offset(shift_m)])

    def compensate_pressure(self, bus: RegisterBus, shift_pa: int) -> None:
        """Shift pressure by -512..+508 Pa, in 4 Pa steps."""
        bus.write_bytes([OFF_PRES, encode_pressure_offset(shift_pa)])

    def compensate_temperature(self, bus: RegisterBus, shift_c: float) -> None:
        """Shift temperature by -8..+7.9375 degC, in 0.0625 degC steps."""
        bus.write_bytes([OFF_TEMP, encode_temperature_offset(shift_c)])

    def read_offsets(self, bus: RegisterBus) -> CalibrationOffsets:
        return CalibrationOffsets(
            pressure_pa=decode_pressure_offset(bus.read_byte(OFF_PRES)),
            temperature_c=decode_temperature_offset(bus.read_byte(OFF_TEMP)),
            altitude_m=decode_altitude_offset(bus.read_byte(OFF_H)),
        )

    def apply_calibration(self, bus: RegisterBus, calibration: CalibrationConfig) -> None:
        """Write every configured offset; all values are checked before the first write."""
        writes = [
            [OFF_PRES, encode_pressure_offset(calibration.pressure_offset_pa)],
            [OFF_TEMP, encode_temperature_offset(calibration.temperature_offset_c)],
            [OFF_H, encode_altitude_offset(calibration.altitude_offset_m)],
        ]
        if calibration.sea_level_pa is not None:
            writes.append([BAR_IN, *encode_sea_level_pressure(calibration.sea_level_pa)])
        for payload in writes:
            bus.write_bytes(payload)
        logger.debug(
            "Applied calibration: pressure=%d Pa temperature=%.4f C altitude=%d m sea_level=%s",
            calibration.pressure_offset_pa,
            calibration.temperature_offset_c,
            calibration.altitude_offset_m,
            calibration.sea_level_pa,
        )

    def _enter(self, phase: MeasurementPhase) -> MeasurementPhase:
        logger.debug("-> %s", phase.value)
        return phase

    def _wait_data_ready(self, bus: RegisterBus, attempts: int) -> StatusFlag:
        status: Optional[int] = None
        for attempt in range(1, attempts + 1):
            time.sleep(self.poll.interval_sec)
            status = bus.read_byte(STATUS)
            if status & StatusFlag.PRES_TEMP_DATA_READY:
                logger.debug("Data ready after %d polls (status=0x%02X)", attempt, status)
                return decode_status(status)
        raise DataReadyTimeout(attempts, status)

    def _read_sample_block(self, bus: RegisterBus) -> Tuple[int, RawPressure, RawTemperature]:
        bus.write_bytes([STATUS])
        data = bytes(bus.read_bytes(SAMPLE_BLOCK_BYTES))
        if len(data) != SAMPLE_BLOCK_BYTES:
            raise OSError(f"Short read: expected {SAMPLE_BLOCK_BYTES} bytes, got {len(data)}")
        pressure_end = 1 + PRESSURE_BYTES
        return (
            data[0],
            RawPressure.from_bytes(data[1:pressure_end]),
            RawTemperature.from_bytes(data[pressure_end:]),
        )
