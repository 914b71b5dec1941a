"""
Register bus abstraction.

`RegisterBus` is the narrow surface the driver needs. `SMBusDevice` binds it
to a Linux I2C adapter through smbus2; tests provide in-memory fakes.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

try:
    import smbus2  # type: ignore[import]
except ImportError:  # pragma: no cover - handled when the bus is opened
    smbus2 = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class RegisterBus(Protocol):
    def write_byte(self, register: int, value: int) -> None:
        ...

    def write_bytes(self, data: Sequence[int]) -> None:
        ...

    def read_byte(self, register: int) -> int:
        ...

    def read_bytes(self, count: int) -> bytes:
        ...


class SMBusDevice:
    """One I2C device on a Linux bus (/dev/i2c-N)."""

    def __init__(self, bus_number: int, address: int = 0x60):
        if smbus2 is None:
            raise ImportError("smbus2 is required but not installed. Install extra 'i2c'.")
        self.bus_number = bus_number
        self.address = address
        self._bus: Optional["smbus2.SMBus"] = smbus2.SMBus(bus_number)
        logger.debug("Opened /dev/i2c-%d for device 0x%02X", bus_number, address)

    def _handle(self) -> "smbus2.SMBus":
        if self._bus is None:
            raise OSError(f"I2C bus {self.bus_number} is closed")
        return self._bus

    def write_byte(self, register: int, value: int) -> None:
        self._handle().write_byte_data(self.address, register, value & 0xFF)

    def write_bytes(self, data: Sequence[int]) -> None:
        msg = smbus2.i2c_msg.write(self.address, [value & 0xFF for value in data])
        self._handle().i2c_rdwr(msg)

    def read_byte(self, register: int) -> int:
        return self._handle().read_byte_data(self.address, register)

    def read_bytes(self, count: int) -> bytes:
        msg = smbus2.i2c_msg.read(self.address, count)
        self._handle().i2c_rdwr(msg)
        return bytes(msg)

    def close(self) -> None:
        if self._bus is not None:
            self._bus.close()
            self._bus = None

    def __enter__(self) -> "SMBusDevice":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
