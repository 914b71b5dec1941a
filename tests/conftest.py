from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from mpl3115a2.registers import STATUS, WHO_AM_I, WHO_AM_I_VALUE

SAMPLE_BLOCK = bytes([0x0C, 0x01, 0x90, 0x30, 0x16, 0x40])


class FakeBus:
    """In-memory register bus; STATUS reads pop from `statuses` until it runs dry."""

    def __init__(
        self,
        statuses: Iterable[int] = (),
        block: bytes = SAMPLE_BLOCK,
        registers: Optional[Dict[int, int]] = None,
    ):
        self.statuses: List[int] = list(statuses)
        self.block = bytes(block)
        self.registers: Dict[int, int] = {WHO_AM_I: WHO_AM_I_VALUE, STATUS: 0x0C}
        self.registers.update(registers or {})
        self.writes: List[tuple] = []
        self.status_reads = 0
        self.closed = False

    def write_byte(self, register: int, value: int) -> None:
        self.writes.append(("byte", register, value))

    def write_bytes(self, data: Sequence[int]) -> None:
        self.writes.append(("bytes", tuple(data)))

    def read_byte(self, register: int) -> int:
        if register == STATUS:
            self.status_reads += 1
            if self.statuses:
                return self.statuses.pop(0)
        return self.registers.get(register, 0)

    def read_bytes(self, count: int) -> bytes:
        return self.block[:count]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_bus():
    return FakeBus


@pytest.fixture
def no_sleep(monkeypatch) -> List[float]:
    sleeps: List[float] = []
    monkeypatch.setattr("mpl3115a2.sensor.time.sleep", sleeps.append)
    return sleeps
