"""Exception types raised by the driver."""
from __future__ import annotations

from typing import Optional


class OversampleRangeError(ValueError):
    """Oversample ratio outside [0..7]."""


class CompensationRangeError(ValueError):
    """Calibration offset outside the range the offset register can hold."""


class DataReadyTimeout(RuntimeError):
    """
    The data-ready flag never appeared within the poll budget.

    Kept apart from ``OSError`` so callers can tell a stalled conversion from
    a failing bus.
    """

    def __init__(self, attempts: int, last_status: Optional[int] = None):
        self.attempts = attempts
        self.last_status = last_status
        status = "n/a" if last_status is None else f"0x{last_status:02X}"
        super().__init__(f"Data not ready after {attempts} status polls (last status={status})")
