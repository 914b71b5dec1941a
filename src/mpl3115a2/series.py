from __future__ import annotations

import csv
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO

import numpy as np

from .bus import RegisterBus
from .registers import PressureMode
from .sensor import MPL3115A2, Measurement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelSummary:
    mean: float
    std: float
    min: float
    max: float


@dataclass(frozen=True)
class SeriesSummary:
    count: int
    value: ChannelSummary
    temperature: ChannelSummary


def _summarize(values: np.ndarray) -> ChannelSummary:
    return ChannelSummary(
        mean=float(np.mean(values)),
        std=float(np.std(values, ddof=1)) if values.size > 1 else 0.0,
        min=float(np.min(values)),
        max=float(np.max(values)),
    )


@dataclass
class MeasurementSeries:
    """Measurements of a single mode collected over time."""

    mode: PressureMode
    measurements: List[Measurement] = field(default_factory=list)
    timestamps: List[float] = field(default_factory=list)

    def append(self, measurement: Measurement, ts: float) -> None:
        if measurement.mode is not self.mode:
            raise ValueError(f"Series holds {self.mode.value} samples, got {measurement.mode.value}")
        self.measurements.append(measurement)
        self.timestamps.append(ts)

    def __len__(self) -> int:
        return len(self.measurements)

    def summary(self) -> SeriesSummary:
        if not self.measurements:
            raise ValueError("Cannot summarize an empty series")
        values = np.array([m.value for m in self.measurements], dtype=float)
        temps = np.array([m.temperature for m in self.measurements], dtype=float)
        return SeriesSummary(count=len(self), value=_summarize(values), temperature=_summarize(temps))


class CsvRecorder:
    """
    Lazily creates the CSV file when the first measurement arrives, so a run
    that fails before measuring leaves nothing behind.
    """

    fieldnames = ["ts", "mode", "value", "unit", "temperature", "oversample", "status"]

    def __init__(self, path: Path):
        self.path = path
        self._writer: Optional[csv.DictWriter[str]] = None
        self._file_handle: Optional[TextIO] = None
        self._pending_metadata: List[str] = []

    def append(self, measurement: Measurement, ts: float) -> None:
        if self._writer is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = self.path.open("w", newline="", encoding="utf-8")
            for line in self._pending_metadata:
                self._file_handle.write(line + "\n")
            self._pending_metadata.clear()
            self._writer = csv.DictWriter(self._file_handle, fieldnames=self.fieldnames)
            self._writer.writeheader()
        self._writer.writerow(
            {
                "ts": f"{ts:.3f}",
                "mode": measurement.mode.value,
                "value": measurement.value,
                "unit": measurement.unit,
                "temperature": measurement.temperature,
                "oversample": measurement.oversample,
                "status": f"0x{measurement.status:02X}",
            }
        )
        if self._file_handle is not None:
            self._file_handle.flush()

    def set_metadata(self, metadata: Dict[str, str]) -> None:
        if not metadata:
            return
        line = "# " + " ".join(f"{key}={value}" for key, value in metadata.items())
        if self._file_handle is None:
            self._pending_metadata.append(line)
            return
        self._file_handle.write(line + "\n")
        self._file_handle.flush()

    def close(self) -> None:
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None
            self._writer = None


def collect(
    sensor: MPL3115A2,
    bus: RegisterBus,
    count: int,
    *,
    oversample: int,
    mode: PressureMode | str,
    interval_sec: float = 0.0,
    recorder: Optional[CsvRecorder] = None,
    clock: Callable[[], float] = time.monotonic,
    on_sample: Optional[Callable[[Measurement], None]] = None,
) -> MeasurementSeries:
    """Take `count` measurements, `interval_sec` apart."""
    if count < 1:
        raise ValueError("count must be at least 1")
    series = MeasurementSeries(mode=PressureMode(mode))
    start = clock()
    for index in range(count):
        if index and interval_sec > 0:
            time.sleep(interval_sec)
        measurement = sensor.measure(bus, oversample, series.mode)
        ts = clock() - start
        series.append(measurement, ts)
        if recorder is not None:
            recorder.append(measurement, ts)
        if on_sample is not None:
            on_sample(measurement)
    logger.debug("Collected %d %s samples", len(series), series.mode.value)
    return series
