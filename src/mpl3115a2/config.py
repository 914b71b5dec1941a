from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .registers import (
    OVERSAMPLE_MAX,
    OVERSAMPLE_MIN,
    OVERSAMPLE_MIN_TIME_MS,
    PressureMode,
    encode_altitude_offset,
    encode_pressure_offset,
    encode_sea_level_pressure,
    encode_temperature_offset,
)

DEFAULT_I2C_ADDRESS = 0x60


@dataclass
class BusConfig:
    bus: int = 1
    address: int = DEFAULT_I2C_ADDRESS


@dataclass
class PollPolicy:
    """
    How long to wait for the data-ready flag.

    `max_attempts=None` derives the bound from the oversample ratio: four times
    the nominal conversion time, never fewer than `min_attempts` polls.
    """

    interval_sec: float = 0.002
    max_attempts: Optional[int] = None
    min_attempts: int = 50

    def __post_init__(self) -> None:
        if self.interval_sec <= 0:
            raise ValueError("poll.interval_sec must be positive")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("poll.max_attempts must be at least 1")

    def attempts_for(self, oversample: int) -> int:
        if self.max_attempts is not None:
            return self.max_attempts
        nominal_sec = OVERSAMPLE_MIN_TIME_MS[oversample] / 1000.0
        interval = max(self.interval_sec, 1e-4)
        return max(self.min_attempts, math.ceil(4 * nominal_sec / interval))


@dataclass
class CalibrationConfig:
    sea_level_pa: Optional[int] = None
    altitude_offset_m: int = 0
    pressure_offset_pa: int = 0
    temperature_offset_c: float = 0.0

    def validate(self) -> "CalibrationConfig":
        # Same checks the sensor applies before writing the offset registers
        encode_pressure_offset(self.pressure_offset_pa)
        encode_temperature_offset(self.temperature_offset_c)
        encode_altitude_offset(self.altitude_offset_m)
        if self.sea_level_pa is not None:
            encode_sea_level_pressure(self.sea_level_pa)
        return self


@dataclass
class SensorConfig:
    oversample: int = 3
    mode: str = "barometer"
    bus: BusConfig = field(default_factory=BusConfig)
    poll: PollPolicy = field(default_factory=PollPolicy)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    output_csv: Path | None = None

    @property
    def mode_enum(self) -> PressureMode:
        try:
            return PressureMode(self.mode.lower())
        except ValueError:
            raise ValueError(f"Unsupported mode '{self.mode}'") from None

    def validate(self) -> "SensorConfig":
        if not OVERSAMPLE_MIN <= self.oversample <= OVERSAMPLE_MAX:
            raise ValueError(f"oversample must be in range [{OVERSAMPLE_MIN}..{OVERSAMPLE_MAX}]")
        self.mode = self.mode_enum.value
        if not 0 <= self.bus.address <= 0x7F:
            raise ValueError(f"bus.address 0x{self.bus.address:X} is not a 7-bit I2C address")
        self.calibration.validate()
        return self


PRESETS: Dict[str, Dict[str, Any]] = {
    "low-power": {"oversample": 0, "poll": {"interval_sec": 0.002}},
    "standard": {"oversample": 3, "poll": {"interval_sec": 0.005}},
    "high-res": {"oversample": 7, "poll": {"interval_sec": 0.02}},
}


def preset_overrides(preset: str) -> list[str]:
    data = PRESETS[preset]
    return [
        f"oversample={data['oversample']}",
        f"poll.interval_sec={data['poll']['interval_sec']}",
    ]


def _read_document(path: Path | str | None) -> Dict[str, Any]:
    if path is None:
        return {}
    document = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        raise ValueError(f"{path}: top-level JSON value must be an object")
    return document


def _overlay(base: Dict[str, Any], layer: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively lay `layer` over `base`; sections merge, scalars replace."""
    result = dict(base)
    for key, value in layer.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _overlay(current, value)
        result[key] = value
    return result


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def load_config(path: Path | str | None = None, overrides: Sequence[str] | None = None) -> SensorConfig:
    """
    Load a sensor configuration from JSON and apply CLI-style overrides.

    Overrides are expressed as dotted `key=value` pairs, e.g.:
        ["oversample=7", "poll.max_attempts=200", "bus.address=0x60"]
    """
    merged = _overlay(_read_document(path), _overrides_to_mapping(overrides or []))
    bus_data = merged.get("bus") or {}
    address = _optional_int(bus_data.get("address"))
    poll_data = merged.get("poll") or {}
    cal_data = merged.get("calibration") or {}
    config = SensorConfig(
        oversample=int(merged.get("oversample", 3)),
        mode=str(merged.get("mode", "barometer")),
        bus=BusConfig(
            bus=int(bus_data.get("bus", 1)),
            address=DEFAULT_I2C_ADDRESS if address is None else address,
        ),
        poll=PollPolicy(
            interval_sec=float(poll_data.get("interval_sec", 0.002)),
            max_attempts=_optional_int(poll_data.get("max_attempts")),
            min_attempts=int(poll_data.get("min_attempts", 50)),
        ),
        calibration=CalibrationConfig(
            sea_level_pa=_optional_int(cal_data.get("sea_level_pa")),
            altitude_offset_m=int(cal_data.get("altitude_offset_m", 0)),
            pressure_offset_pa=int(cal_data.get("pressure_offset_pa", 0)),
            temperature_offset_c=float(cal_data.get("temperature_offset_c", 0.0)),
        ),
        output_csv=Path(merged["output_csv"]) if merged.get("output_csv") else None,
    )
    return config.validate()


def _overrides_to_mapping(items: Sequence[str]) -> Dict[str, Any]:
    """Turn ["poll.max_attempts=200", ...] into {"poll": {"max_attempts": 200}}; later items win."""
    mapping: Dict[str, Any] = {}
    for item in items:
        dotted_key, sep, raw_value = item.partition("=")
        if not sep:
            raise ValueError(f"Override '{item}' must use key=value syntax")
        path = [part.strip() for part in dotted_key.split(".")]
        if not all(path):
            raise ValueError(f"Override '{item}' has an empty key")
        section = mapping
        for part in path[:-1]:
            child = section.setdefault(part, {})
            if not isinstance(child, dict):
                raise ValueError(f"Override '{item}' descends into non-section key '{part}'")
            section = child
        section[path[-1]] = _coerce_value(raw_value.strip())
    return mapping


def _coerce_value(raw: str) -> Any:
    if raw.lower() in {"true", "false"}:
        return raw.lower() == "true"
    if raw.lower() in {"null", "none"}:
        return None
    if raw.lower().startswith("0x"):
        return int(raw, 16)
    try:
        if "." in raw or "e" in raw.lower():
            return float(raw)
        return int(raw)
    except ValueError:
        pass
    if raw.startswith("[") and raw.endswith("]"):
        return json.loads(raw)
    if raw.startswith("{") and raw.endswith("}"):
        return json.loads(raw)
    return raw
