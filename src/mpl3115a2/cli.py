"""Command line interface for the mpl3115a2 package."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

import typer

from .bus import SMBusDevice
from .config import PRESETS, CalibrationConfig, SensorConfig, load_config, preset_overrides
from .errors import DataReadyTimeout
from .registers import WHO_AM_I_VALUE, PressureMode
from .sensor import MPL3115A2, Measurement
from .series import CsvRecorder, collect

logger = logging.getLogger(__name__)

# Time the device needs to reboot after a soft reset
RESET_SETTLE_SEC = 0.05

app = typer.Typer(
    add_completion=False,
    help="MPL3115A2 pressure / altitude / temperature sensor utilities.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log bus-level debug output."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_config(
    config_path: Optional[Path],
    preset: Optional[str],
    override: Optional[List[str]],
    bus: Optional[int],
    address: Optional[str],
    extra: Optional[List[str]] = None,
) -> SensorConfig:
    overrides: List[str] = []
    if preset:
        key = preset.lower()
        if key not in PRESETS:
            raise typer.BadParameter(f"Unknown preset '{preset}'. Expected one of {list(PRESETS)}")
        overrides.extend(preset_overrides(key))
    overrides.extend(override or [])
    if bus is not None:
        overrides.append(f"bus.bus={bus}")
    if address is not None:
        overrides.append(f"bus.address={address}")
    overrides.extend(extra or [])
    try:
        return load_config(config_path, overrides or None)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _open_device(cfg: SensorConfig) -> SMBusDevice:
    try:
        return SMBusDevice(cfg.bus.bus, cfg.bus.address)
    except ImportError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except OSError as exc:
        typer.echo(f"Cannot open I2C bus {cfg.bus.bus}: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _format(measurement: Measurement) -> str:
    label = "Altitude" if measurement.mode is PressureMode.ALTIMETER else "Pressure"
    return f"{label} = {measurement.value:.2f} {measurement.unit}, temperature = {measurement.temperature:.4f} *C"


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


ConfigOption = typer.Option(None, "--config", "-c", help="Path to sensor JSON config.")
BusOption = typer.Option(None, "--bus", "-b", help="I2C bus number (/dev/i2c-N).")
AddressOption = typer.Option(None, "--address", "-a", help="Device address, e.g. 0x60.")
OverrideOption = typer.Option(None, "--set", help="Override config keys, e.g. --set poll.max_attempts=200")


@app.command()
def measure(
    config_path: Optional[Path] = ConfigOption,
    bus: Optional[int] = BusOption,
    address: Optional[str] = AddressOption,
    override: Optional[List[str]] = OverrideOption,
    preset: Optional[str] = typer.Option(
        None, "--preset", "-P", help="Apply preset (low-power|standard|high-res) before other overrides."
    ),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="barometer (Pa) or altimeter (m)."),
    oversample: Optional[int] = typer.Option(None, "--oversample", "-o", help="Oversample ratio 0..7 (2^osr)."),
    count: int = typer.Option(1, "--count", "-n", min=1, help="Number of measurements."),
    interval: float = typer.Option(1.0, "--interval", help="Seconds between measurements."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write measurements to this CSV file."),
    reset_first: bool = typer.Option(False, "--reset", help="Soft-reset the sensor before measuring."),
) -> None:
    """Measure pressure or altitude together with temperature."""

    extra: List[str] = []
    if mode is not None:
        extra.append(f"mode={mode}")
    if oversample is not None:
        extra.append(f"oversample={oversample}")
    cfg = _build_config(config_path, preset, override, bus, address, extra)
    if out is not None:
        cfg.output_csv = out
    sensor = MPL3115A2(cfg.poll)
    recorder = CsvRecorder(cfg.output_csv) if cfg.output_csv else None
    device = _open_device(cfg)
    try:
        who_am_i = sensor.read_who_am_i(device)
        if who_am_i != WHO_AM_I_VALUE:
            logger.warning("Unexpected WHO_AM_I 0x%02X (expected 0x%02X)", who_am_i, WHO_AM_I_VALUE)
        if reset_first:
            sensor.reset(device)
            time.sleep(RESET_SETTLE_SEC)
        if cfg.calibration != CalibrationConfig():
            sensor.apply_calibration(device, cfg.calibration)
        if recorder is not None:
            recorder.set_metadata(
                {"bus": str(cfg.bus.bus), "address": f"0x{cfg.bus.address:02X}", "oversample": str(cfg.oversample)}
            )
        series = collect(
            sensor,
            device,
            count,
            oversample=cfg.oversample,
            mode=cfg.mode_enum,
            interval_sec=interval,
            recorder=recorder,
            on_sample=lambda m: typer.echo(_format(m)),
        )
    except (DataReadyTimeout, OSError) as exc:
        raise _fail(exc) from exc
    finally:
        if recorder is not None:
            recorder.close()
        device.close()

    if len(series) > 1:
        summary = series.summary()
        unit = series.measurements[0].unit
        typer.echo(
            f"n={summary.count} mean={summary.value.mean:.2f} {unit} std={summary.value.std:.3f} "
            f"min={summary.value.min:.2f} max={summary.value.max:.2f}; "
            f"temperature mean={summary.temperature.mean:.3f} *C std={summary.temperature.std:.4f}"
        )
    if cfg.output_csv:
        typer.echo(f"Measurements written to {cfg.output_csv}")


@app.command()
def reset(
    config_path: Optional[Path] = ConfigOption,
    bus: Optional[int] = BusOption,
    address: Optional[str] = AddressOption,
) -> None:
    """Soft-reset the sensor."""

    cfg = _build_config(config_path, None, None, bus, address)
    device = _open_device(cfg)
    try:
        MPL3115A2(cfg.poll).reset(device)
    finally:
        device.close()
    typer.echo("Reset issued")


@app.command()
def calibrate(
    config_path: Optional[Path] = ConfigOption,
    bus: Optional[int] = BusOption,
    address: Optional[str] = AddressOption,
    sea_level: Optional[int] = typer.Option(None, "--sea-level", help="Sea level reference pressure (Pa)."),
    altitude_offset: Optional[int] = typer.Option(None, "--altitude-offset", help="Altitude shift -128..127 m."),
    pressure_offset: Optional[int] = typer.Option(None, "--pressure-offset", help="Pressure shift -512..508 Pa."),
    temperature_offset: Optional[float] = typer.Option(
        None, "--temperature-offset", help="Temperature shift -8..7.9375 *C."
    ),
) -> None:
    """Write sea level reference and offset registers, then print them back."""

    cfg = _build_config(config_path, None, None, bus, address)
    sensor = MPL3115A2(cfg.poll)
    device = _open_device(cfg)
    try:
        if sea_level is not None:
            typer.echo(
                f"Change sea level pressure to {sea_level} Pa, where default is "
                f"{sensor.default_sea_level_pressure()} Pa"
            )
            sensor.modify_sea_level_pressure(device, sea_level)
        if altitude_offset is not None:
            sensor.compensate_altitude(device, altitude_offset)
        if pressure_offset is not None:
            sensor.compensate_pressure(device, pressure_offset)
        if temperature_offset is not None:
            sensor.compensate_temperature(device, temperature_offset)
        offsets = sensor.read_offsets(device)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except OSError as exc:
        raise _fail(exc) from exc
    finally:
        device.close()
    typer.echo(
        f"Offsets: pressure={offsets.pressure_pa} Pa temperature={offsets.temperature_c:.4f} *C "
        f"altitude={offsets.altitude_m} m"
    )


@app.command()
def status(
    config_path: Optional[Path] = ConfigOption,
    bus: Optional[int] = BusOption,
    address: Optional[str] = AddressOption,
) -> None:
    """Print device identity and the data-ready status flags."""

    cfg = _build_config(config_path, None, None, bus, address)
    sensor = MPL3115A2(cfg.poll)
    device = _open_device(cfg)
    try:
        who_am_i = sensor.read_who_am_i(device)
        flags = sensor.read_status(device)
    except OSError as exc:
        raise _fail(exc) from exc
    finally:
        device.close()
    names = [flag.name for flag in type(flags) if flag.value and flag in flags] or ["NONE"]
    typer.echo(f"WHO_AM_I=0x{who_am_i:02X} STATUS=0x{int(flags):02X} ({', '.join(names)})")


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
