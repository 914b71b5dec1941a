from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from mpl3115a2.cli import app

runner = CliRunner()


def _patch_device(monkeypatch, bus) -> list:
    opened = []

    def fake_device(bus_number, address):
        opened.append((bus_number, address))
        return bus

    monkeypatch.setattr("mpl3115a2.cli.SMBusDevice", fake_device)
    return opened


def test_measure_prints_pressure(monkeypatch, make_bus, no_sleep) -> None:
    bus = make_bus(statuses=[0x00, 0x0C])
    opened = _patch_device(monkeypatch, bus)
    result = runner.invoke(app, ["measure", "--bus", "3", "--address", "0x60", "--oversample", "2"])
    assert result.exit_code == 0, result.output
    assert "Pressure = 1600.75 Pa, temperature = 22.2500 *C" in result.output
    assert opened == [(3, 0x60)]
    assert bus.closed
    assert bus.writes[0] == ("byte", 0x26, 0x10)


def test_measure_series_to_csv(monkeypatch, make_bus, no_sleep, tmp_path: Path) -> None:
    _patch_device(monkeypatch, make_bus())
    out = tmp_path / "alt.csv"
    result = runner.invoke(
        app,
        ["measure", "--mode", "altimeter", "--preset", "low-power", "--count", "2", "--interval", "0", "--out", str(out)],
    )
    assert result.exit_code == 0, result.output
    assert "Altitude = 400.19 m" in result.output
    assert "n=2 mean=400.19 m" in result.output
    assert out.exists()


def test_measure_reset_and_calibration(monkeypatch, make_bus, no_sleep) -> None:
    bus = make_bus()
    _patch_device(monkeypatch, bus)
    result = runner.invoke(
        app, ["measure", "--reset", "--set", "calibration.pressure_offset_pa=8"]
    )
    assert result.exit_code == 0, result.output
    assert bus.writes[0] == ("byte", 0x26, 0x04)
    assert ("bytes", (0x2B, 0x02)) in bus.writes


def test_measure_timeout_exits_with_error(monkeypatch, make_bus, no_sleep) -> None:
    bus = make_bus(registers={0x00: 0x00})
    _patch_device(monkeypatch, bus)
    result = runner.invoke(app, ["measure", "--set", "poll.max_attempts=3"])
    assert result.exit_code == 1
    assert "Data not ready after 3 status polls" in result.output
    assert bus.closed


def test_measure_rejects_bad_oversample(monkeypatch, make_bus) -> None:
    bus = make_bus()
    _patch_device(monkeypatch, bus)
    result = runner.invoke(app, ["measure", "--oversample", "9"])
    assert result.exit_code == 2
    assert bus.writes == []


def test_measure_rejects_out_of_range_calibration(monkeypatch, make_bus) -> None:
    bus = make_bus()
    opened = _patch_device(monkeypatch, bus)
    result = runner.invoke(app, ["measure", "--set", "calibration.pressure_offset_pa=600"])
    assert result.exit_code == 2
    assert opened == []
    assert bus.writes == []


def test_calibrate_writes_and_reads_back(monkeypatch, make_bus) -> None:
    bus = make_bus(registers={0x2B: 0x02, 0x2C: 0xF8, 0x2D: 0xCE})
    _patch_device(monkeypatch, bus)
    result = runner.invoke(
        app,
        [
            "calibrate",
            "--sea-level",
            "90000",
            "--altitude-offset",
            "-50",
            "--pressure-offset",
            "10",
            "--temperature-offset",
            "-0.5",
        ],
    )
    assert result.exit_code == 0, result.output
    assert bus.writes == [
        ("bytes", (0x14, 0xAF, 0xC8)),
        ("bytes", (0x2D, 0xCE)),
        ("bytes", (0x2B, 0x02)),
        ("bytes", (0x2C, 0xF8)),
    ]
    assert "Offsets: pressure=8 Pa temperature=-0.5000 *C altitude=-50 m" in result.output


def test_calibrate_rejects_out_of_range(monkeypatch, make_bus) -> None:
    bus = make_bus()
    _patch_device(monkeypatch, bus)
    result = runner.invoke(app, ["calibrate", "--pressure-offset", "600"])
    assert result.exit_code == 2
    assert bus.writes == []


def test_reset_and_status_commands(monkeypatch, make_bus) -> None:
    bus = make_bus()
    _patch_device(monkeypatch, bus)
    result = runner.invoke(app, ["reset"])
    assert result.exit_code == 0, result.output
    assert bus.writes == [("byte", 0x26, 0x04)]

    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0, result.output
    assert "WHO_AM_I=0xC4 STATUS=0x0C" in result.output
