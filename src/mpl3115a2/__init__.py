"""MPL3115A2 barometric pressure / altitude / temperature sensor driver."""

from importlib.metadata import PackageNotFoundError, version

from .errors import CompensationRangeError, DataReadyTimeout, OversampleRangeError
from .fixed_point import RawPressure, RawTemperature
from .registers import PressureMode, StatusFlag
from .sensor import DEFAULT_SEA_LEVEL_PA, MPL3115A2, Measurement

try:  # pragma: no cover - fallback when package metadata missing
    __version__ = version("mpl3115a2")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "CompensationRangeError",
    "DataReadyTimeout",
    "OversampleRangeError",
    "RawPressure",
    "RawTemperature",
    "PressureMode",
    "StatusFlag",
    "DEFAULT_SEA_LEVEL_PA",
    "MPL3115A2",
    "Measurement",
]
