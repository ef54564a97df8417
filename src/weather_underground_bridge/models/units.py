"""Measurement unit families and the plausible range of every field."""

from enum import Enum
from typing import NamedTuple


class FieldRange(NamedTuple):
    """Inclusive range of physically plausible values for a field.

    Example:
        >>> FieldRange(0.0, 100.0).contains(100.0)
        True
        >>> FieldRange(0.0, 100.0).contains(101.0)
        False
    """

    minimum: float
    maximum: float

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


class UnitScale(NamedTuple):
    """Labels of the scales a unit family reports values in."""

    temperature: str
    speed: str
    pressure: str
    precipitation: str
    precipitation_rate: str
    elevation: str


_METRIC_SCALE = UnitScale(
    temperature="°C",
    speed="km/h",
    pressure="hPa",
    precipitation="mm",
    precipitation_rate="mm/h",
    elevation="m",
)

_IMPERIAL_SCALE = UnitScale(
    temperature="°F",
    speed="mph",
    pressure="inHg",
    precipitation="in",
    precipitation_rate="in/h",
    elevation="ft",
)

# Ranges shared by both unit families
_COMMON_RANGES: dict[str, FieldRange] = {
    "humidity": FieldRange(0.0, 100.0),
    "wind_direction": FieldRange(0.0, 360.0),
    "solar_radiation": FieldRange(0.0, 2000.0),
    "uv": FieldRange(0.0, 20.0),
    "latitude": FieldRange(-90.0, 90.0),
    "longitude": FieldRange(-180.0, 180.0),
}

_METRIC_RANGES: dict[str, FieldRange] = {
    "temperature": FieldRange(-100.0, 70.0),
    "dew_point": FieldRange(-100.0, 70.0),
    "heat_index": FieldRange(-100.0, 70.0),
    "wind_chill": FieldRange(-100.0, 70.0),
    "pressure": FieldRange(800.0, 1100.0),
    "wind_speed": FieldRange(0.0, 400.0),
    "wind_gust": FieldRange(0.0, 400.0),
    "precipitation_rate": FieldRange(0.0, 500.0),
    "precipitation_total": FieldRange(0.0, 2000.0),
    "elevation": FieldRange(-500.0, 9000.0),
    **_COMMON_RANGES,
}

_IMPERIAL_RANGES: dict[str, FieldRange] = {
    "temperature": FieldRange(-148.0, 158.0),
    "dew_point": FieldRange(-148.0, 158.0),
    "heat_index": FieldRange(-148.0, 158.0),
    "wind_chill": FieldRange(-148.0, 158.0),
    "pressure": FieldRange(23.5, 32.5),
    "wind_speed": FieldRange(0.0, 250.0),
    "wind_gust": FieldRange(0.0, 250.0),
    "precipitation_rate": FieldRange(0.0, 20.0),
    "precipitation_total": FieldRange(0.0, 80.0),
    "elevation": FieldRange(-1650.0, 29600.0),
    **_COMMON_RANGES,
}


class Unit(str, Enum):
    """Unit family of an observation request.

    The value is the selector sent in the ``units`` query parameter.

    Example:
        >>> Unit.parse("metric") is Unit.METRIC
        True
        >>> Unit.IMPERIAL.block_name
        'imperial'
        >>> Unit.METRIC.bounds("humidity")
        FieldRange(minimum=0.0, maximum=100.0)
    """

    METRIC = "m"
    IMPERIAL = "e"

    @classmethod
    def parse(cls, value: "str | Unit") -> "Unit":
        """Parse a selector (``m``/``e``) or family name (``metric``/``imperial``).

        Raises:
            ValueError: If the value names no unit family
        """
        if isinstance(value, Unit):
            return value
        normalized = str(value).strip().lower()
        for unit in cls:
            if normalized in (unit.value, unit.block_name):
                return unit
        raise ValueError(f"Invalid unit value: {value!r} (expected m, e, metric or imperial)")

    @property
    def query_value(self) -> str:
        return self.value

    @property
    def block_name(self) -> str:
        """Name of the unit-specific sub-document in a response."""
        return "metric" if self is Unit.METRIC else "imperial"

    @property
    def other(self) -> "Unit":
        return Unit.IMPERIAL if self is Unit.METRIC else Unit.METRIC

    @property
    def scale(self) -> UnitScale:
        return _METRIC_SCALE if self is Unit.METRIC else _IMPERIAL_SCALE

    def bounds(self, field: str) -> FieldRange:
        """Plausible range for an Observation field in this unit family.

        Raises:
            KeyError: If the field is not a known measurement
        """
        ranges = _METRIC_RANGES if self is Unit.METRIC else _IMPERIAL_RANGES
        return ranges[field]

    def __str__(self) -> str:
        return self.value
