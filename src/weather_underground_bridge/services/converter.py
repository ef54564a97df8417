"""Conversion of raw observation responses into validated Observations."""

import math
from datetime import datetime, timezone

from pydantic import AwareDatetime, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError
from ..models.observation import Observation, RawMeasurements, RawObservation, RawResponse, Scalar
from ..models.units import Unit

# Observation field -> wire name, for values outside the unit sub-document
_ROOT_FIELDS: dict[str, str] = {
    "humidity": "humidity",
    "wind_direction": "winddir",
    "uv": "uv",
    "solar_radiation": "solarRadiation",
    "latitude": "lat",
    "longitude": "lon",
}

# Observation field -> wire name, inside the unit sub-document
_BLOCK_FIELDS: dict[str, str] = {
    "temperature": "temp",
    "dew_point": "dewpt",
    "heat_index": "heatIndex",
    "wind_chill": "windChill",
    "wind_speed": "windSpeed",
    "wind_gust": "windGust",
    "pressure": "pressure",
    "precipitation_rate": "precipRate",
    "precipitation_total": "precipTotal",
    "elevation": "elev",
}

_AWARE_DATETIME = TypeAdapter(AwareDatetime)


def _parse_number(name: str, value: Scalar, unit: Unit, field: str) -> float | None:
    """Parse a measurement and check it against the unit's plausible range.

    Example:
        >>> _parse_number("humidity", 55, Unit.METRIC, "humidity")
        55.0
        >>> _parse_number("humidity", None, Unit.METRIC, "humidity") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(name, f"expected a number, got {value!r}")
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(name, f"expected a number, got {value!r}") from None
    else:
        try:
            number = float(value)
        except OverflowError:
            raise ValidationError(
                name, "expected a finite number, got an integer too large for a float"
            ) from None

    if not math.isfinite(number):
        raise ValidationError(name, f"expected a finite number, got {value!r}")

    bounds = unit.bounds(field)
    if not bounds.contains(number):
        raise ValidationError(
            name,
            f"{number:g} is outside [{bounds.minimum:g}, {bounds.maximum:g}]",
        )
    return number


def _parse_timestamp(value: Scalar) -> datetime:
    """Parse ``obsTimeUtc`` into an aware UTC datetime.

    Example:
        >>> _parse_timestamp("2023-01-01T12:00:00Z")
        datetime.datetime(2023, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if value is None:
        raise ValidationError("obsTimeUtc", "missing")
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("obsTimeUtc", f"expected an ISO 8601 string, got {value!r}")

    try:
        parsed = _AWARE_DATETIME.validate_python(value.strip())
    except PydanticValidationError as e:
        if e.errors()[0]["type"] == "timezone_aware":
            raise ValidationError("obsTimeUtc", f"timestamp {value!r} has no timezone") from None
        raise ValidationError("obsTimeUtc", f"unparseable timestamp {value!r}") from None
    return parsed.astimezone(timezone.utc)


def _parse_station_id(value: Scalar, expected: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("stationID", "missing")
    if not isinstance(value, str):
        raise ValidationError("stationID", f"expected a string, got {value!r}")
    if value != expected:
        raise ValidationError("stationID", f"{value!r} does not match requested {expected!r}")
    return value


def _optional_text(value: Scalar) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _select_block(observation: RawObservation, unit: Unit) -> RawMeasurements | None:
    """Return the requested unit block, rejecting a response in the other unit."""
    block = observation.block(unit)
    if block is None and observation.block(unit.other) is not None:
        raise ValidationError(
            unit.block_name,
            f"missing; response carries {unit.other.block_name} values instead",
        )
    return block


def convert(raw: RawResponse) -> Observation:
    """Convert a raw response into a validated Observation.

    The unit family and the station id are the ones the request was made with.
    Required fields are the station id and ``obsTimeUtc``; every measurement
    present must be a finite number within the unit's plausible range. Absent
    measurements are None, never zero.

    Args:
        raw: Response returned by fetch_observation

    Returns:
        The validated observation

    Raises:
        ValidationError: Naming the first offending field

    Example:
        >>> raw = RawResponse.from_payload(
        ...     {"observations": [{
        ...         "stationID": "IPARIS18204",
        ...         "obsTimeUtc": "2023-01-01T12:00:00Z",
        ...         "humidity": 55,
        ...         "metric": {"temp": 21.5},
        ...     }]},
        ...     station_id="IPARIS18204",
        ...     unit=Unit.METRIC,
        ... )
        >>> obs = convert(raw)
        >>> (obs.temperature, obs.humidity, obs.pressure)
        (21.5, 55.0, None)
    """
    observation = raw.observation
    if observation is None:
        raise ValidationError("observations", "empty", station_id=raw.station_id)

    unit = raw.unit
    try:
        station_id = _parse_station_id(observation.station_id, raw.station_id)
        timestamp = _parse_timestamp(observation.obs_time_utc)
        block = _select_block(observation, unit)

        values: dict[str, float | None] = {
            field: _parse_number(wire, getattr(observation, _attribute(wire)), unit, field)
            for field, wire in _ROOT_FIELDS.items()
        }
        for field, wire in _BLOCK_FIELDS.items():
            value = getattr(block, _attribute(wire)) if block is not None else None
            values[field] = _parse_number(f"{unit.block_name}.{wire}", value, unit, field)
    except ValidationError as e:
        e.station_id = raw.station_id
        raise

    return Observation(
        station_id=station_id,
        timestamp=timestamp,
        unit=unit,
        local_time=_optional_text(observation.obs_time_local),
        country=_optional_text(observation.country),
        neighborhood=_optional_text(observation.neighborhood),
        **values,
    )


def _attribute(wire: str) -> str:
    """Model attribute holding a wire field (``heatIndex`` -> ``heat_index``).

    Example:
        >>> _attribute("solarRadiation")
        'solar_radiation'
    """
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in wire)
