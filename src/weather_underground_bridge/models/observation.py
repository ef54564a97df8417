"""Observation models: the raw wire schema and the validated domain value."""

import math
from datetime import datetime
from typing import Any, ClassVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..core.exceptions import DecodeError
from .units import Unit

# A JSON scalar as received on the wire. Numeric validation happens on conversion.
Scalar = StrictBool | StrictInt | StrictFloat | StrictStr | None


class RawMeasurements(BaseModel):
    """Unit-specific sub-document (``metric`` or ``imperial``) of an observation."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    temp: Scalar = None
    dewpt: Scalar = None
    heat_index: Scalar = None
    wind_chill: Scalar = None
    wind_speed: Scalar = None
    wind_gust: Scalar = None
    pressure: Scalar = None
    precip_rate: Scalar = None
    precip_total: Scalar = None
    elev: Scalar = None

    def is_empty(self) -> bool:
        """True when the block carries no value at all (``{}`` or all null).

        Example:
            >>> RawMeasurements().is_empty()
            True
            >>> RawMeasurements(temp=21.5).is_empty()
            False
        """
        return all(value is None for value in self.model_dump().values())


class RawObservation(BaseModel):
    """One entry of the ``observations`` list."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    station_id: Scalar = Field(default=None, alias="stationID")
    obs_time_utc: Scalar = None
    obs_time_local: Scalar = None
    epoch: Scalar = None
    lat: Scalar = None
    lon: Scalar = None
    country: Scalar = None
    neighborhood: Scalar = None
    humidity: Scalar = None
    winddir: Scalar = None
    uv: Scalar = None
    solar_radiation: Scalar = None
    metric: RawMeasurements | None = None
    imperial: RawMeasurements | None = None

    def block(self, unit: Unit) -> RawMeasurements | None:
        """Return the measurement sub-document for a unit family."""
        return getattr(self, unit.block_name)


class ObservationEnvelope(BaseModel):
    """Top-level document returned by the PWS observations endpoint."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    observations: list[RawObservation] | None = None
    errors: list[Any] | None = None
    metadata: dict[str, Any] | None = None
    success: StrictBool | None = None


class RawResponse(BaseModel):
    """Structurally valid response, tagged with what was requested.

    Example:
        >>> raw = RawResponse.from_payload(
        ...     {"observations": [{"stationID": "IPARIS18204", "metric": {"temp": 21.5}}]},
        ...     station_id="IPARIS18204",
        ...     unit=Unit.METRIC,
        ... )
        >>> raw.has_data()
        True
    """

    model_config = ConfigDict(frozen=True)

    station_id: str
    unit: Unit
    body: ObservationEnvelope

    @classmethod
    def from_payload(cls, payload: Any, *, station_id: str, unit: Unit) -> "RawResponse":
        """Validate a decoded JSON document against the envelope schema.

        Raises:
            DecodeError: If the document is not shaped like an observation envelope
        """
        if not isinstance(payload, dict):
            raise DecodeError(
                f"Expected a JSON object, got {type(payload).__name__}",
                station_id=station_id,
            )
        try:
            body = ObservationEnvelope.model_validate(payload)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise DecodeError(
                f"Malformed response at {location}: {first['msg']}",
                station_id=station_id,
            ) from e
        return cls(station_id=station_id, unit=unit, body=body)

    @property
    def observation(self) -> RawObservation | None:
        """First observation of the envelope, if any."""
        if not self.body.observations:
            return None
        return self.body.observations[0]

    def has_data(self) -> bool:
        """Whether the station reported anything for the requested unit.

        No data means no observation, or an observation whose requested unit
        block is empty, or absent while the other unit's block is absent too.
        A block present only for the other unit is data (and fails conversion).
        """
        observation = self.observation
        if observation is None:
            return False
        block = observation.block(self.unit)
        if block is not None:
            return not block.is_empty()
        return observation.block(self.unit.other) is not None


class Observation(BaseModel):
    """Validated weather reading for one station at one point in time.

    Every populated measurement is finite and within the plausible range of
    its unit family; absent sensors are None.

    Example:
        >>> from datetime import datetime, timezone
        >>> obs = Observation(
        ...     station_id="IPARIS18204",
        ...     timestamp=datetime(2023, 1, 1, 12, tzinfo=timezone.utc),
        ...     unit=Unit.METRIC,
        ...     temperature=21.5,
        ...     humidity=55.0,
        ... )
        >>> obs.fields()
        {'temperature': 21.5, 'humidity': 55.0}
    """

    model_config = ConfigDict(frozen=True)

    MEASUREMENTS: ClassVar[tuple[str, ...]] = (
        "temperature",
        "dew_point",
        "heat_index",
        "wind_chill",
        "humidity",
        "pressure",
        "wind_speed",
        "wind_gust",
        "wind_direction",
        "precipitation_rate",
        "precipitation_total",
        "elevation",
        "solar_radiation",
        "uv",
    )

    station_id: str = Field(..., min_length=1, description="Station identifier")
    timestamp: datetime = Field(..., description="Observation time (UTC)")
    unit: Unit = Field(..., description="Unit family of the measurements")
    local_time: str | None = Field(default=None, description="Station-local time as reported")

    latitude: float | None = None
    longitude: float | None = None
    country: str | None = None
    neighborhood: str | None = None

    temperature: float | None = None
    dew_point: float | None = None
    heat_index: float | None = None
    wind_chill: float | None = None
    humidity: float | None = None
    pressure: float | None = None
    wind_speed: float | None = None
    wind_gust: float | None = None
    wind_direction: float | None = None
    precipitation_rate: float | None = None
    precipitation_total: float | None = None
    elevation: float | None = None
    solar_radiation: float | None = None
    uv: float | None = None

    @model_validator(mode="after")
    def check_ranges(self) -> "Observation":
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        for name in (*self.MEASUREMENTS, "latitude", "longitude"):
            value = getattr(self, name)
            if value is None:
                continue
            bounds = self.unit.bounds(name)
            if not math.isfinite(value) or not bounds.contains(value):
                raise ValueError(
                    f"{name}={value} is outside [{bounds.minimum}, {bounds.maximum}]"
                )
        return self

    def fields(self) -> dict[str, float]:
        """Populated measurements, in declaration order."""
        return {
            name: getattr(self, name)
            for name in self.MEASUREMENTS
            if getattr(self, name) is not None
        }
