"""InfluxDB publisher writing observations as line-protocol points."""

import httpx
from loguru import logger

from ..core.config import Settings, settings
from ..core.exceptions import InfluxWriteError
from ..models.observation import Observation

MEASUREMENT_PREFIX = "weather-underground_"


def _escape(value: str, measurement: bool = False) -> str:
    """Escape a measurement name, tag key/value or field key.

    Line breaks cannot be escaped in line protocol and become spaces.

    Example:
        >>> _escape("Le Marais, Paris")
        'Le\\\\ Marais\\\\,\\\\ Paris'
    """
    value = value.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    value = value.replace("\\", "\\\\").replace(",", "\\,").replace(" ", "\\ ")
    if not measurement:
        value = value.replace("=", "\\=")
    return value


def _tags(observation: Observation) -> dict[str, str]:
    tags = {
        "station": observation.station_id,
        "unit": observation.unit.block_name,
        "country": observation.country,
        "neighborhood": observation.neighborhood,
        "lat": None if observation.latitude is None else repr(observation.latitude),
        "lng": None if observation.longitude is None else repr(observation.longitude),
    }
    return {key: value for key, value in sorted(tags.items()) if value}


def to_line_protocol(observation: Observation) -> str:
    """Encode an observation as a single InfluxDB line-protocol point.

    The point is named after the station, tagged with its metadata, carries
    one float field per populated measurement and is timestamped in seconds
    with the observation's own time.

    Raises:
        ValueError: If the observation has no populated measurement

    Example:
        >>> from datetime import datetime, timezone
        >>> from weather_underground_bridge.models.units import Unit
        >>> obs = Observation(
        ...     station_id="IPARIS18204",
        ...     timestamp=datetime(2023, 1, 1, 12, tzinfo=timezone.utc),
        ...     unit=Unit.METRIC,
        ...     temperature=21.5,
        ...     humidity=55.0,
        ... )
        >>> to_line_protocol(obs)
        'weather-underground_IPARIS18204,station=IPARIS18204,unit=metric temperature=21.5,humidity=55.0 1672574400'
    """
    fields = observation.fields()
    if not fields:
        raise ValueError(f"Observation of {observation.station_id} has no measurement")

    name = _escape(f"{MEASUREMENT_PREFIX}{observation.station_id}", measurement=True)
    tags = "".join(f",{_escape(key)}={_escape(value)}" for key, value in _tags(observation).items())
    field_set = ",".join(f"{_escape(key)}={float(value)!r}" for key, value in fields.items())
    timestamp = int(observation.timestamp.timestamp())
    return f"{name}{tags} {field_set} {timestamp}"


class InfluxPublisher:
    """Writes observations to an InfluxDB 1.x compatible ``/write`` endpoint.

    Example:
        >>> async def example(observation):
        ...     publisher = InfluxPublisher()
        ...     async with httpx.AsyncClient() as client:
        ...         await publisher.publish(client, observation)
    """

    def __init__(self, config: Settings | None = None):
        self._settings = config or settings

    @property
    def write_url(self) -> str:
        return f"{self._settings.INFLUX_HOST}/write"

    async def publish(self, client: httpx.AsyncClient, observation: Observation) -> bool:
        """Write one observation as one point.

        Args:
            client: HTTP client configured with a timeout
            observation: Observation to write

        Returns:
            True if a point was written, False if the observation had no measurement

        Raises:
            InfluxWriteError: If the write fails
        """
        if not observation.fields():
            logger.debug("Nothing to publish", station_id=observation.station_id)
            return False

        try:
            response = await client.post(
                self.write_url,
                params={"db": self._settings.INFLUX_DATABASE, "precision": "s"},
                content=to_line_protocol(observation).encode("utf-8"),
                auth=(self._settings.INFLUX_USERNAME, self._settings.INFLUX_PASSWORD),
            )
        except httpx.HTTPError as e:
            raise InfluxWriteError(f"InfluxDB write failed: {e}") from e

        if response.status_code >= 400:
            raise InfluxWriteError(
                f"InfluxDB returned {response.status_code}: {response.text.strip()}",
                status_code=response.status_code,
            )
        return True
