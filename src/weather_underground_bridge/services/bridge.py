"""Bridge loop republishing station observations to InfluxDB."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

from loguru import logger
from opentelemetry import metrics

from ..core.config import Settings, settings
from ..core.exceptions import InfluxWriteError, ValidationError, WeatherUndergroundError
from .influx import InfluxPublisher
from .weather import ObservationService
from .wunderground import create_client

_meter = metrics.get_meter("weather_underground_bridge")
_published_counter = _meter.create_counter(
    "bridge_observations_published",
    description="Observations written to InfluxDB",
)
_empty_counter = _meter.create_counter(
    "bridge_observations_empty",
    description="Stations that reported no data",
)
_failed_counter = _meter.create_counter(
    "bridge_observations_failed",
    description="Stations skipped because of an error",
)


@dataclass
class CycleReport:
    """Outcome of one bridge cycle, by station id."""

    published: list[str] = field(default_factory=list)
    empty: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class Bridge:
    """Periodically fetches every configured station and publishes the results.

    Each station is independent: a station without data is skipped silently,
    a station failing with any pipeline or write error is logged and skipped
    until the next cycle.

    Example:
        >>> async def example():
        ...     bridge = Bridge(Settings(WU_STATIONS="IPARIS18204"))
        ...     report = await bridge.run_cycle()
        ...     return report.published
    """

    def __init__(
        self,
        config: Settings | None = None,
        service: ObservationService | None = None,
        publisher: InfluxPublisher | None = None,
    ):
        self._settings = config or settings
        self._service = service or ObservationService(self._settings)
        self._publisher = publisher or InfluxPublisher(self._settings)
        self.last_cycle_at: datetime | None = None

    async def process(self, client, station_id: str) -> str:
        """Fetch, convert and publish one station.

        Returns:
            "published", "empty" or "failed"
        """
        logger.debug("Processing station", station_id=station_id)
        try:
            observation = await self._service.fetch_current(client, station_id)
        except ValidationError as e:
            logger.warning(
                "Skipping station: invalid observation",
                station_id=station_id,
                field=e.field,
                error=str(e),
            )
            _failed_counter.add(1, {"reason": type(e).__name__})
            return "failed"
        except WeatherUndergroundError as e:
            logger.warning(
                "Skipping station",
                station_id=station_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            _failed_counter.add(1, {"reason": type(e).__name__})
            return "failed"
        except Exception as e:
            logger.exception("Skipping station: unexpected error", station_id=station_id)
            _failed_counter.add(1, {"reason": type(e).__name__})
            return "failed"

        if observation is None:
            logger.info("No data for station", station_id=station_id)
            _empty_counter.add(1)
            return "empty"

        try:
            written = await self._publisher.publish(client, observation)
        except InfluxWriteError as e:
            logger.error("Unable to publish", station_id=station_id, error=str(e))
            _failed_counter.add(1, {"reason": type(e).__name__})
            return "failed"
        except Exception as e:
            logger.exception("Unable to publish: unexpected error", station_id=station_id)
            _failed_counter.add(1, {"reason": type(e).__name__})
            return "failed"

        if not written:
            _empty_counter.add(1)
            return "empty"

        logger.info(
            "Published observation",
            station_id=station_id,
            observed_at=observation.timestamp.isoformat(),
        )
        _published_counter.add(1)
        return "published"

    async def run_cycle(self) -> CycleReport:
        """Process all configured stations concurrently."""
        stations = self._settings.stations
        logger.debug("Starting cycle", stations=len(stations))

        async with create_client(self._settings.timeout_seconds) as client:
            outcomes = await asyncio.gather(
                *(self.process(client, station_id) for station_id in stations)
            )

        report = CycleReport()
        for station_id, outcome in zip(stations, outcomes):
            getattr(report, outcome).append(station_id)

        self.last_cycle_at = datetime.now(timezone.utc)
        logger.info(
            "Cycle done",
            published=len(report.published),
            empty=len(report.empty),
            failed=len(report.failed),
        )
        return report

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Run cycles every WU_INTERVAL milliseconds until the stop event is set.

        Raises:
            ValueError: If no station is configured
        """
        if not self._settings.stations:
            raise ValueError("WU_STATIONS shouldn't be empty")

        stop_event = stop_event or asyncio.Event()
        logger.info(
            "Bridge started",
            stations=self._settings.stations,
            interval=self._settings.interval_seconds,
            unit=self._settings.WU_UNIT.block_name,
        )

        while not stop_event.is_set():
            await self.run_cycle()
            logger.debug("Sleeping", seconds=self._settings.interval_seconds)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._settings.interval_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("Bridge stopped")
