"""Observation service: API key caching, retries and error mapping."""

import asyncio

import httpx
from fastapi import HTTPException
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from ..core.config import Settings, settings
from ..core.exceptions import (
    CredentialError,
    DecodeError,
    TransportError,
    ValidationError,
    WeatherUndergroundError,
)
from ..models.observation import Observation
from ..models.units import Unit
from .converter import convert
from .credentials import fetch_api_key
from .wunderground import create_client, fetch_observation


def _should_retry(exception: BaseException) -> bool:
    """Determine if an exception should trigger a retry.

    Retry on timeouts, connection failures and 5xx errors. Do NOT retry on
    4xx errors, malformed bodies or invalid observations.

    Example:
        >>> _should_retry(TransportError("timed out", timed_out=True))
        True
        >>> _should_retry(TransportError("denied", status_code=401))
        False
        >>> _should_retry(TransportError("upstream", status_code=503))
        True
    """
    if not isinstance(exception, TransportError):
        return False
    return exception.status_code is None or exception.status_code >= 500


class ObservationService:
    """Runs the fetch-and-convert pipeline on behalf of the bridge and the API.

    Owns the only piece of shared state: the API key, fetched lazily, shared
    by concurrent callers and dropped when the service rejects it.

    Example:
        >>> async def example():
        ...     service = ObservationService(Settings(RETRY_COUNT=0))
        ...     async with create_client(5.0) as client:
        ...         return await service.fetch_current(client, "IPARIS18204")
    """

    def __init__(self, config: Settings | None = None):
        """Initialize observation service.

        Args:
            config: Settings to use; the global settings when omitted
        """
        self._settings = config or settings
        self._api_key: str | None = self._settings.WU_API_KEY
        self._key_lock = asyncio.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings

    async def get_api_key(self, client: httpx.AsyncClient) -> str:
        """Return the cached API key, fetching it on first use.

        Raises:
            CredentialError: If the key cannot be fetched
        """
        async with self._key_lock:
            if self._api_key is None:
                self._api_key = await fetch_api_key(client, self._settings.WU_HOMEPAGE_URL)
                logger.info("API key fetched")
            return self._api_key

    def invalidate_api_key(self) -> None:
        """Forget a fetched API key so the next call fetches a fresh one."""
        if self._settings.WU_API_KEY is None:
            self._api_key = None

    def _retrying(self) -> AsyncRetrying:
        delay = self._settings.RETRY_DELAY / 1000.0  # Convert ms to seconds
        return AsyncRetrying(
            retry=retry_if_exception(_should_retry),
            stop=stop_after_attempt(self._settings.RETRY_COUNT + 1),
            wait=wait_exponential(
                multiplier=delay,
                exp_base=self._settings.RETRY_BACKOFF_MULTIPLIER,
                min=delay,
            )
            + wait_random(0, delay),  # Jitter up to one initial delay
            reraise=True,
        )

    async def fetch_current(
        self,
        client: httpx.AsyncClient,
        station_id: str,
        unit: Unit | None = None,
    ) -> Observation | None:
        """Fetch and convert the current observation of a station.

        Args:
            client: HTTP client configured with a timeout
            station_id: Station identifier
            unit: Unit family; the configured one when omitted

        Returns:
            The validated observation, or None when the station has no data

        Raises:
            CredentialError: If no API key can be obtained
            TransportError: If the request still fails after all retries
            DecodeError: If the body is malformed
            ValidationError: If the observation is invalid
        """
        unit = unit or self._settings.WU_UNIT
        api_key = await self.get_api_key(client)

        try:
            async for attempt in self._retrying():
                with attempt:
                    raw = await fetch_observation(
                        client,
                        api_key,
                        station_id,
                        unit,
                        url=self._settings.WU_OBSERVATION_URL,
                    )
        except TransportError as e:
            if e.unauthorized:
                logger.warning("API key rejected, dropping it", station_id=station_id)
                self.invalidate_api_key()
            raise

        if raw is None:
            return None
        return convert(raw)

    async def get_current_observation(self, station_id: str, unit: Unit) -> Observation:
        """Fetch an observation for the HTTP API.

        Raises:
            HTTPException: 404 when the station has no data, 504 on timeout,
                502 for any other upstream or payload error
        """
        try:
            async with create_client(self._settings.timeout_seconds) as client:
                observation = await self.fetch_current(client, station_id, unit)

        except TransportError as e:
            if e.timed_out:
                logger.warning("Upstream API timeout", station_id=station_id)
                raise HTTPException(
                    status_code=504,
                    detail={"error": "Gateway timeout - upstream API did not respond in time"},
                ) from e
            logger.warning("Upstream API error", station_id=station_id, status_code=e.status_code)
            raise HTTPException(
                status_code=502,
                detail={"error": "Bad gateway - upstream API error"},
            ) from e

        except CredentialError as e:
            logger.error("Unable to obtain API key", error=str(e))
            raise HTTPException(
                status_code=502,
                detail={"error": "Bad gateway - unable to obtain API key"},
            ) from e

        except (DecodeError, ValidationError) as e:
            logger.warning("Invalid upstream payload", station_id=station_id, error=str(e))
            raise HTTPException(
                status_code=502,
                detail={"error": "Bad gateway - invalid upstream payload"},
            ) from e

        except WeatherUndergroundError as e:
            logger.error("Unexpected Weather Underground error", error=str(e))
            raise HTTPException(
                status_code=502,
                detail={"error": "Bad gateway - upstream API error"},
            ) from e

        if observation is None:
            raise HTTPException(
                status_code=404,
                detail={"error": f"Station {station_id} has no current data"},
            )
        return observation


# Global service instance
observation_service = ObservationService()
