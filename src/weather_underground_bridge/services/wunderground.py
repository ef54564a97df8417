"""Weather Underground personal weather station API client."""

import json

import httpx
from loguru import logger

from ..core.exceptions import DecodeError, TransportError
from ..models.observation import RawResponse
from ..models.units import Unit

DEFAULT_OBSERVATION_URL = "https://api.weather.com/v2/pws/observations/current"


def create_client(timeout: float) -> httpx.AsyncClient:
    """Create the HTTP client shared by the credential and observation requests.

    Args:
        timeout: Connection and read timeout in seconds

    Returns:
        Configured async client; the caller owns and closes it

    Example:
        >>> client = create_client(2.0)
        >>> client.timeout.read
        2.0
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers={"Accept-Encoding": "gzip"},
    )


def build_params(api_key: str, station_id: str, unit: Unit) -> dict[str, str]:
    """Build the query parameters of a current-observation request.

    Example:
        >>> build_params("k3y", "IPARIS18204", Unit.METRIC)["units"]
        'm'
    """
    return {
        "apiKey": api_key,
        "stationId": station_id,
        "units": unit.query_value,
        "format": "json",
        "numericPrecision": "decimal",
    }


def _remote_errors(raw: RawResponse) -> str | None:
    """Summarize errors reported inside a success-status envelope."""
    if raw.body.errors:
        return "; ".join(str(error) for error in raw.body.errors)
    if raw.body.success is False:
        return "service reported success=false"
    return None


async def fetch_observation(
    client: httpx.AsyncClient,
    api_key: str,
    station_id: str,
    unit: Unit,
    *,
    url: str = DEFAULT_OBSERVATION_URL,
) -> RawResponse | None:
    """Request the current observation of a station.

    Issues exactly one request. Safe to retry.

    Args:
        client: HTTP client configured with a timeout
        api_key: API key
        station_id: Station identifier
        unit: Unit family to request
        url: Current-observation endpoint

    Returns:
        The structurally validated response, or None when the station has no data

    Raises:
        ValueError: If api_key or station_id is empty
        TransportError: On connection failure, timeout or non-success status
        DecodeError: If the body is not a JSON observation envelope
    """
    if not api_key:
        raise ValueError("api_key must not be empty")
    if not station_id:
        raise ValueError("station_id must not be empty")

    logger.debug("Fetching observation", station_id=station_id, unit=unit.block_name)

    try:
        response = await client.get(url, params=build_params(api_key, station_id, unit))
    except httpx.TimeoutException as e:
        raise TransportError(
            "Observation request timed out",
            station_id=station_id,
            timed_out=True,
        ) from e
    except httpx.HTTPError as e:
        raise TransportError(
            f"Observation request failed: {e}",
            station_id=station_id,
        ) from e

    if response.status_code >= 400:
        raise TransportError(
            f"Observation endpoint returned {response.status_code}",
            station_id=station_id,
            status_code=response.status_code,
        )

    if response.status_code == 204 or not response.content.strip():
        logger.debug("No data for station", station_id=station_id)
        return None

    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(
            f"Response body is not valid JSON: {e}",
            station_id=station_id,
        ) from e

    raw = RawResponse.from_payload(payload, station_id=station_id, unit=unit)

    remote_errors = _remote_errors(raw)
    if remote_errors:
        raise TransportError(
            f"Observation endpoint reported errors: {remote_errors}",
            station_id=station_id,
            status_code=response.status_code,
        )

    if not raw.has_data():
        logger.debug("No data for station", station_id=station_id)
        return None

    return raw
