"""Pytest configuration and fixtures."""

import os

# The bridge loop must not start inside the API test client
os.environ.setdefault("BRIDGE_ENABLED", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from fastapi_cache import FastAPICache  # noqa: E402
from fastapi_cache.backends.inmemory import InMemoryBackend  # noqa: E402

from weather_underground_bridge.app import app  # noqa: E402
from weather_underground_bridge.core.config import Settings  # noqa: E402

STATION_ID = "IPARIS18204"


@pytest.fixture(scope="function", autouse=True)
def setup_cache():
    """Initialize FastAPI cache for each test.

    InMemoryBackend keeps its entries in a class-level dict shared by every
    instance, so it is emptied around each test.
    """
    InMemoryBackend._store.clear()
    FastAPICache.init(InMemoryBackend(), prefix="test-cache:")
    yield
    # Reset after test
    FastAPICache.reset()
    InMemoryBackend._store.clear()


@pytest.fixture(scope="function")
def client():
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def test_settings():
    """Settings with a static API key and fast retries."""
    return Settings(
        WU_STATIONS=STATION_ID,
        WU_API_KEY="testkey123",
        WU_TIMEOUT=2000,
        RETRY_COUNT=2,
        RETRY_DELAY=10,
        INFLUX_HOST="http://influx.test:8086",
        INFLUX_DATABASE="weather",
        INFLUX_USERNAME="bridge",
        INFLUX_PASSWORD="secret",
    )


@pytest.fixture
def make_payload():
    """Build a current-observation document as returned by the PWS API.

    ``drop`` removes default fields, then keyword arguments set fields.
    """

    def _make(drop: tuple[str, ...] = (), **fields):
        observation = {
            "stationID": STATION_ID,
            "obsTimeUtc": "2023-01-01T12:00:00Z",
            "obsTimeLocal": "2023-01-01 13:00:00",
            "neighborhood": "Paris 11e",
            "softwareType": "EasyWeatherV1.6.4",
            "country": "FR",
            "solarRadiation": None,
            "lon": 2.381,
            "realtimeFrequency": None,
            "epoch": 1672574400,
            "lat": 48.857,
            "uv": None,
            "winddir": None,
            "humidity": 55,
            "qcStatus": 1,
            "metric": {
                "temp": 21.5,
                "heatIndex": None,
                "dewpt": None,
                "windChill": None,
                "windSpeed": None,
                "windGust": None,
                "pressure": None,
                "precipRate": None,
                "precipTotal": None,
                "elev": None,
            },
        }
        for name in drop:
            observation.pop(name, None)
        observation.update(fields)
        return {"observations": [observation]}

    return _make
