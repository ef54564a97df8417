"""Tests for the observation service."""

import re

import httpx
import pytest
from fastapi import HTTPException
from pytest_httpx import HTTPXMock

from weather_underground_bridge.core.config import Settings
from weather_underground_bridge.core.exceptions import (
    CredentialError,
    TransportError,
    ValidationError,
)
from weather_underground_bridge.models.units import Unit
from weather_underground_bridge.services.weather import ObservationService

HOMEPAGE = re.compile(r"https://www\.wunderground\.com.*")
OBSERVATIONS = re.compile(r"https://api\.weather\.com/v2/pws/observations/current.*")
HOME_HTML = '<script src="/api?apiKey=abc123def456"></script>'


def _observation_requests(httpx_mock: HTTPXMock):
    return [r for r in httpx_mock.get_requests() if r.url.host == "api.weather.com"]


class TestApiKey:
    """Test API key caching."""

    @pytest.mark.asyncio
    async def test_static_key_skips_homepage(self, httpx_mock: HTTPXMock, test_settings, make_payload):
        """Test a configured key is used as is."""
        httpx_mock.add_response(url=OBSERVATIONS, json=make_payload())
        service = ObservationService(test_settings)

        async with httpx.AsyncClient() as client:
            obs = await service.fetch_current(client, "IPARIS18204")

        assert obs.temperature == 21.5
        requests = httpx_mock.get_requests()
        assert len(requests) == 1
        assert requests[0].url.params["apiKey"] == "testkey123"

    @pytest.mark.asyncio
    async def test_key_fetched_once(self, httpx_mock: HTTPXMock, make_payload):
        """Test the scraped key is reused across calls."""
        httpx_mock.add_response(url=HOMEPAGE, text=HOME_HTML)
        httpx_mock.add_response(url=OBSERVATIONS, json=make_payload())
        httpx_mock.add_response(url=OBSERVATIONS, json=make_payload())
        service = ObservationService(Settings(RETRY_COUNT=0))

        async with httpx.AsyncClient() as client:
            await service.fetch_current(client, "IPARIS18204")
            await service.fetch_current(client, "IPARIS18204")

        homepage_requests = [r for r in httpx_mock.get_requests() if r.url.host == "www.wunderground.com"]
        assert len(homepage_requests) == 1
        assert all(r.url.params["apiKey"] == "abc123def456" for r in _observation_requests(httpx_mock))

    @pytest.mark.asyncio
    async def test_rejected_key_is_refetched(self, httpx_mock: HTTPXMock, make_payload):
        """Test a 401 drops the cached key so the next call fetches a new one."""
        httpx_mock.add_response(url=HOMEPAGE, text=HOME_HTML)
        httpx_mock.add_response(url=OBSERVATIONS, status_code=401)
        httpx_mock.add_response(url=HOMEPAGE, text=HOME_HTML.replace("abc123def456", "fresh789"))
        httpx_mock.add_response(url=OBSERVATIONS, json=make_payload())
        service = ObservationService(Settings(RETRY_COUNT=0))

        async with httpx.AsyncClient() as client:
            with pytest.raises(TransportError):
                await service.fetch_current(client, "IPARIS18204")
            obs = await service.fetch_current(client, "IPARIS18204")

        assert obs is not None
        assert _observation_requests(httpx_mock)[-1].url.params["apiKey"] == "fresh789"

    @pytest.mark.asyncio
    async def test_static_key_is_kept(self, test_settings):
        """Test a configured key is never dropped."""
        service = ObservationService(test_settings)
        service.invalidate_api_key()

        async with httpx.AsyncClient() as client:
            assert await service.get_api_key(client) == "testkey123"

    @pytest.mark.asyncio
    async def test_credential_error_propagates(self, httpx_mock: HTTPXMock):
        """Test a missing key surfaces as a credential error."""
        httpx_mock.add_response(url=HOMEPAGE, text="<html></html>")
        service = ObservationService(Settings(RETRY_COUNT=0))

        with pytest.raises(CredentialError):
            async with httpx.AsyncClient() as client:
                await service.fetch_current(client, "IPARIS18204")


class TestRetries:
    """Test retry policy."""

    @pytest.mark.asyncio
    async def test_retry_on_server_error(self, httpx_mock: HTTPXMock, test_settings, make_payload):
        """Test a 5xx is retried."""
        httpx_mock.add_response(url=OBSERVATIONS, status_code=503)
        httpx_mock.add_response(url=OBSERVATIONS, json=make_payload())
        service = ObservationService(test_settings)

        async with httpx.AsyncClient() as client:
            obs = await service.fetch_current(client, "IPARIS18204")

        assert obs.temperature == 21.5
        assert len(_observation_requests(httpx_mock)) == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, httpx_mock: HTTPXMock, test_settings):
        """Test the last transport error is raised after all attempts."""
        for _ in range(test_settings.RETRY_COUNT + 1):
            httpx_mock.add_response(url=OBSERVATIONS, status_code=502)
        service = ObservationService(test_settings)

        with pytest.raises(TransportError) as exc_info:
            async with httpx.AsyncClient() as client:
                await service.fetch_current(client, "IPARIS18204")

        assert exc_info.value.status_code == 502
        assert len(_observation_requests(httpx_mock)) == test_settings.RETRY_COUNT + 1

    @pytest.mark.asyncio
    async def test_no_retry_on_client_error(self, httpx_mock: HTTPXMock, test_settings):
        """Test a 4xx is not retried."""
        httpx_mock.add_response(url=OBSERVATIONS, status_code=400)
        service = ObservationService(test_settings)

        with pytest.raises(TransportError):
            async with httpx.AsyncClient() as client:
                await service.fetch_current(client, "IPARIS18204")

        assert len(_observation_requests(httpx_mock)) == 1

    @pytest.mark.asyncio
    async def test_no_retry_on_invalid_observation(self, httpx_mock: HTTPXMock, test_settings, make_payload):
        """Test validation errors are terminal."""
        httpx_mock.add_response(url=OBSERVATIONS, json=make_payload(humidity=140))
        service = ObservationService(test_settings)

        with pytest.raises(ValidationError):
            async with httpx.AsyncClient() as client:
                await service.fetch_current(client, "IPARIS18204")

        assert len(_observation_requests(httpx_mock)) == 1


class TestUnitSelection:
    """Test unit selection."""

    @pytest.mark.asyncio
    async def test_configured_unit_by_default(self, httpx_mock: HTTPXMock, make_payload):
        """Test WU_UNIT is used when no unit is given."""
        httpx_mock.add_response(
            url=OBSERVATIONS,
            json=make_payload(drop=("metric",), imperial={"temp": 70.7}),
        )
        service = ObservationService(Settings(WU_API_KEY="k", WU_UNIT="e"))

        async with httpx.AsyncClient() as client:
            obs = await service.fetch_current(client, "IPARIS18204")

        assert obs.unit is Unit.IMPERIAL
        assert httpx_mock.get_requests()[0].url.params["units"] == "e"


class TestHttpMapping:
    """Test mapping of pipeline outcomes to HTTP errors."""

    @pytest.mark.asyncio
    async def test_observation(self, httpx_mock: HTTPXMock, test_settings, make_payload):
        """Test a successful lookup."""
        httpx_mock.add_response(url=OBSERVATIONS, json=make_payload())
        service = ObservationService(test_settings)

        obs = await service.get_current_observation("IPARIS18204", Unit.METRIC)

        assert obs.humidity == 55.0

    @pytest.mark.asyncio
    async def test_no_data_is_404(self, httpx_mock: HTTPXMock, test_settings):
        """Test no data maps to 404."""
        httpx_mock.add_response(url=OBSERVATIONS, status_code=204)
        service = ObservationService(test_settings)

        with pytest.raises(HTTPException) as exc_info:
            await service.get_current_observation("IPARIS18204", Unit.METRIC)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_timeout_is_504(self, httpx_mock: HTTPXMock):
        """Test timeouts map to 504."""
        httpx_mock.add_exception(httpx.ReadTimeout("Request timed out"))
        service = ObservationService(Settings(WU_API_KEY="k", RETRY_COUNT=0))

        with pytest.raises(HTTPException) as exc_info:
            await service.get_current_observation("IPARIS18204", Unit.METRIC)

        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_invalid_payload_is_502(self, httpx_mock: HTTPXMock, test_settings, make_payload):
        """Test invalid observations map to 502."""
        httpx_mock.add_response(url=OBSERVATIONS, json=make_payload(humidity=140))
        service = ObservationService(test_settings)

        with pytest.raises(HTTPException) as exc_info:
            await service.get_current_observation("IPARIS18204", Unit.METRIC)

        assert exc_info.value.status_code == 502
