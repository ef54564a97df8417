"""API routes for observation endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from fastapi_cache.decorator import cache
from loguru import logger

from ..core.config import settings
from ..models.observation import Observation
from ..models.units import Unit
from ..services.weather import observation_service
from .dependencies import get_unit_param

router = APIRouter()


@router.get(
    "/v1/stations/{station_id}/observation",
    response_model=Observation,
    summary="Get the current observation of a station",
    description="Fetch, validate and return the current observation of a Weather Underground station",
    responses={
        200: {
            "description": "Current observation",
            "content": {
                "application/json": {
                    "example": {
                        "station_id": "IPARIS18204",
                        "timestamp": "2023-01-01T12:00:00Z",
                        "unit": "m",
                        "temperature": 21.5,
                        "humidity": 55.0,
                    }
                }
            },
        },
        400: {
            "description": "Invalid unit parameter",
            "content": {
                "application/json": {
                    "example": {"detail": {"error": "Invalid unit value: 'x' (expected m, e, metric or imperial)"}}
                }
            },
        },
        404: {
            "description": "Station has no current data",
            "content": {
                "application/json": {
                    "example": {"detail": {"error": "Station IPARIS18204 has no current data"}}
                }
            },
        },
        502: {
            "description": "Upstream API error or invalid payload",
            "content": {
                "application/json": {
                    "example": {"detail": {"error": "Bad gateway - upstream API error"}}
                }
            },
        },
        504: {
            "description": "Upstream API timeout",
            "content": {
                "application/json": {
                    "example": {"detail": {"error": "Gateway timeout - upstream API did not respond in time"}}
                }
            },
        },
    },
)
@cache(expire=settings.CACHE_TTL)
async def get_station_observation(
    station_id: Annotated[
        str,
        Path(
            description="Weather Underground station identifier",
            pattern=r"^[A-Za-z0-9_-]+$",
            examples=["IPARIS18204"],
        ),
    ],
    unit: Annotated[Unit, Depends(get_unit_param)],
) -> Observation:
    """Get the current observation of a station.

    Results are cached for CACHE_TTL seconds to reduce API calls.

    Args:
        station_id: Station identifier
        unit: Unit family (from `units` or `unit` query parameter)

    Returns:
        The validated observation

    Raises:
        HTTPException: 400 for invalid parameters, 404 without data,
            502 for upstream errors, 504 for timeouts
    """
    logger.info("Observation request received", station_id=station_id, unit=unit.block_name)

    return await observation_service.get_current_observation(station_id, unit)
