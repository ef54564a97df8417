"""FastAPI dependencies for request handling."""

from typing import Annotated

from fastapi import HTTPException, Query

from ..core.config import settings
from ..models.units import Unit


def get_unit_param(
    units: Annotated[
        str | None,
        Query(
            description="Unit family: m/metric or e/imperial (defaults to WU_UNIT)",
            examples=["m"],
        ),
    ] = None,
    unit: Annotated[
        str | None,
        Query(description="Alternative to 'units'"),
    ] = None,
) -> Unit:
    """Get the unit family of a request, with conflict detection.

    Supports both `units` (the upstream API's name) and `unit`.
    Falls back to the configured WU_UNIT when neither is given.

    Args:
        units: Unit selector or family name
        unit: Alternative unit parameter

    Returns:
        Selected unit family

    Raises:
        HTTPException: 400 if a value is invalid or both values conflict

    Example:
        >>> get_unit_param(units="imperial")
        <Unit.IMPERIAL: 'e'>
        >>> get_unit_param(units="m", unit="metric")
        <Unit.METRIC: 'm'>
    """
    parsed = []
    for value in (units, unit):
        if value is None:
            continue
        try:
            parsed.append(Unit.parse(value))
        except ValueError as e:
            raise HTTPException(status_code=400, detail={"error": str(e)}) from e

    if len(set(parsed)) > 1:
        raise HTTPException(
            status_code=400,
            detail={"error": "Conflicting unit values provided (units and unit)"},
        )

    return parsed[0] if parsed else settings.WU_UNIT
