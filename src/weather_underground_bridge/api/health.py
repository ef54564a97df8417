"""Health check endpoints for Kubernetes probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model.

    Example:
        >>> HealthResponse(status="ok").status
        'ok'
    """

    status: str


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Check if the application process is running",
)
async def health_check() -> HealthResponse:
    """Liveness probe. Always 200 while the process runs."""
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness probe",
    description="Check if the bridge has completed its first cycle",
    responses={
        503: {
            "description": "Bridge has not completed a cycle yet, or has crashed",
            "content": {"application/json": {"example": {"status": "starting"}}},
        },
    },
)
async def readiness_check(request: Request):
    """Readiness probe.

    Ready once the bridge (when running) has completed one cycle, and not
    ready again if the loop has crashed. Does NOT probe Weather Underground
    or InfluxDB, to avoid cascading failures.
    """
    task = getattr(request.app.state, "bridge_task", None)
    if task is not None and task.done() and not task.cancelled() and task.exception() is not None:
        return JSONResponse(status_code=503, content={"status": "failed"})

    bridge = getattr(request.app.state, "bridge", None)
    if bridge is not None and bridge.last_cycle_at is None:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return HealthResponse(status="ok")
