"""Main FastAPI application hosting the bridge loop."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend
from loguru import logger
from opentelemetry import metrics
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from .api import health, routes
from .core.config import settings
from .core.logging import setup_logging
from .services.bridge import Bridge

SERVICE_NAME = "weather-underground-bridge"
SERVICE_VERSION = "0.1.0"


def setup_metrics():
    """Configure OpenTelemetry metrics with Prometheus exporter.

    Bridge counters and HTTP metrics are exposed at /metrics.
    """
    reader = PrometheusMetricReader()

    resource = Resource.create(
        {
            "service.name": SERVICE_NAME,
            "service.version": SERVICE_VERSION,
        }
    )

    provider = MeterProvider(
        resource=resource,
        metric_readers=[reader],
    )

    metrics.set_meter_provider(provider)

    logger.info("OpenTelemetry metrics configured")


def log_bridge_exit(task: asyncio.Task) -> None:
    """Log a bridge loop that ended with an error."""
    if task.cancelled():
        logger.warning("Bridge loop cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.opt(exception=error).error("Bridge loop crashed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Startup initializes the cache and starts the bridge loop as a background
    task when it is enabled and stations are configured. Shutdown stops the
    loop after its current cycle.

    Args:
        app: FastAPI application instance
    """
    logger.info("Starting Weather Underground bridge")

    # Log active configuration (without sensitive values)
    logger.info(
        "Configuration loaded",
        stations=settings.stations,
        unit=settings.WU_UNIT.block_name,
        timeout_ms=settings.WU_TIMEOUT,
        interval_ms=settings.WU_INTERVAL,
        static_api_key=settings.WU_API_KEY is not None,
        influx_host=settings.INFLUX_HOST,
        influx_database=settings.INFLUX_DATABASE,
        retry_count=settings.RETRY_COUNT,
        bridge_enabled=settings.BRIDGE_ENABLED,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
        # Do NOT log API key or InfluxDB password
    )

    FastAPICache.init(
        InMemoryBackend(),
        prefix="observation-cache:",
    )

    stop_event = asyncio.Event()
    task = None
    app.state.bridge = None
    app.state.bridge_task = None
    if settings.BRIDGE_ENABLED and settings.stations:
        app.state.bridge = Bridge(settings)
        task = asyncio.create_task(app.state.bridge.run(stop_event))
        task.add_done_callback(log_bridge_exit)
        app.state.bridge_task = task
    else:
        logger.info("Bridge loop disabled")

    yield

    logger.info("Shutting down Weather Underground bridge")
    if task is not None and not task.done():
        stop_event.set()
        await task


setup_logging()

setup_metrics()

app = FastAPI(
    title="Weather Underground Bridge",
    description="Republishes Weather Underground station observations to InfluxDB",
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.LOG_LEVEL == "DEBUG" else None,  # Swagger UI only in debug mode
    redoc_url=None,
)

app.include_router(health.router, tags=["Health"])
app.include_router(routes.router, tags=["Observations"])


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint():
    """Prometheus metrics endpoint, open to everyone."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors and return a generic 500 response."""
    logger.exception(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )


FastAPIInstrumentor.instrument_app(app)

logger.info("FastAPI application created")
