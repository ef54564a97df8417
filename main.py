"""Application entry point."""

import uvicorn

from weather_underground_bridge.core.config import settings


def main():
    """Run the uvicorn server."""
    uvicorn.run(
        "weather_underground_bridge.app:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=False,
        workers=1,  # The bridge loop runs in-process: a single worker per station set
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
