"""Command line entry point: fetch one station and print its observation."""

import argparse
import asyncio
import sys

from loguru import logger

from .core.exceptions import WeatherUndergroundError
from .core.logging import setup_logging
from .models.observation import Observation
from .models.units import Unit
from .services.converter import convert
from .services.credentials import DEFAULT_HOMEPAGE_URL, fetch_api_key
from .services.wunderground import DEFAULT_OBSERVATION_URL, create_client, fetch_observation


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="weather-underground",
        description="Fetch the current observation of a Weather Underground station",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  weather-underground IPARIS18204
  weather-underground --unit e --timeout 5000 KCASANFR1
        """,
    )

    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=10000,
        help="Timeout in ms (default: 10000)",
    )

    parser.add_argument(
        "-u",
        "--unit",
        type=Unit.parse,
        default=Unit.METRIC,
        help="Unit (m for metric, e for imperial; default: m)",
    )

    parser.add_argument(
        "--api-key",
        default=None,
        help="API key to use instead of fetching one from the homepage",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "station_id",
        help="ID of the station you want the observation from",
    )

    return parser.parse_args(argv)


async def fetch(
    station_id: str,
    unit: Unit,
    timeout: float,
    api_key: str | None = None,
    homepage_url: str = DEFAULT_HOMEPAGE_URL,
    observation_url: str = DEFAULT_OBSERVATION_URL,
) -> Observation | None:
    """Run the pipeline once: credential, observation request, conversion."""
    async with create_client(timeout) as client:
        if api_key is None:
            api_key = await fetch_api_key(client, homepage_url)
        raw = await fetch_observation(client, api_key, station_id, unit, url=observation_url)
    if raw is None:
        return None
    return convert(raw)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "WARNING", colorize=sys.stderr.isatty())

    try:
        observation = asyncio.run(
            fetch(args.station_id, args.unit, args.timeout / 1000.0, api_key=args.api_key)
        )
    except WeatherUndergroundError as e:
        logger.error("Couldn't fetch observation", error_type=type(e).__name__, error=str(e))
        return 1

    if observation is None:
        print("no result...", file=sys.stderr)
        return 0

    print(observation.model_dump_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
