"""API key resolution for the Weather Underground API."""

import re

import httpx
from loguru import logger

from ..core.exceptions import CredentialError

DEFAULT_HOMEPAGE_URL = "https://www.wunderground.com"

# The public website embeds its own key in script URLs
_API_KEY_PATTERN = re.compile(r"apiKey=([a-z0-9]+)")
_API_KEY_HEADER = "x-api-key"


def parse_api_key(text: str) -> str:
    """Extract the first API key embedded in a page.

    Args:
        text: HTML (or any text) of the page

    Returns:
        The API key

    Raises:
        CredentialError: If no key is found

    Example:
        >>> parse_api_key('<script src="/x.js?apiKey=6532d6454b8aa370"></script>')
        '6532d6454b8aa370'
    """
    match = _API_KEY_PATTERN.search(text)
    if match is None:
        raise CredentialError("API key not found in page")
    return match.group(1)


async def fetch_api_key(
    client: httpx.AsyncClient,
    url: str = DEFAULT_HOMEPAGE_URL,
) -> str:
    """Fetch an API key from the Weather Underground homepage.

    Issues a single request; the key is read from the body, or from the
    ``x-api-key`` response header when the body holds none. Nothing is cached.

    Args:
        client: HTTP client configured with a timeout
        url: Page to fetch the key from

    Returns:
        A non-empty API key

    Raises:
        CredentialError: On network failure, timeout, error status or missing key
    """
    logger.debug("Fetching API key", url=url)

    try:
        response = await client.get(url)
    except httpx.TimeoutException as e:
        raise CredentialError("API key request timed out") from e
    except httpx.HTTPError as e:
        raise CredentialError(f"API key request failed: {e}") from e

    if response.status_code >= 400:
        raise CredentialError(f"API key page returned {response.status_code}")

    try:
        return parse_api_key(response.text)
    except CredentialError:
        header_key = response.headers.get(_API_KEY_HEADER, "").strip()
        if header_key:
            return header_key
        raise
