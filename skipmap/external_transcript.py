"""Fetching transcript pages and structured transcript files.

Supports:
- scraped HTML transcript pages (``EpisodeRequest.transcript_url``)
- structured transcript files named in feed metadata (SRT, VTT, JSON,
  HTML, plain text), tagged with a MIME-style type
"""

import logging

import httpx

from .config import FetchConfig
from .models import TranscriptFile
from .transcript_formats import detect_format, format_rank

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """HTTP failure or timeout while fetching a transcript source."""
    pass


def create_http_client(config: FetchConfig) -> httpx.Client:
    """Create the shared HTTP client used for every transcript fetch."""
    return httpx.Client(
        timeout=config.timeout,
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
    )


def fetch_text(client: httpx.Client, url: str, accept: str | None = None) -> str:
    """Fetch ``url`` and return the decoded body.

    Args:
        client: HTTP client from ``create_http_client``.
        url: URL to fetch.
        accept: Optional Accept header value.

    Returns:
        The response text.

    Raises:
        FetchError: On timeouts, connection errors and non-2xx responses.
    """
    headers = {"Accept": accept} if accept else None
    try:
        response = client.get(url, headers=headers)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        raise FetchError(f"Timed out fetching {url}") from e
    except httpx.HTTPStatusError as e:
        raise FetchError(f"Fetch failed for {url}: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise FetchError(f"Fetch failed for {url}: {e}") from e

    logger.debug(f"Fetched {len(response.text)} chars from {url}")
    return response.text


def fetch_transcript_page(client: httpx.Client, url: str) -> str:
    """Fetch a scraped transcript page."""
    return fetch_text(client, url, accept="text/html")


def fetch_transcript_file(client: httpx.Client, transcript_file: TranscriptFile) -> str:
    """Fetch a structured transcript file."""
    return fetch_text(client, transcript_file.url, accept=transcript_file.type)


def order_transcript_files(files: list[TranscriptFile]) -> list[TranscriptFile]:
    """Supported files in preference order (SRT, VTT, JSON, HTML, text).

    Files with unrecognized types are dropped. Files of the same format keep
    their feed order.
    """
    supported = []
    for transcript_file in files:
        if detect_format(transcript_file.type) is None:
            logger.info(f"Skipping transcript with unsupported type {transcript_file.type}: {transcript_file.url}")
            continue
        supported.append(transcript_file)
    return sorted(supported, key=lambda f: format_rank(f.type))
