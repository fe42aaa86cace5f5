"""HTTP feed transport adapter.

Implements the core FeedFetcherPort with a shared httpx AsyncClient.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

from core.config import FetcherConfig
from core.errors import BadStatus, TransportError, UnsupportedScheme

LOGGER = logging.getLogger(__name__)

SUPPORTED_SCHEMES = frozenset({"http", "https"})


class HttpFeedFetcher:
    """Single-GET fetcher. No retries; the client timeout is the only bound."""

    def __init__(
        self,
        config: FetcherConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds),
            follow_redirects=True,
            headers={"User-Agent": config.user_agent},
            transport=transport,
        )

    async def fetch(self, url: str) -> bytes:
        """Return the raw body of a 200 response."""

        # No request is made for other schemes.
        if urlsplit(url).scheme.lower() not in SUPPORTED_SCHEMES:
            raise UnsupportedScheme(url)

        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(url, exc) from exc

        if response.status_code != 200:
            raise BadStatus(url, response.status_code)

        LOGGER.debug("Fetched %s bytes from %s", len(response.content), url)
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
