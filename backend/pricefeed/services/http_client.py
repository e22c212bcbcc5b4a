"""
Shared HTTP client for upstream market-data providers.

One aiohttp session per process, created lazily and closed on shutdown.
Every failure is mapped onto the two upstream error kinds so strategies
only have to deal with UpstreamUnavailable and UpstreamMalformed.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from pricefeed.core.config import settings
from pricefeed.services.base import UpstreamMalformed, UpstreamUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class HttpClient:
    """Thin JSON-over-HTTP wrapper around a shared aiohttp session."""

    SERVICE_NAME = "HttpClient"

    def __init__(self, default_timeout: Optional[float] = None):
        self._session: Optional[aiohttp.ClientSession] = None
        self._default_timeout = default_timeout or settings.quote_timeout

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._default_timeout),
                headers={
                    "User-Agent": USER_AGENT,
                    "Accept": "application/json",
                },
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def get_json(
        self,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """
        GET a URL and decode its JSON body.

        Raises:
            UpstreamUnavailable: connection error, timeout or non-2xx status
            UpstreamMalformed: body is not valid JSON or not a JSON object
        """
        session = await self._ensure_session()
        client_timeout = aiohttp.ClientTimeout(total=timeout or self._default_timeout)

        try:
            async with session.get(
                url,
                params=_clean_params(params),
                headers=headers,
                timeout=client_timeout,
            ) as response:
                if response.status == 429:
                    raise UpstreamUnavailable(
                        self.SERVICE_NAME,
                        f"Rate limited by {response.url.host}",
                        {"status": 429},
                    )
                if response.status < 200 or response.status >= 300:
                    raise UpstreamUnavailable(
                        self.SERVICE_NAME,
                        f"{response.url.host} returned status {response.status}",
                        {"status": response.status},
                    )

                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise UpstreamMalformed(
                        self.SERVICE_NAME,
                        f"Invalid JSON from {response.url.host}: {e}",
                    ) from e

                # Every provider answers with an object; null or a bare list is malformed
                if not isinstance(data, dict):
                    raise UpstreamMalformed(
                        self.SERVICE_NAME,
                        f"Expected a JSON object from {response.url.host}, got {type(data).__name__}",
                    )
                return data

        except asyncio.TimeoutError as e:
            raise UpstreamUnavailable(self.SERVICE_NAME, f"Timeout fetching {url}") from e
        except aiohttp.ClientError as e:
            raise UpstreamUnavailable(self.SERVICE_NAME, f"Error fetching {url}: {e}") from e


def _clean_params(params: Optional[dict]) -> Optional[dict]:
    """Drop None values; aiohttp rejects them as query parameters."""
    if not params:
        return None
    return {k: str(v) for k, v in params.items() if v is not None}


# Singleton instance
_http_client: Optional[HttpClient] = None


def get_http_client() -> HttpClient:
    """Get or create the shared HTTP client."""
    global _http_client
    if _http_client is None:
        _http_client = HttpClient()
    return _http_client
