"""HTTP fetcher with async support."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp
import structlog

from odget.errors import FetchError
from odget.models import DEFAULT_USER_AGENT

logger = structlog.get_logger()

CHUNK_SIZE = 64 * 1024


class Fetcher:
    """Async HTTP client wrapper."""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: Optional[int] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.user_agent = user_agent
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.chunk_size = chunk_size
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Create session on context enter."""
        self._session = aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close session on context exit."""
        if self._session:
            await self._session.close()
            self._session = None

    def _require_session(self) -> aiohttp.ClientSession:
        if not self._session:
            raise RuntimeError("Fetcher must be used as async context manager")
        return self._session

    @staticmethod
    def _raise_for_status(response: aiohttp.ClientResponse, url: str) -> None:
        if not 200 <= response.status < 300:
            logger.error("fetch_bad_status", url=url, status=response.status)
            message = f"HTTP {response.status} {response.reason or ''}".strip()
            raise FetchError(url, message, status=response.status)

    async def fetch(self, url: str) -> tuple[str, str]:
        """
        Fetch a listing page.

        Args:
            url: The URL to fetch

        Returns:
            Tuple of (HTML content, final URL after redirects)

        Raises:
            FetchError: On network failure or a non-2xx status
        """
        session = self._require_session()

        try:
            async with session.get(url) as response:
                self._raise_for_status(response, url)
                content = await response.text(errors="replace")
                final_url = str(response.url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("fetch_error", url=url, error=str(e))
            raise FetchError(url, str(e) or type(e).__name__) from e

        logger.info("fetched_url", url=url, final_url=final_url, size=len(content))
        return content, final_url

    @asynccontextmanager
    async def stream(self, url: str) -> AsyncIterator[aiohttp.ClientResponse]:
        """
        Open a GET request, following redirects, without reading the body.

        The response's ``url`` attribute is the final post-redirect URL.
        Read the body with :meth:`iter_body`.

        Raises:
            FetchError: On network failure or a non-2xx status
        """
        session = self._require_session()

        try:
            async with session.get(url) as response:
                self._raise_for_status(response, url)
                yield response
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("fetch_error", url=url, error=str(e))
            raise FetchError(url, str(e) or type(e).__name__) from e

    async def iter_body(self, response: aiohttp.ClientResponse, url: str) -> AsyncIterator[bytes]:
        """Yield the response body in chunks as they arrive."""
        try:
            async for chunk in response.content.iter_chunked(self.chunk_size):
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("download_interrupted", url=url, error=str(e))
            raise FetchError(url, str(e) or type(e).__name__) from e
