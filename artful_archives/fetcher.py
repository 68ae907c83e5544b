"""
Image Fetcher - Download story images for the offline cache.

Handles:
- HTTP fetching with proper headers
- Status and scheme checks
- Retry with exponential backoff on transient network errors
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .exceptions import DownloadError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = {"http", "https"}


@dataclass
class FetchedImage:
    """Bytes and metadata of a downloaded image."""
    url: str
    data: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


class ImageSource(Protocol):
    """Anything that can download an image by URL."""

    async def fetch(self, url: str) -> FetchedImage: ...


class _TransientFetchError(Exception):
    pass


class ImageFetcher:
    """Downloads images over HTTP."""

    def __init__(
        self,
        timeout: int = 30,
        max_attempts: int = 3,
        user_agent: str | None = None,
    ):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.headers = {
            "User-Agent": user_agent or "ArtfulArchives-Cache/1.0",
            "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
        }

    async def fetch(self, url: str) -> FetchedImage:
        """
        Download an image.

        Args:
            url: Absolute http(s) URL of the image

        Returns:
            FetchedImage with the response body and content type

        Raises:
            DownloadError: On a bad URL, a non-2xx response, or repeated network failure
        """
        if urlparse(url).scheme not in ALLOWED_SCHEMES:
            raise DownloadError(url, "unsupported URL scheme")

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(_TransientFetchError),
                reraise=True,
            ):
                with attempt:
                    return await self._fetch_once(url)
        except _TransientFetchError as e:
            raise DownloadError(url, str(e)) from e

    async def _fetch_once(self, url: str) -> FetchedImage:
        try:
            async with aiohttp.ClientSession(headers=self.headers) as session:
                async with session.get(
                    url,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                    allow_redirects=True
                ) as resp:
                    if resp.status >= 500:
                        raise _TransientFetchError(f"HTTP {resp.status}")
                    if not 200 <= resp.status < 300:
                        raise DownloadError(url, f"HTTP {resp.status}")
                    data = await resp.read()
                    return FetchedImage(
                        url=str(resp.url),
                        data=data,
                        content_type=resp.content_type or None,
                    )
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            logger.debug(f"Transient error fetching {url}: {e}")
            raise _TransientFetchError(str(e) or type(e).__name__) from e
        except aiohttp.ClientError as e:
            raise DownloadError(url, str(e)) from e
