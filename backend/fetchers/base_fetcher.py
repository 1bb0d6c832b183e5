"""Shared aiohttp session handling and retrying JSON GETs for upstream fetchers"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import aiohttp

from config import MAX_RETRIES, RETRY_DELAY, REQUEST_TIMEOUT
from errors import UpstreamFetchFailed

logger = logging.getLogger(__name__)


class BaseFetcher(ABC):
    """
    Base for fetchers that page through an upstream JSON API.

    Use as an async context manager; the session lives for the block.
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.session: Optional[aiohttp.ClientSession] = None
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()

    async def fetch_with_retry(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        Fetch JSON with exponential backoff.

        Server errors, timeouts and connection failures are retried;
        client errors (4xx) and non-JSON bodies fail immediately. Raises
        UpstreamFetchFailed once attempts run out.
        """
        last_status = None
        last_detail = ""

        for attempt in range(self.max_retries):
            try:
                async with self.session.get(url, params=params, headers=headers) as response:
                    if response.status < 400:
                        try:
                            return await response.json(content_type=None)
                        except ValueError as e:
                            raise UpstreamFetchFailed(url, response.status, f"Non-JSON: {e}") from e

                    last_status = response.status
                    last_detail = await response.text()
                    if response.status < 500:
                        raise UpstreamFetchFailed(url, response.status, last_detail)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_status = None
                last_detail = str(e) or type(e).__name__

            if attempt + 1 < self.max_retries:
                wait_time = self.retry_delay * (2 ** attempt)
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{self.max_retries}, "
                    f"status {last_status}): {last_detail[:120]}. Retrying in {wait_time}s..."
                )
                await asyncio.sleep(wait_time)

        raise UpstreamFetchFailed(url, last_status, last_detail)

    @abstractmethod
    async def fetch(self) -> List[Dict[str, Any]]:
        """Every upstream row the build needs"""

    @abstractmethod
    def get_source_name(self) -> str:
        """Human-readable dataset name for logs"""
