"""Upstream page fetcher for Makamesco.

Fetches documentation pages over a shared aiohttp session. Failures are
reported on the result instead of being raised.
"""

import asyncio
import logging
from typing import Optional
from dataclasses import dataclass

import aiohttp

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Result of fetching a single URL."""
    url: str
    status_code: int
    content: Optional[str] = None
    error: Optional[str] = None
    
    @property
    def ok(self) -> bool:
        """True for a 2xx response whose body was read."""
        return self.error is None and 200 <= self.status_code < 300


class PageFetcher:
    """Fetches upstream HTML pages, one GET per call, no retries."""
    
    def __init__(self, session: aiohttp.ClientSession):
        self.session = session
    
    async def fetch(self, url: str) -> FetchResult:
        """Fetch ``url`` and return its text body.
        
        Non-2xx responses come back with ``content`` unset. Transport errors
        come back with ``status_code`` 0 and ``error`` set.
        """
        try:
            logger.debug(f"Fetching {url}")
            async with self.session.get(url, allow_redirects=True) as response:
                if not 200 <= response.status < 300:
                    return FetchResult(url=url, status_code=response.status)
                
                content = await response.text()
                return FetchResult(url=url, status_code=response.status, content=content)
        
        except asyncio.TimeoutError as e:
            logger.warning(f"Timeout fetching {url}")
            return FetchResult(url=url, status_code=0, error=f"Timeout: {e}")
        
        except aiohttp.ClientError as e:
            logger.warning(f"Client error fetching {url}: {e}")
            return FetchResult(url=url, status_code=0, error=str(e) or type(e).__name__)
