"""Shared HTTP context for source parsers.

Every parser receives one `ScrapeContext`: a shared httpx client, the
per-run robots.txt cache, the crawler identity, and a throttle switch so
tests can run without the per-source courtesy delays.
"""

import asyncio
from typing import Optional

import httpx
from rich.console import Console

from protest_pipeline import config
from protest_pipeline.extractors.robots import RobotsCache

console = Console()

SOURCE_TIMEOUT = 30.0

HEADERS = {
    "User-Agent": config.USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
    "Accept-Language": "de-DE,de;q=0.9,en;q=0.8",
}


class CrawlDisallowedError(Exception):
    """robots.txt forbids fetching the URL."""


class ScrapeContext:
    """Client, robots cache and throttling shared by one run's parsers."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        robots: Optional[RobotsCache] = None,
        user_agent: str = config.USER_AGENT,
        throttle: bool = True,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=SOURCE_TIMEOUT,
            follow_redirects=True,
            headers={**HEADERS, "User-Agent": user_agent},
        )
        self.robots = robots or RobotsCache(self.client)
        self.user_agent = user_agent
        self.throttle = throttle

    async def __aenter__(self) -> "ScrapeContext":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def pause(self, seconds: float) -> None:
        """Courtesy delay between requests to the same site."""
        if self.throttle and seconds > 0:
            await asyncio.sleep(seconds)

    async def allowed(self, url: str) -> bool:
        return await self.robots.is_allowed(url, self.user_agent)

    async def ensure_allowed(self, url: str) -> None:
        if not await self.allowed(url):
            raise CrawlDisallowedError(f"robots.txt disallows {url}")

    async def get(self, url: str, **kwargs) -> httpx.Response:
        """GET after the robots.txt check; raises on HTTP errors."""
        await self.ensure_allowed(url)
        response = await self.client.get(url, timeout=SOURCE_TIMEOUT, **kwargs)
        response.raise_for_status()
        return response

    async def post(self, url: str, **kwargs) -> httpx.Response:
        """POST after the robots.txt check; raises on HTTP errors."""
        await self.ensure_allowed(url)
        response = await self.client.post(url, timeout=SOURCE_TIMEOUT, **kwargs)
        response.raise_for_status()
        return response
