"""Cache-aware HTTP text fetcher used by the HTTP-only scraper."""

from __future__ import annotations

from typing import Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .cache import TTLCache
from .config import Settings

LOGGER = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "CourtFinder/1.0 (Windows NT 10.0; Win64; x64)",
    "Accept-Language": "zh-TW,zh;q=0.9,en;q=0.8",
}


class PageFetcher:
    """Fetch page and script bodies, keeping raw text in a TTL cache.

    Network failures never escape :meth:`fetch`; they come back as ``None``,
    which callers treat the same as a page without extractable data.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Optional[TTLCache[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self._cache: TTLCache[str] = cache if cache is not None else TTLCache(settings.cache_seconds)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
            timeout=settings.fetch_timeout_seconds,
        )

    @property
    def cache(self) -> TTLCache[str]:
        return self._cache

    async def fetch(self, url: str, referer: Optional[str] = None) -> Optional[str]:
        """Return the text body of ``url`` or ``None`` on any network failure."""
        cached = self._cache.get(url)
        if cached is not None:
            LOGGER.debug("fetch.cache_hit", url=url)
            return cached

        headers = {"Referer": referer} if referer else None
        LOGGER.info("fetch.start", url=url, referer=referer)
        try:
            text = await self._get_text(url, headers)
        except httpx.HTTPStatusError as exc:
            LOGGER.warning("fetch.bad_status", url=url, status_code=exc.response.status_code)
            return None
        except httpx.HTTPError as exc:
            LOGGER.warning("fetch.failed", url=url, error=str(exc) or type(exc).__name__)
            return None

        self._cache.set(url, text)
        LOGGER.info("fetch.success", url=url, length=len(text))
        return text

    async def _get_text(self, url: str, headers: Optional[dict[str, str]]) -> str:
        """Issue the GET, retrying transport errors."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=self._settings.fetch_backoff_seconds, max=4),
            stop=stop_after_attempt(self._settings.fetch_attempts),
            reraise=True,
        ):
            with attempt:
                response = await self._client.get(url, headers=headers)
                response.raise_for_status()
                return response.text
        raise RuntimeError("fetch attempts exhausted")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
