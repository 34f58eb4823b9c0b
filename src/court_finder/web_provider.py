"""HTTP-only scraper for the Taipei venue booking pages."""

from __future__ import annotations

from datetime import date
from typing import Optional

import httpx
import structlog

from .cache import TTLCache
from .config import Settings
from .extractor import find_datapickup_url
from .fetcher import PageFetcher
from .models import Availability, Venue, VenueInfo
from .schedule import extract_schedule, extract_venue_info

LOGGER = structlog.get_logger(__name__)


def availability_key(court_id: str, day: date) -> str:
    return f"avail:{court_id}:{day.isoformat()}"


class TaipeiWebProvider:
    """Read availability from the venue page and its ``datapickupv5.php`` script.

    The venue id doubles as the court id for this provider.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        page_cache: Optional[TTLCache[str]] = None,
    ):
        self._settings = settings
        self._fetcher = PageFetcher(settings, cache=page_cache, client=client)
        self._availability: TTLCache[Availability] = TTLCache(settings.cache_seconds)
        self._venue_info: TTLCache[VenueInfo] = TTLCache(settings.cache_seconds)

    async def list_courts(self) -> list[Venue]:
        return []

    async def get_availability(self, court_id: str, day: date) -> Availability:
        key = availability_key(court_id, day)
        cached = self._availability.get(key)
        if cached is not None:
            return cached

        html, script = await self._load_texts(court_id)
        if html is None:
            return Availability(court_id=court_id, date=day)

        result = extract_schedule([script, html], day)
        availability = Availability(court_id=court_id, date=day, slots=result.slots)
        LOGGER.info(
            "web.availability",
            court_id=court_id,
            date=day.isoformat(),
            variant=result.variant,
            slots=len(availability.slots),
        )
        self._availability.set(key, availability)
        return availability

    async def get_venue_info(self, court_id: str) -> Optional[VenueInfo]:
        cached = self._venue_info.get(court_id)
        if cached is not None:
            return cached

        html, script = await self._load_texts(court_id)
        if html is None:
            return None
        info = extract_venue_info([script, html])
        if info is not None:
            self._venue_info.set(court_id, info)
        return info

    async def _load_texts(self, court_id: str) -> tuple[Optional[str], Optional[str]]:
        """Fetch the venue page and, when referenced, its data script."""
        venue_url = self._settings.venue_url(court_id)
        html = await self._fetcher.fetch(venue_url)
        if not html:
            LOGGER.warning("web.venue_page_missing", court_id=court_id, url=venue_url)
            return None, None

        script_url = find_datapickup_url(html, self._settings.origin)
        if script_url is None:
            LOGGER.info("web.datapickup_missing", court_id=court_id)
            return html, None
        script = await self._fetcher.fetch(script_url, referer=venue_url)
        return html, script

    async def aclose(self) -> None:
        await self._fetcher.aclose()
