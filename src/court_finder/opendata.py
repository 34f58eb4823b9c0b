"""Venue list from the Taipei sports open-data feed."""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Mapping, Optional

import httpx
import structlog

from .config import Settings
from .models import Availability, Venue, VenueInfo

LOGGER = structlog.get_logger(__name__)

TENNIS_KEYWORDS = ("網球", "tennis")
TRUE_WORDS = {"yes", "true", "1", "是", "有"}
FALSE_WORDS = {"no", "false", "0", "否", "無"}


def is_tennis(record: Mapping[str, Any]) -> bool:
    """True when any string field mentions tennis."""
    return any(
        isinstance(value, str) and any(keyword in value.lower() for keyword in TENNIS_KEYWORDS)
        for value in record.values()
    )


def _text(record: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = record.get(name)
        if isinstance(value, str):
            return value
    lowered = {name.lower() for name in names}
    for key, value in record.items():
        if key.lower() in lowered and isinstance(value, str):
            return value
    return ""


def _number(record: Mapping[str, Any], *names: str) -> Optional[float]:
    for name in names:
        value = record.get(name)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                continue
    return None


def _flag(record: Mapping[str, Any], *names: str) -> bool:
    for name in names:
        value = record.get(name)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            word = value.strip().lower()
            if word in TRUE_WORDS:
                return True
            if word in FALSE_WORDS:
                return False
    return False


def map_venue(record: Mapping[str, Any]) -> Venue:
    name = _text(record, "PlaceName", "Name", "name", "場地名稱")
    return Venue(
        id=_text(record, "PlaceId", "Id", "id", "場地代碼", "場地編號") or name,
        name=name,
        district=_text(record, "District", "area", "AreaName", "行政區"),
        address=_text(record, "Address", "addr", "地址"),
        surface=_text(record, "Surface", "surface", "場地材質", "地面材質"),
        has_lights=_flag(record, "HasLights", "lights", "夜間照明", "夜間照明設備"),
        latitude=_number(record, "Lat", "latitude", "Y", "Ypos", "緯度"),
        longitude=_number(record, "Lng", "longitude", "X", "Xpos", "經度"),
    )


class TaipeiOpenDataProvider:
    """Tennis venues from the open-data JSON; the feed carries no slot data."""

    def __init__(self, settings: Settings, *, client: Optional[httpx.AsyncClient] = None):
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            timeout=settings.fetch_timeout_seconds,
        )

    async def list_courts(self) -> list[Venue]:
        url = self._settings.opendata_url
        LOGGER.info("opendata.fetch.start", url=url)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            LOGGER.warning("opendata.fetch.failed", url=url, error=str(exc))
            return []

        if not isinstance(payload, list):
            LOGGER.warning("opendata.unexpected_payload", kind=type(payload).__name__)
            return []

        venues: dict[str, Venue] = {}
        for record in payload:
            if not isinstance(record, Mapping) or not is_tennis(record):
                continue
            venue = map_venue(record)
            if venue.id.strip() and venue.id not in venues:
                venues[venue.id] = venue
        LOGGER.info("opendata.fetch.success", venues=len(venues))
        return list(venues.values())

    async def get_availability(self, court_id: str, day: date) -> Availability:
        return Availability(court_id=court_id, date=day)

    async def get_venue_info(self, court_id: str) -> Optional[VenueInfo]:
        for venue in await self.list_courts():
            if venue.id == court_id:
                return VenueInfo(name=venue.name, address=venue.address, district=venue.district)
        return None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
