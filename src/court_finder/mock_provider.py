"""File-backed provider over the bundled sample data."""

from __future__ import annotations

import json
from datetime import date, time
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from .config import Settings
from .models import Availability, TimeSlot, Venue, VenueInfo

LOGGER = structlog.get_logger(__name__)


class VenueRecord(BaseModel):
    id: str
    name: str = ""
    district: str = ""
    address: str = ""
    surface: str = ""
    has_lights: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SlotRecord(BaseModel):
    start: time
    end: time
    is_available: bool = False
    label: str = ""


class AvailabilityRecord(BaseModel):
    court_id: str
    date: date
    slots: List[SlotRecord] = Field(default_factory=list)


class MockProvider:
    """Serve ``courts.json`` and ``availability/<id>_<yyyy-mm-dd>.json`` from a directory."""

    def __init__(self, settings: Settings, root: Optional[Path] = None):
        self._root = Path(root or settings.sample_data_dir)

    async def list_courts(self) -> list[Venue]:
        path = self._root / "courts.json"
        if not path.is_file():
            LOGGER.warning("mock.courts_missing", path=str(path))
            return []
        try:
            records = [VenueRecord.model_validate(item) for item in json.loads(path.read_text(encoding="utf-8"))]
        except (json.JSONDecodeError, TypeError, ValidationError) as exc:
            LOGGER.warning("mock.courts_invalid", path=str(path), error=str(exc))
            return []
        return [Venue(**record.model_dump()) for record in records]

    async def get_availability(self, court_id: str, day: date) -> Availability:
        path = self._root / "availability" / f"{court_id}_{day.isoformat()}.json"
        if not path.is_file():
            return Availability(court_id=court_id, date=day)
        try:
            record = AvailabilityRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            LOGGER.warning("mock.availability_invalid", path=str(path), error=str(exc))
            return Availability(court_id=court_id, date=day)

        slots = []
        for slot in record.slots:
            try:
                slots.append(TimeSlot(start=slot.start, end=slot.end, is_available=slot.is_available, label=slot.label))
            except ValueError:
                LOGGER.debug("mock.slot_dropped", start=str(slot.start), end=str(slot.end))
        return Availability(court_id=record.court_id, date=record.date, slots=slots)

    async def get_venue_info(self, court_id: str) -> Optional[VenueInfo]:
        for venue in await self.list_courts():
            if venue.id == court_id:
                return VenueInfo(name=venue.name, address=venue.address, district=venue.district)
        return None

    async def aclose(self) -> None:
        return None
