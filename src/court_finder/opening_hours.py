"""Clamp parsed slots to a venue's declared opening window."""

from __future__ import annotations

from datetime import time
from typing import Any, Iterable, Mapping, Optional

from .models import OpeningHours, TimeSlot

EARLIEST_START = time(0, 0)
LATEST_END = time(23, 59)


def coerce_hour(value: Any) -> Optional[int]:
    """Read an hour given as a number or a numeric string."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def opening_hours_from(config: Any) -> OpeningHours:
    """Build opening hours from a ``_C`` object holding ``SH``/``EH``."""
    if not isinstance(config, Mapping):
        return OpeningHours()
    return OpeningHours(start_hour=coerce_hour(config.get("SH")), end_hour=coerce_hour(config.get("EH")))


def _clamp(hour: int) -> int:
    return max(0, min(23, hour))


def bounds(hours: OpeningHours) -> tuple[time, time]:
    earliest = time(_clamp(hours.start_hour), 0) if hours.start_hour is not None else EARLIEST_START
    latest = time(_clamp(hours.end_hour), 0) if hours.end_hour is not None else LATEST_END
    return earliest, latest


def within_opening_hours(slot: TimeSlot, hours: OpeningHours) -> bool:
    if not hours.is_bounded:
        return True
    earliest, latest = bounds(hours)
    return slot.start >= earliest and slot.end <= latest


def clamp_slots(slots: Iterable[TimeSlot], hours: Optional[OpeningHours]) -> list[TimeSlot]:
    """Keep slots starting at/after the opening hour and ending at/before closing."""
    if hours is None or not hours.is_bounded:
        return list(slots)
    return [slot for slot in slots if within_opening_hours(slot, hours)]
