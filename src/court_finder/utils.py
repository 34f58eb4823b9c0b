"""Utility helpers for dates, times and text."""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Optional

import structlog
from dateutil import parser as date_parser
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

LOGGER = structlog.get_logger(__name__)

_TIME_FORMATS = ("%H:%M", "%H:%M:%S")


def get_zone(timezone_name: str) -> ZoneInfo:
    """Return a ZoneInfo instance, defaulting to UTC on failure."""
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning("timezone.unknown", timezone=timezone_name)
        return ZoneInfo("UTC")


def today_in_timezone(timezone_name: str) -> date:
    return datetime.now(tz=get_zone(timezone_name)).date()


def parse_date(text: str) -> Optional[date]:
    """Best-effort parsing of a date string such as ``2025-10-01``."""
    cleaned = (text or "").strip()
    if not cleaned:
        return None
    try:
        return date_parser.parse(cleaned, yearfirst=True).date()
    except (ValueError, OverflowError) as exc:
        LOGGER.debug("date.parse_failed", text=cleaned, error=str(exc))
        return None


def parse_time(value: object) -> Optional[time]:
    """Parse ``HH:mm`` (or ``HH:mm:ss``) into a time; anything else gives None."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).time()
        except ValueError:
            continue
    return None


def parse_time_range(text: str) -> Optional[tuple[time, time]]:
    """Parse ``HH:mm-HH:mm``; the end must be after the start."""
    parts = [part.strip() for part in (text or "").split("-", 1)]
    if len(parts) != 2 or not all(parts):
        return None
    start, end = parse_time(parts[0]), parse_time(parts[1])
    if start is None or end is None or end <= start:
        return None
    return start, end


def normalise_whitespace(text: str) -> str:
    """Collapse repeated whitespace into single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()
