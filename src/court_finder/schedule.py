"""Turn upstream schedule objects into normalised time slots.

Two shapes are published by the venue pages:

``VenuesCalendarJson`` (calendar form)
    ``{"Schedule": {"2025-10-01": [{"CourtName", "Start", "End", "Status"}, ...]}}``

``mmDataPickup`` (pickup form)
    ``{"_C": {"SH": 6, "EH": 22}, "Data": {"202510": {"1": ...}}}`` where a day
    holds either a time map ``{"0600": {"S", "E", "D"}}`` or a map of court
    key to such a time map.

Both are JavaScript object literals rather than JSON, and individual records
are frequently malformed; bad records are dropped, bad objects raise
:class:`ScheduleParseError` so the caller can try the next shape.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Iterable, Mapping, Optional

import structlog

from .extractor import extract_js_object
from .models import OpeningHours, TimeSlot, VenueInfo
from .opening_hours import opening_hours_from, within_opening_hours
from .provider import ScheduleParseError
from .utils import parse_time

LOGGER = structlog.get_logger(__name__)

CALENDAR_VARIABLE = "VenuesCalendarJson"
PICKUP_VARIABLE = "mmDataPickup"
PICKUP_DATA_PATH = "mmDataPickup.Data"
PICKUP_CONFIG_PATH = "mmDataPickup._C"
VENUE_INFO_VARIABLE = "VenuesInfoJson"

AVAILABLE_STATUSES = {"1", "available"}

_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$]*)(\s*:)")


@dataclass
class ScheduleResult:
    """Slots parsed for one day plus the opening hours they were clamped to."""

    slots: list[TimeSlot] = field(default_factory=list)
    hours: OpeningHours = field(default_factory=OpeningHours)
    variant: str = "none"

    @property
    def is_segmented(self) -> bool:
        """True when at least one slot carries a court label."""
        return any(slot.label.strip() for slot in self.slots)


def decode_object(literal: str) -> dict[str, Any]:
    """Decode an extracted object literal, tolerating trailing commas and bare keys."""
    try:
        value = json.loads(literal)
    except json.JSONDecodeError:
        repaired = _BARE_KEY.sub(r'\1"\2"\3', _TRAILING_COMMA.sub(r"\1", literal))
        try:
            value = json.loads(repaired)
        except json.JSONDecodeError as exc:
            raise ScheduleParseError(f"object literal is not decodable: {exc}") from exc
    if not isinstance(value, dict):
        raise ScheduleParseError(f"expected an object, got {type(value).__name__}")
    return value


def month_key(day: date) -> str:
    return f"{day.year}{day.month:02d}"


def day_key(day: date) -> str:
    return str(day.day)


def build_slot(start_text: Any, end_text: Any, available: bool, label: str = "") -> Optional[TimeSlot]:
    """Create a slot, or ``None`` when the bounds do not parse or are inverted."""
    start, end = parse_time(start_text), parse_time(end_text)
    if start is None or end is None or end <= start:
        return None
    return TimeSlot(start=start, end=end, is_available=available, label=label)


def _first_text(record: Mapping[str, Any], *names: str) -> Optional[str]:
    for name in names:
        value = record.get(name)
        if isinstance(value, str):
            return value
    return None


def _status_text(record: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = record.get(name)
        if isinstance(value, bool):
            continue
        if isinstance(value, (str, int)):
            return str(value).strip()
    return ""


# -- calendar form ----------------------------------------------------------


def parse_calendar(calendar: Any, day: date) -> list[TimeSlot]:
    if not isinstance(calendar, Mapping):
        raise ScheduleParseError("calendar object is not a mapping")
    schedule = calendar.get("Schedule")
    if not isinstance(schedule, Mapping):
        raise ScheduleParseError("calendar object has no Schedule map")

    records = schedule.get(day.isoformat())
    if not isinstance(records, list):
        return []

    slots: list[TimeSlot] = []
    for record in records:
        if not isinstance(record, Mapping):
            continue
        status = _status_text(record, "Status", "IR").lower()
        slot = build_slot(
            _first_text(record, "Start", "S"),
            _first_text(record, "End", "E"),
            status in AVAILABLE_STATUSES,
            _first_text(record, "CourtName", "Court") or "",
        )
        if slot is not None:
            slots.append(slot)
    return slots


# -- pickup form ------------------------------------------------------------


def looks_like_slot_record(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and isinstance(value.get("S"), str)
        and isinstance(value.get("E"), str)
    )


def _pickup_available(record: Mapping[str, Any]) -> bool:
    flag = record.get("D")
    if isinstance(flag, bool) or not isinstance(flag, (str, int)):
        flag = "0"
    return str(flag).strip() == "0"


def parse_time_map(
    time_map: Mapping[str, Any],
    label: str = "",
    hours: Optional[OpeningHours] = None,
) -> list[TimeSlot]:
    """Parse ``{time_key: {"S", "E", "D"}}`` into slots inside ``hours``."""
    hours = hours or OpeningHours()
    slots: list[TimeSlot] = []
    for record in time_map.values():
        if not isinstance(record, Mapping):
            continue
        slot = build_slot(record.get("S"), record.get("E"), _pickup_available(record), label)
        if slot is not None and within_opening_hours(slot, hours):
            slots.append(slot)
    return slots


def _day_map(data: Any, day: date) -> Optional[Mapping[str, Any]]:
    if not isinstance(data, Mapping):
        raise ScheduleParseError("pickup Data is not a mapping")
    month = data.get(month_key(day))
    if not isinstance(month, Mapping):
        LOGGER.debug("schedule.month_missing", month=month_key(day), available=sorted(data.keys()))
        return None
    day_map = month.get(day_key(day))
    if not isinstance(day_map, Mapping):
        LOGGER.debug("schedule.day_missing", day=day_key(day), available=sorted(month.keys()))
        return None
    return day_map


def parse_pickup_data(data: Any, day: date, hours: Optional[OpeningHours] = None) -> list[TimeSlot]:
    """Parse ``mmDataPickup.Data`` for ``day``.

    A day whose first child is already a slot record is an unsegmented time
    map (empty labels); otherwise each child is a court key mapped to its own
    time map and slots are labelled ``Court {key}``.
    """
    day_map = _day_map(data, day)
    if not day_map:
        return []

    first = next(iter(day_map.values()))
    if looks_like_slot_record(first):
        return parse_time_map(day_map, "", hours)

    slots: list[TimeSlot] = []
    for court_key, time_map in day_map.items():
        if isinstance(time_map, Mapping):
            slots.extend(parse_time_map(time_map, f"Court {court_key}", hours))
    LOGGER.debug("schedule.courts_found", day=day.isoformat(), courts=sorted(day_map.keys()))
    return slots


def parse_pickup_for_label(
    data: Any,
    day: date,
    label: str,
    hours: Optional[OpeningHours] = None,
) -> list[TimeSlot]:
    """Parse a day's time map as belonging to a single on-page court label."""
    day_map = _day_map(data, day)
    if not day_map:
        return []
    return parse_time_map(day_map, label, hours)


def parse_pickup(pickup: Any, day: date) -> ScheduleResult:
    if not isinstance(pickup, Mapping):
        raise ScheduleParseError("pickup object is not a mapping")
    hours = opening_hours_from(pickup.get("_C"))
    if "Data" not in pickup:
        raise ScheduleParseError("pickup object has no Data member")
    return ScheduleResult(parse_pickup_data(pickup["Data"], day, hours), hours, "pickup")


# -- pipelines --------------------------------------------------------------


def _run_attempts(attempts: Iterable[tuple[str, Callable[[], Optional[ScheduleResult]]]]) -> ScheduleResult:
    """Return the first attempt yielding slots, else an empty result with the best hours seen."""
    fallback = ScheduleResult()
    for name, attempt in attempts:
        try:
            result = attempt()
        except ScheduleParseError as exc:
            LOGGER.info("schedule.attempt_failed", attempt=name, error=str(exc))
            continue
        if result is None:
            continue
        if result.slots:
            LOGGER.info("schedule.parsed", attempt=name, variant=result.variant, slots=len(result.slots))
            return result
        if result.hours.is_bounded and not fallback.hours.is_bounded:
            fallback = ScheduleResult(hours=result.hours)
    return fallback


def parse_schedule_payload(payload: Mapping[str, Any], day: date) -> ScheduleResult:
    """Parse the ``{"VenuesCalendarJson": ..., "mmDataPickup": ...}`` page snapshot."""

    def calendar() -> Optional[ScheduleResult]:
        if CALENDAR_VARIABLE not in payload:
            return None
        return ScheduleResult(parse_calendar(payload[CALENDAR_VARIABLE], day), variant="calendar")

    def pickup() -> Optional[ScheduleResult]:
        if PICKUP_VARIABLE not in payload:
            return None
        return parse_pickup(payload[PICKUP_VARIABLE], day)

    return _run_attempts([("calendar", calendar), ("pickup", pickup)])


def _decode_variable(text: str, variable_path: str) -> Optional[dict[str, Any]]:
    literal = extract_js_object(text, variable_path)
    if literal is None:
        return None
    try:
        return decode_object(literal)
    except ScheduleParseError as exc:
        LOGGER.info("schedule.decode_failed", variable=variable_path, error=str(exc))
        return None


def _calendar_from_text(text: str, day: date) -> Optional[ScheduleResult]:
    literal = extract_js_object(text, CALENDAR_VARIABLE)
    if literal is None:
        return None
    return ScheduleResult(parse_calendar(decode_object(literal), day), variant="calendar")


def _pickup_from_text(text: str, day: date) -> Optional[ScheduleResult]:
    pickup = _decode_variable(text, PICKUP_VARIABLE) or {}
    data = pickup.get("Data")
    if not isinstance(data, Mapping):
        data = _decode_variable(text, PICKUP_DATA_PATH)
    if data is None:
        return None
    config = pickup.get("_C")
    if config is None:
        config = _decode_variable(text, PICKUP_CONFIG_PATH)
    hours = opening_hours_from(config)
    return ScheduleResult(parse_pickup_data(data, day, hours), hours, "pickup")


def extract_schedule(texts: Iterable[Optional[str]], day: date) -> ScheduleResult:
    """Extract and parse schedule data from raw script/page texts, in order."""
    attempts: list[tuple[str, Callable[[], Optional[ScheduleResult]]]] = []
    for index, text in enumerate(texts):
        if not text:
            continue
        attempts.append((f"calendar[{index}]", lambda text=text: _calendar_from_text(text, day)))
        attempts.append((f"pickup[{index}]", lambda text=text: _pickup_from_text(text, day)))
    return _run_attempts(attempts)


# -- venue metadata ---------------------------------------------------------


def parse_venue_info(venues: Any) -> Optional[VenueInfo]:
    """Read ``VenuesInfoJson.Info`` (``Name``/``Address``/``Area``)."""
    if not isinstance(venues, Mapping):
        return None
    info = venues.get("Info")
    if not isinstance(info, Mapping):
        return None
    return VenueInfo(
        name=_first_text(info, "Name") or "",
        address=_first_text(info, "Address") or "",
        district=_first_text(info, "Area") or "",
    )


def extract_venue_info(texts: Iterable[Optional[str]]) -> Optional[VenueInfo]:
    for text in texts:
        if not text:
            continue
        venues = _decode_variable(text, VENUE_INFO_VARIABLE)
        info = parse_venue_info(venues)
        if info is not None:
            return info
    return None
