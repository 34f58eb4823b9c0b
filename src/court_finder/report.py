"""Console formatting and slot filters for the command line."""

from __future__ import annotations

from datetime import time
from itertools import groupby
from typing import Iterable, Optional, Sequence

from .models import Availability, TimeSlot, Venue, VenueInfo

UNLABELED_GROUP = "Court"


def filter_slots(
    slots: Iterable[TimeSlot],
    *,
    time_range: Optional[tuple[time, time]] = None,
    available_only: bool = False,
) -> list[TimeSlot]:
    """Keep slots overlapping ``time_range`` and, optionally, only free ones."""
    kept = []
    for slot in slots:
        if time_range is not None and (slot.end <= time_range[0] or slot.start >= time_range[1]):
            continue
        if available_only and not slot.is_available:
            continue
        kept.append(slot)
    return kept


def court_matches(label: str, query: str) -> bool:
    """Match a slot label against ``--court``; bare numbers also match common court names."""
    query = query.strip()
    if not label.strip() or not query:
        return False
    lowered = label.lower()
    if query.lower() in lowered:
        return True
    if query.isdigit():
        number = str(int(query))
        return any(pattern.lower() in lowered for pattern in (f"Court {number}", f"場地{number}", f"{number}號"))
    return False


def group_by_court(slots: Sequence[TimeSlot]) -> list[tuple[str, list[TimeSlot]]]:
    """Group slots per court label; the unlabeled aggregate is dropped when courts exist."""
    def key(slot: TimeSlot) -> str:
        return slot.label.strip() or UNLABELED_GROUP

    groups = [
        (name, sorted(members, key=lambda slot: slot.start))
        for name, members in groupby(sorted(slots, key=key), key=key)
    ]
    if len(groups) > 1:
        groups = [(name, members) for name, members in groups if name.lower() != UNLABELED_GROUP.lower()]
    return groups


def format_slot(slot: TimeSlot) -> str:
    mark = "✓ Available" if slot.is_available else "✗ Booked"
    return f"{slot.start:%H:%M}-{slot.end:%H:%M} {mark}"


def format_venue(venue: Venue) -> str:
    return f"[{venue.id}] {venue.name} — {venue.district} | {venue.address}"


def format_header(court_id: str, info: Optional[VenueInfo]) -> str:
    if info is None or not info.name:
        return f"K={court_id}"
    district = f"  {info.district}" if info.district else ""
    return f"{info.name}{district} | {info.address}"


def format_availability(header: str, availability: Availability, slots: Sequence[TimeSlot]) -> str:
    """Render a venue's slots, one block per court when there are several."""
    lines = [header, f"Date: {availability.date.isoformat()}"]
    if not slots:
        lines.append("No slot data available for the given filters.")
        return "\n".join(lines)

    groups = group_by_court(slots)
    for name, members in groups:
        if len(groups) > 1:
            lines.append("")
            lines.append(f"{name}:")
        lines.extend(f"  {format_slot(slot)}" for slot in members)
    return "\n".join(lines)
