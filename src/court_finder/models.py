"""Shared data models used across the court finder."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional


@dataclass(frozen=True)
class Venue:
    """A bookable location as published by a provider."""

    id: str
    name: str = ""
    district: str = ""
    address: str = ""
    surface: str = ""
    has_lights: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class VenueInfo:
    """Name and location metadata read from a venue page."""

    name: str = ""
    address: str = ""
    district: str = ""


@dataclass(frozen=True)
class TimeSlot:
    """A single bookable period on one day."""

    start: time
    end: time
    is_available: bool
    label: str = ""

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"slot start {self.start} must be before end {self.end}")

    def __str__(self) -> str:
        status = "Available" if self.is_available else "Booked"
        return f"{self.start:%H:%M}-{self.end:%H:%M} {status}"


@dataclass(frozen=True)
class OpeningHours:
    """Declared opening window; either bound may be missing."""

    start_hour: Optional[int] = None
    end_hour: Optional[int] = None

    @property
    def is_bounded(self) -> bool:
        return self.start_hour is not None or self.end_hour is not None


@dataclass
class Availability:
    """Slots for one venue/court on one date, ordered by start time."""

    court_id: str
    date: date
    slots: list[TimeSlot] = field(default_factory=list)
    degraded: bool = False

    def __post_init__(self) -> None:
        self.slots = sorted(self.slots or [], key=lambda slot: slot.start)
