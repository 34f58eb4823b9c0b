"""Provider contract and error types shared by every data source."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, runtime_checkable

from .models import Availability, Venue, VenueInfo


class CourtFinderError(Exception):
    """Base class for court finder failures."""


class ScheduleParseError(CourtFinderError, ValueError):
    """A schedule object could not be decoded or did not have the expected shape."""


class EngineUnavailableError(CourtFinderError):
    """The browser automation engine cannot be launched, even after installing it."""


@runtime_checkable
class CourtProvider(Protocol):
    """Interface consumed by the CLI.

    ``get_availability`` never raises for "no data"; it returns an
    :class:`Availability` with an empty slot list instead.
    """

    async def list_courts(self) -> list[Venue]:
        ...

    async def get_availability(self, court_id: str, day: date) -> Availability:
        ...

    async def get_venue_info(self, court_id: str) -> Optional[VenueInfo]:
        ...

    async def aclose(self) -> None:
        ...
