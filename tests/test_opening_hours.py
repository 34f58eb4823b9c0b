from datetime import time

import pytest

from court_finder.models import OpeningHours, TimeSlot
from court_finder.opening_hours import bounds, clamp_slots, coerce_hour, opening_hours_from


def slot(start: str, end: str) -> TimeSlot:
    return TimeSlot(start=time.fromisoformat(start), end=time.fromisoformat(end), is_available=True)


def spans(slots):
    return [(f"{s.start:%H:%M}", f"{s.end:%H:%M}") for s in slots]


def test_clamp_keeps_slots_inside_declared_hours():
    hours = OpeningHours(start_hour=6, end_hour=21)
    slots = [slot("05:00", "06:00"), slot("06:00", "07:00"), slot("20:00", "21:00"), slot("21:00", "22:00")]

    assert spans(clamp_slots(slots, hours)) == [("06:00", "07:00"), ("20:00", "21:00")]


def test_missing_bounds_is_identity():
    slots = [slot("00:00", "01:00"), slot("23:00", "23:59")]
    assert clamp_slots(slots, OpeningHours()) == slots
    assert clamp_slots(slots, None) == slots


def test_only_start_hour_uses_end_of_day():
    hours = OpeningHours(start_hour=7)
    slots = [slot("06:00", "07:00"), slot("07:00", "08:00"), slot("22:00", "23:59")]
    assert spans(clamp_slots(slots, hours)) == [("07:00", "08:00"), ("22:00", "23:59")]


def test_out_of_range_hours_are_clamped():
    assert bounds(OpeningHours(start_hour=-3, end_hour=25)) == (time(0, 0), time(23, 0))


def test_opening_hours_from_config_accepts_strings_and_numbers():
    assert opening_hours_from({"SH": "6", "EH": 21}) == OpeningHours(6, 21)
    assert opening_hours_from({"SH": 6.0}) == OpeningHours(6, None)
    assert opening_hours_from(None) == OpeningHours()
    assert opening_hours_from(["SH", 6]) == OpeningHours()


@pytest.mark.parametrize(
    "value, expected",
    [(6, 6), ("21", 21), (" 7 ", 7), (8.0, 8), (8.5, None), ("x", None), (None, None), (True, None)],
)
def test_coerce_hour(value, expected):
    assert coerce_hour(value) == expected
