from datetime import date, time

from court_finder.models import Availability, TimeSlot, Venue, VenueInfo
from court_finder.report import (
    court_matches,
    filter_slots,
    format_availability,
    format_header,
    format_slot,
    format_venue,
    group_by_court,
)

DAY = date(2025, 10, 1)


def slot(start, end, available=True, label=""):
    return TimeSlot(start=time(start), end=time(end), is_available=available, label=label)


def test_filter_slots_by_window_and_availability():
    slots = [slot(6, 7), slot(7, 8, False), slot(8, 9), slot(9, 10)]
    assert filter_slots(slots, time_range=(time(7, 30), time(9))) == [slots[1], slots[2]]
    assert filter_slots(slots, available_only=True) == [slots[0], slots[2], slots[3]]
    assert filter_slots(slots) == slots


def test_court_matches_labels_and_numbers():
    assert court_matches("Court 3", "3")
    assert court_matches("場地3", "03")
    assert court_matches("第1面 NO.1", "第1面")
    assert court_matches("2號場", "2")
    assert not court_matches("Court 3", "4")
    assert not court_matches("", "1")


def test_group_by_court_drops_unlabeled_when_courts_exist():
    groups = group_by_court([slot(7, 8, label="B"), slot(6, 7), slot(6, 7, label="A")])
    assert [name for name, _ in groups] == ["A", "B"]
    assert [name for name, _ in group_by_court([slot(6, 7), slot(7, 8)])] == ["Court"]


def test_format_slot_and_venue():
    assert format_slot(slot(6, 7)) == "06:00-07:00 ✓ Available"
    assert format_slot(slot(6, 7, False)) == "06:00-07:00 ✗ Booked"
    venue = Venue(id="TTC", name="臺北網球中心", district="內湖區", address="民權東路六段208號")
    assert format_venue(venue) == "[TTC] 臺北網球中心 — 內湖區 | 民權東路六段208號"


def test_format_header_falls_back_to_id():
    assert format_header("163", None) == "K=163"
    assert format_header("163", VenueInfo()) == "K=163"
    assert format_header("163", VenueInfo(name="大安", address="新生南路", district="大安區")) == "大安  大安區 | 新生南路"


def test_format_availability_groups_courts():
    slots = [slot(6, 7, label="Court 1"), slot(6, 7, False, label="Court 2")]
    text = format_availability("K=163", Availability("163", DAY, slots), slots)
    assert text.splitlines() == [
        "K=163",
        "Date: 2025-10-01",
        "",
        "Court 1:",
        "  06:00-07:00 ✓ Available",
        "",
        "Court 2:",
        "  06:00-07:00 ✗ Booked",
    ]


def test_format_availability_without_slots():
    text = format_availability("K=163", Availability("163", DAY), [])
    assert text.endswith("No slot data available for the given filters.")
