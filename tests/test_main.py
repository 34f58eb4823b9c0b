from datetime import date, time

import pytest

from court_finder import main
from court_finder.models import Availability, TimeSlot, VenueInfo

from conftest import SAMPLE_DATA


@pytest.fixture
def mock_env(make_settings, monkeypatch):
    make_settings()
    monkeypatch.setenv("COURTFINDER_PROVIDER", "mock")
    monkeypatch.setenv("COURTFINDER_SAMPLE_DATA", str(SAMPLE_DATA))


def test_list_prints_sample_courts(mock_env, capsys):
    assert main.cli(["list"]) == 0
    out = capsys.readouterr().out
    assert "Provider: mock (sample data)" in out
    assert "[DAAN_FOREST] 大安森林公園網球場" in out


def test_list_filters_by_district_and_exclusions(mock_env, capsys):
    main.cli(["list", "--district", "內湖"])
    out = capsys.readouterr().out
    assert "[TAIPEI_TENNIS_CENTER]" in out
    assert "[DAAN_FOREST]" not in out

    main.cli(["list", "--exclude", "河濱, 中心"])
    out = capsys.readouterr().out
    assert "[DAAN_FOREST]" in out
    assert "[YINGFENG]" not in out
    assert "[TAIPEI_TENNIS_CENTER]" not in out


def test_search_by_keyword(mock_env, capsys):
    main.cli(["search", "--name", "公園"])
    out = capsys.readouterr().out
    assert "[DAAN_FOREST]" in out
    assert "[YINGFENG]" in out


def test_status_by_name_shows_available_slots(mock_env, capsys):
    assert main.cli(["status", "--court", "大安森林", "--date", "2025-10-01", "--available"]) == 0
    out = capsys.readouterr().out
    assert "Date: 2025-10-01" in out
    assert "06:00-07:00 ✓ Available" in out
    assert "✗ Booked" not in out


def test_status_unknown_name_suggests(mock_env, capsys):
    main.cli(["status", "--court", "游泳池"])
    assert "Court not found" in capsys.readouterr().out


def test_invalid_date_exits(mock_env):
    with pytest.raises(SystemExit):
        main.cli(["status", "--court", "大安森林", "--date", "not a date"])


def test_health_with_sample_data(mock_env, capsys):
    assert main.cli(["health"]) == 0
    assert "courts.json: OK" in capsys.readouterr().out


def fake_venue_availability(availability, info=None, engine_missing=False):
    async def fake(settings, venue_id, day):  # noqa: ARG001
        return availability, info, engine_missing

    return fake


def test_status_by_venue_filters_court(make_settings, monkeypatch, capsys):
    make_settings()
    slots = [
        TimeSlot(time(6), time(7), True, "Court 1"),
        TimeSlot(time(6), time(7), False, "Court 2"),
    ]
    availability = Availability("163", date(2025, 10, 1), slots)
    info = VenueInfo(name="大安森林公園網球場", address="新生南路", district="大安區")
    monkeypatch.setattr(main, "venue_availability", fake_venue_availability(availability, info))

    assert main.cli(["status", "--k", "163", "--date", "2025-10-01", "--court", "2"]) == 0
    out = capsys.readouterr().out
    assert "大安森林公園網球場  大安區 | 新生南路" in out
    assert "06:00-07:00 ✗ Booked" in out
    assert "✓ Available" not in out


def test_status_by_venue_lists_courts_when_filter_misses(make_settings, monkeypatch, capsys):
    make_settings()
    availability = Availability("163", date(2025, 10, 1), [TimeSlot(time(6), time(7), True, "第1面")])
    monkeypatch.setattr(main, "venue_availability", fake_venue_availability(availability))

    main.cli(["status", "--k", "163", "--date", "2025-10-01", "--court", "9"])
    out = capsys.readouterr().out
    assert "No slot data matched court '9'" in out
    assert "  - 第1面" in out


def test_degraded_empty_result_prints_headed_mode_tip(make_settings, monkeypatch, capsys):
    make_settings()
    availability = Availability("163", date(2025, 10, 1), degraded=True)
    monkeypatch.setattr(main, "venue_availability", fake_venue_availability(availability))

    assert main.cli(["status", "--k", "163", "--date", "2025-10-01"]) == 0
    out = capsys.readouterr().out
    assert "K=163" in out
    assert "COURTFINDER_HEADLESS=false" in out


def test_missing_engine_without_data_sets_exit_code(make_settings, monkeypatch, capsys):
    make_settings()
    availability = Availability("163", date(2025, 10, 1))
    monkeypatch.setattr(main, "venue_availability", fake_venue_availability(availability, engine_missing=True))

    assert main.cli(["status", "--k", "163"]) == main.EXIT_ENGINE_UNAVAILABLE
    capsys.readouterr()


def test_status_without_target_is_a_usage_error(mock_env, capsys):
    assert main.cli(["status", "--date", "2025-10-01"]) == main.EXIT_USAGE
    assert "--court NAME or --k VENUE_ID" in capsys.readouterr().err
