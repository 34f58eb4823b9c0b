from datetime import date

import httpx
import pytest

from court_finder.opendata import TaipeiOpenDataProvider, is_tennis, map_venue

from conftest import mock_client

FEED = [
    {"sport": "tennis", "PlaceId": "ID1", "PlaceName": "Test Court", "District": "Daan"},
    {"sport": "basketball", "PlaceId": "B1", "PlaceName": "Hoops"},
    {
        "場地名稱": "青年公園網球場",
        "行政區": "萬華區",
        "地址": "水源路199號",
        "夜間照明": "有",
        "緯度": "25.0236",
        "經度": 121.5048,
    },
    {"sport": "tennis", "PlaceId": "ID1", "PlaceName": "Duplicate"},
    "not-a-record",
]


@pytest.mark.asyncio
async def test_list_courts_keeps_tennis_venues(settings):
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, json=FEED)

    async with mock_client(handler) as client:
        venues = await TaipeiOpenDataProvider(settings, client=client).list_courts()

    assert requested == [settings.opendata_url]
    assert [(v.id, v.name) for v in venues] == [("ID1", "Test Court"), ("青年公園網球場", "青年公園網球場")]
    youth = venues[1]
    assert youth.district == "萬華區"
    assert youth.has_lights is True
    assert youth.latitude == pytest.approx(25.0236)
    assert youth.longitude == pytest.approx(121.5048)


@pytest.mark.asyncio
async def test_feed_failures_yield_no_courts(settings):
    async with mock_client(lambda request: httpx.Response(502)) as client:
        assert await TaipeiOpenDataProvider(settings, client=client).list_courts() == []
    async with mock_client(lambda request: httpx.Response(200, text="<html>")) as client:
        assert await TaipeiOpenDataProvider(settings, client=client).list_courts() == []
    async with mock_client(lambda request: httpx.Response(200, json={"data": []})) as client:
        assert await TaipeiOpenDataProvider(settings, client=client).list_courts() == []


@pytest.mark.asyncio
async def test_availability_is_always_empty_and_venue_info_maps_feed(settings):
    async with mock_client(lambda request: httpx.Response(200, json=FEED)) as client:
        provider = TaipeiOpenDataProvider(settings, client=client)
        availability = await provider.get_availability("ID1", date(2025, 10, 1))
        info = await provider.get_venue_info("ID1")
        missing = await provider.get_venue_info("nope")

    assert availability.slots == []
    assert info.name == "Test Court"
    assert info.district == "Daan"
    assert missing is None


def test_is_tennis_and_mapping_defaults():
    assert is_tennis({"type": "Tennis court"})
    assert not is_tennis({"type": "swimming", "count": 3})
    venue = map_venue({"Name": "Court", "HasLights": False, "Lat": "n/a"})
    assert venue.id == "Court"
    assert venue.has_lights is False
    assert venue.latitude is None
