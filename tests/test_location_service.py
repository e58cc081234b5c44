import asyncio

import httpx
import pytest

from weather_gateway.cache import RequestCache
from weather_gateway.clients.meituan_client import MeituanClient
from weather_gateway.errors import ProviderUnavailableError, UpstreamHTTPError, UpstreamTimeoutError
from weather_gateway.models.common import DEFAULT_LOCATION, UNKNOWN_ADDRESS, IPLocation, PlaceCandidate
from weather_gateway.providers.places import PlaceTable
from weather_gateway.services.location import LocationService
from tests.common import FakeAmapClient, FakeMeituanClient, MockResponse, make_fake_async_client


def _service(meituan=None, amap=None, places=None, photon=None, nominatim=None, **kwargs) -> LocationService:
    return LocationService(
        cache=RequestCache(),
        meituan=meituan or FakeMeituanClient(),
        amap=amap,
        photon=photon,
        nominatim=nominatim,
        places=places,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_search_local_match_skips_external_provider() -> None:
    amap = FakeAmapClient(places=[PlaceCandidate(lat=1, lng=1, name="should not be used")])
    service = _service(amap=amap)

    results = await service.search("杭州")

    assert [place.name for place in results] == ["杭州"]
    assert results[0].lat == pytest.approx(30.2741)
    assert amap.search_calls == []


@pytest.mark.asyncio
async def test_search_query_containing_a_city_name_matches_it() -> None:
    service = _service()

    results = await service.search("杭州西湖")

    assert [place.name for place in results] == ["杭州"]


@pytest.mark.asyncio
async def test_search_uses_external_provider_when_table_has_no_match() -> None:
    west_lake = PlaceCandidate(lat=30.2431, lng=120.1508, name="西湖风景名胜区", address="浙江省 杭州市 西湖区")
    amap = FakeAmapClient(places=[west_lake])
    service = _service(amap=amap)

    results = await service.search("西湖风景")

    assert results == [west_lake]
    assert amap.search_calls == ["西湖风景"]


@pytest.mark.asyncio
async def test_search_relaxed_match_after_provider_comes_back_empty() -> None:
    places = PlaceTable([PlaceCandidate(lat=39.78, lng=-89.65, name="Springfield", address="Illinois")])
    amap = FakeAmapClient(places=[])
    service = _service(amap=amap, places=places)

    results = await service.search("springfield")

    assert [place.name for place in results] == ["Springfield"]
    assert amap.search_calls == ["springfield"]


@pytest.mark.asyncio
async def test_search_relaxed_match_after_provider_timeout() -> None:
    places = PlaceTable([PlaceCandidate(lat=39.78, lng=-89.65, name="Springfield", address="Illinois")])
    amap = FakeAmapClient(places=UpstreamTimeoutError("slow"))
    service = _service(amap=amap, places=places)

    assert [place.name for place in await service.search("ILLINOIS")] == ["Springfield"]


@pytest.mark.asyncio
async def test_search_without_external_provider_or_match_returns_empty_list_uncached() -> None:
    cache = RequestCache()
    service = LocationService(cache=cache, meituan=FakeMeituanClient())

    assert await service.search("Atlantis") == []
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_concurrent_identical_searches_hit_provider_once() -> None:
    amap = FakeAmapClient(places=[PlaceCandidate(lat=30.0, lng=120.0, name="某景点")], delay=0.01)
    service = _service(amap=amap)

    first, second = await asyncio.gather(service.search("某景点"), service.search(" 某景点 "))

    assert first == second
    assert amap.search_calls == ["某景点"]


@pytest.mark.asyncio
async def test_reverse_geocode_primary_provider() -> None:
    meituan = FakeMeituanClient(address="中国 浙江省 杭州市 西湖区")
    amap = FakeAmapClient()
    service = _service(meituan=meituan, amap=amap)

    assert await service.reverse_geocode(30.2741, 120.1551) == "中国 浙江省 杭州市 西湖区"
    assert amap.geocode_calls == []


@pytest.mark.asyncio
async def test_reverse_geocode_falls_back_to_secondary_provider() -> None:
    meituan = FakeMeituanClient(address=UpstreamHTTPError(500, "meituan returned HTTP 500"))
    amap = FakeAmapClient(address="浙江省杭州市西湖区北山街道")
    service = _service(meituan=meituan, amap=amap)

    assert await service.reverse_geocode(30.2741, 120.1551) == "浙江省杭州市西湖区北山街道"
    assert meituan.geocode_calls == [(30.2741, 120.1551)]
    assert amap.geocode_calls == [(30.2741, 120.1551)]


@pytest.mark.asyncio
async def test_reverse_geocode_exhausted_returns_unknown_and_is_not_cached() -> None:
    cache = RequestCache()
    meituan = FakeMeituanClient(address=ProviderUnavailableError("connection refused"))
    service = LocationService(cache=cache, meituan=meituan)

    assert await service.reverse_geocode(30.0, 120.0) == UNKNOWN_ADDRESS
    assert await service.reverse_geocode(30.0, 120.0) == UNKNOWN_ADDRESS
    assert len(meituan.geocode_calls) == 2
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_reverse_geocode_nearby_coordinates_share_cache_entry() -> None:
    meituan = FakeMeituanClient()
    service = _service(meituan=meituan)

    await service.reverse_geocode(30.27411, 120.15512)
    await service.reverse_geocode(30.27409, 120.15508)

    assert len(meituan.geocode_calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("address", [None, "192.168.1.1", "127.0.0.1", "::1", "garbage"])
async def test_locate_ip_non_public_address_uses_default_without_upstream_call(address: str | None) -> None:
    meituan = FakeMeituanClient(location=IPLocation(lat=1, lng=2, address="elsewhere"))
    service = _service(meituan=meituan)

    assert await service.locate_ip(address) == DEFAULT_LOCATION
    assert meituan.ip_calls == []


@pytest.mark.asyncio
async def test_locate_ip_public_address_is_normalized_before_lookup() -> None:
    hangzhou = IPLocation(lat=30.27, lng=120.15, address="中国 浙江省 杭州市")
    meituan = FakeMeituanClient(location=hangzhou)
    service = _service(meituan=meituan)

    assert await service.locate_ip("::ffff:203.0.113.7") == hangzhou
    assert meituan.ip_calls == ["203.0.113.7"]


@pytest.mark.asyncio
async def test_locate_ip_provider_failure_uses_default() -> None:
    meituan = FakeMeituanClient(location=UpstreamHTTPError(403, "forbidden"))
    service = _service(meituan=meituan)

    assert await service.locate_ip("203.0.113.7") == DEFAULT_LOCATION
    assert meituan.ip_calls == ["203.0.113.7"]

@pytest.mark.asyncio
async def test_locate_ip_non_numeric_coordinates_use_default(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = {"data": {"lat": "n/a", "lng": "n/a", "rgeo": {"city": "x"}}}
    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(MockResponse(200, payload)))
    cache = RequestCache()
    service = LocationService(cache=cache, meituan=MeituanClient())

    assert await service.locate_ip("8.8.8.8") == DEFAULT_LOCATION
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_search_falls_through_to_photon_after_amap() -> None:
    lingyin = PlaceCandidate(lat=30.2408, lng=120.1012, name="灵隐寺", address="中国 浙江省 杭州市 灵隐寺")
    amap = FakeAmapClient(places=UpstreamHTTPError(500, "amap returned HTTP 500"))
    photon = FakeAmapClient(places=[lingyin])
    nominatim = FakeAmapClient(places=[PlaceCandidate(lat=1, lng=1, name="should not be used")])
    service = _service(amap=amap, photon=photon, nominatim=nominatim)

    assert await service.search("灵隐寺") == [lingyin]
    assert amap.search_calls == ["灵隐寺"]
    assert photon.search_calls == ["灵隐寺"]
    assert nominatim.search_calls == []


@pytest.mark.asyncio
async def test_search_falls_through_to_nominatim_after_photon() -> None:
    lingyin = PlaceCandidate(lat=30.2408, lng=120.1012, name="灵隐寺", address="灵隐寺, 西湖区, 杭州市, 浙江省, 中国")
    photon = FakeAmapClient(places=[])
    nominatim = FakeAmapClient(places=[lingyin])
    service = _service(photon=photon, nominatim=nominatim)

    assert await service.search("灵隐寺") == [lingyin]
    assert photon.search_calls == ["灵隐寺"]
    assert nominatim.search_calls == ["灵隐寺"]


@pytest.mark.asyncio
async def test_reverse_geocode_falls_through_to_nominatim() -> None:
    meituan = FakeMeituanClient(address=UpstreamTimeoutError("slow"))
    amap = FakeAmapClient(address=ProviderUnavailableError("connection refused"))
    nominatim = FakeAmapClient(address="西湖区, 杭州市, 浙江省, 中国")
    service = _service(meituan=meituan, amap=amap, nominatim=nominatim)

    assert await service.reverse_geocode(30.2741, 120.1551) == "西湖区, 杭州市, 浙江省, 中国"
    assert amap.geocode_calls == [(30.2741, 120.1551)]
    assert nominatim.geocode_calls == [(30.2741, 120.1551)]


def test_chains_are_built_from_configured_providers() -> None:
    without_amap = _service()
    with_amap = _service(amap=FakeAmapClient())
    with_all = _service(amap=FakeAmapClient(), photon=FakeAmapClient(), nominatim=FakeAmapClient())

    assert without_amap.geocode_chain.stage_names == ["meituan.reverse_geocode"]
    assert without_amap.search_chain.stage_names == ["places.exact", "places.relaxed"]
    assert with_amap.geocode_chain.stage_names == ["meituan.reverse_geocode", "amap.reverse_geocode"]
    assert with_amap.search_chain.stage_names == ["places.exact", "amap.search", "places.relaxed"]
    assert with_amap.ip_chain.stage_names == ["meituan.locate_ip"]
    assert with_all.geocode_chain.stage_names == [
        "meituan.reverse_geocode",
        "amap.reverse_geocode",
        "nominatim.reverse_geocode",
    ]
    assert with_all.search_chain.stage_names == [
        "places.exact",
        "amap.search",
        "photon.search",
        "nominatim.search",
        "places.relaxed",
    ]
