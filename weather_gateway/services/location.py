from typing import Any

from weather_gateway.cache import RequestCache
from weather_gateway.clients.amap_client import AmapClient
from weather_gateway.clients.meituan_client import MeituanClient
from weather_gateway.clients.nominatim_client import NominatimClient
from weather_gateway.clients.photon_client import PhotonClient
from weather_gateway.errors import ResourceExhaustedError
from weather_gateway.logger import get_logger
from weather_gateway.models.common import (
    DEFAULT_LOCATION,
    UNKNOWN_ADDRESS,
    Capability,
    GeocodeRequest,
    IPLocateRequest,
    IPLocation,
    PlaceCandidate,
    ProviderRequest,
    SearchRequest,
)
from weather_gateway.network.address import AddressClassification, classify, normalize
from weather_gateway.providers.chain import ProviderChain, Stage
from weather_gateway.providers.places import PlaceTable

log = get_logger("location")

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 3.0
DEFAULT_NOMINATIM_TIMEOUT_SECONDS = 5.0


class LocationService:
    """Geocode, search and IP-locate capabilities.

    Each capability runs a fixed fallback chain behind the shared request
    cache. None of them surfaces upstream failures: when every stage fails
    the caller gets the capability's terminal default (``UNKNOWN_ADDRESS``,
    an empty list, or ``DEFAULT_LOCATION``), and that default is not cached.
    """

    def __init__(
        self,
        cache: RequestCache,
        meituan: MeituanClient,
        amap: AmapClient | None = None,
        photon: PhotonClient | None = None,
        nominatim: NominatimClient | None = None,
        places: PlaceTable | None = None,
        timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
        nominatim_timeout_seconds: float = DEFAULT_NOMINATIM_TIMEOUT_SECONDS,
        chain_timeout_seconds: float | None = None,
    ) -> None:
        self._cache = cache
        self._places = places if places is not None else PlaceTable()

        geocode_stages = [
            Stage("meituan.reverse_geocode", lambda req: meituan.reverse_geocode(req.lat, req.lng), timeout_seconds),
        ]
        search_stages = [Stage("places.exact", self._places.match_exact)]
        if amap is not None:
            geocode_stages.append(
                Stage("amap.reverse_geocode", lambda req: amap.reverse_geocode(req.lat, req.lng), timeout_seconds)
            )
            search_stages.append(Stage("amap.search", lambda req: amap.search_places(req.query), timeout_seconds))
        if photon is not None:
            search_stages.append(Stage("photon.search", lambda req: photon.search_places(req.query), timeout_seconds))
        if nominatim is not None:
            geocode_stages.append(
                Stage(
                    "nominatim.reverse_geocode",
                    lambda req: nominatim.reverse_geocode(req.lat, req.lng),
                    nominatim_timeout_seconds,
                )
            )
            search_stages.append(
                Stage("nominatim.search", lambda req: nominatim.search_places(req.query), nominatim_timeout_seconds)
            )
        search_stages.append(Stage("places.relaxed", self._places.match_relaxed))

        self.geocode_chain = ProviderChain(Capability.geocode.value, geocode_stages, chain_timeout_seconds)
        self.search_chain = ProviderChain(Capability.search.value, search_stages, chain_timeout_seconds)
        self.ip_chain = ProviderChain(
            Capability.ip_locate.value,
            [Stage("meituan.locate_ip", lambda req: meituan.locate_ip(req.address), timeout_seconds)],
            chain_timeout_seconds,
        )
        self._chains = {
            Capability.geocode: self.geocode_chain,
            Capability.search: self.search_chain,
            Capability.ip_locate: self.ip_chain,
        }

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        request = GeocodeRequest(lat=lat, lng=lng)
        try:
            return await self._resolve(request)
        except ResourceExhaustedError:
            return UNKNOWN_ADDRESS

    async def search(self, query: str) -> list[PlaceCandidate]:
        request = SearchRequest(query=query)
        try:
            return await self._resolve(request)
        except ResourceExhaustedError:
            return []

    async def locate_ip(self, address: str | None) -> IPLocation:
        """Locate a client address, short-circuiting to the default for non-public ones."""
        if address is None:
            log.info("No client address resolved, using default location")
            return DEFAULT_LOCATION

        normalized = normalize(address)
        classification = classify(normalized)
        if classification is not AddressClassification.PUBLIC:
            log.info(f"Client address not locatable address={normalized} classification={classification.value}")
            return DEFAULT_LOCATION

        request = IPLocateRequest(address=normalized)
        try:
            return await self._resolve(request)
        except ResourceExhaustedError:
            return DEFAULT_LOCATION

    async def _resolve(self, request: ProviderRequest) -> Any:
        """Run the request's capability chain behind the shared cache; exhaustion propagates."""
        chain = self._chains[request.capability]
        return await self._cache.get_or_fetch(request.cache_key(), lambda: chain.run(request))
