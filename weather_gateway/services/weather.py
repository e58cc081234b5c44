from collections.abc import Callable
from datetime import datetime, timezone

from weather_gateway.cache import RequestCache
from weather_gateway.clients.caiyun_client import CaiyunWeatherClient
from weather_gateway.logger import get_logger
from weather_gateway.models.common import Capability, WeatherRequest
from weather_gateway.models.weather import WeatherReport
from weather_gateway.providers.chain import ProviderChain, Stage
from weather_gateway.weather.shaper import shape_weather, synthetic_weather

log = get_logger("weather")

DEFAULT_WEATHER_TIMEOUT_SECONDS = 10.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherService:
    """Weather capability: a one-stage chain with no silent default.

    Without a provider client the synthetic demo payload is returned and never
    cached. With one, a real shaped report is cached, while an upstream
    failure propagates as ResourceExhaustedError so the caller learns that
    live data is unavailable.
    """

    def __init__(
        self,
        cache: RequestCache,
        client: CaiyunWeatherClient | None = None,
        timeout_seconds: float = DEFAULT_WEATHER_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._cache = cache
        self._clock = clock
        self.chain: ProviderChain | None = None
        if client is not None:
            self.chain = ProviderChain(
                Capability.weather.value,
                [Stage("caiyun.weather", lambda req: self._fetch_report(client, req), timeout_seconds)],
            )

    @property
    def configured(self) -> bool:
        return self.chain is not None

    async def get_weather(self, lat: float, lng: float) -> WeatherReport:
        if self.chain is None:
            log.info(f"No weather token configured, serving synthetic payload lat={lat} lng={lng}")
            return synthetic_weather(self._clock(), lng)

        request = WeatherRequest(lat=lat, lng=lng)
        chain = self.chain
        return await self._cache.get_or_fetch(request.cache_key(), lambda: chain.run(request))

    async def _fetch_report(self, client: CaiyunWeatherClient, request: WeatherRequest) -> WeatherReport:
        raw = await client.fetch_forecast(request.lat, request.lng)
        return shape_weather(raw, request.lng, self._clock())
