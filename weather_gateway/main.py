from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from weather_gateway.cache import RequestCache
from weather_gateway.clients.amap_client import AmapClient
from weather_gateway.clients.caiyun_client import CaiyunWeatherClient
from weather_gateway.clients.meituan_client import MeituanClient
from weather_gateway.clients.nominatim_client import NominatimClient
from weather_gateway.clients.photon_client import PhotonClient
from weather_gateway.config import Settings, load_settings
from weather_gateway.errors import ParameterMissingError, ResourceExhaustedError
from weather_gateway.exception_handlers import (
    UTF8JSONResponse,
    http_exception_handler,
    parameter_missing_exception_handler,
    pydantic_validation_exception_handler,
    request_validation_exception_handler,
    resource_exhausted_exception_handler,
    unhandled_exception_handler,
)
from weather_gateway.logger import logger
from weather_gateway.models.request_models import CoordinateQuery, SearchQuery
from weather_gateway.models.response_models import (
    AddressResponse,
    ErrorResponse,
    HealthResponse,
    LocationResponse,
    SearchResponse,
)
from weather_gateway.models.weather import WeatherReport
from weather_gateway.network.client_identity import resolve_client_address
from weather_gateway.services.location import LocationService
from weather_gateway.services.weather import WeatherService

router = APIRouter()

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
}


def build_services(app: FastAPI, settings: Settings) -> None:
    """Create the cache, provider clients and services owned by this app instance."""
    cache = RequestCache(ttl_seconds=settings.cache_ttl_seconds, max_entries=settings.cache_max_entries)

    amap = None
    if settings.amap_api_key:
        amap = AmapClient(settings.amap_api_key, timeout_seconds=settings.provider_timeout_seconds)

    caiyun = None
    if settings.caiyun_api_token:
        caiyun = CaiyunWeatherClient(settings.caiyun_api_token, timeout_seconds=settings.weather_timeout_seconds)

    app.state.settings = settings
    app.state.cache = cache
    app.state.location_service = LocationService(
        cache=cache,
        meituan=MeituanClient(timeout_seconds=settings.provider_timeout_seconds),
        amap=amap,
        photon=PhotonClient(timeout_seconds=settings.provider_timeout_seconds),
        nominatim=NominatimClient(timeout_seconds=settings.nominatim_timeout_seconds),
        timeout_seconds=settings.provider_timeout_seconds,
        nominatim_timeout_seconds=settings.nominatim_timeout_seconds,
        chain_timeout_seconds=settings.location_chain_timeout_seconds,
    )
    app.state.weather_service = WeatherService(
        cache=cache,
        client=caiyun,
        timeout_seconds=settings.weather_timeout_seconds,
    )
    logger.info(
        "Providers configured "
        f"weather={'caiyun' if caiyun else 'synthetic'} "
        f"geocode={app.state.location_service.geocode_chain.stage_names} "
        f"search={app.state.location_service.search_chain.stage_names}"
    )


def get_location_service(request: Request) -> LocationService:
    """Dependency to provide the app's LocationService."""
    return request.app.state.location_service


def get_weather_service(request: Request) -> WeatherService:
    """Dependency to provide the app's WeatherService."""
    return request.app.state.weather_service


def get_cache(request: Request) -> RequestCache:
    return request.app.state.cache


@router.get(
    "/health",
    tags=["health"],
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health(
    request: Request,
    cache: Annotated[RequestCache, Depends(get_cache)],
) -> HealthResponse:
    """Basic health check endpoint, with provider configuration and cache counters."""
    settings: Settings = request.app.state.settings
    return HealthResponse(
        status="ok",
        weather_provider_configured=settings.caiyun_api_token is not None,
        search_provider_configured=settings.amap_api_key is not None,
        cache=cache.stats(),
    )


@router.get(
    "/api/weather",
    response_model=WeatherReport,
    status_code=status.HTTP_200_OK,
    tags=["weather"],
    summary="Current conditions, 24-hour and 3-day forecast for a coordinate pair.",
    responses={**ERROR_RESPONSES, status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse}},
)
async def weather(
    request: Request,
    query: Annotated[CoordinateQuery, Depends()],
    weather_service: Annotated[WeatherService, Depends(get_weather_service)],
) -> WeatherReport:
    """Weather for `lat`/`lng`.

    Upstream failures are reported as 502; there is no silent default here,
    except for the synthetic payload served when no provider token is set.
    """
    logger.info(f"Weather request path={request.url.path} lat={query.lat} lng={query.lng}")
    return await weather_service.get_weather(query.lat, query.lng)


@router.get(
    "/api/location/ip",
    response_model=LocationResponse,
    status_code=status.HTTP_200_OK,
    tags=["location"],
    summary="Approximate location of the calling client.",
)
async def location_by_ip(
    request: Request,
    location_service: Annotated[LocationService, Depends(get_location_service)],
) -> LocationResponse:
    """Locate the caller from proxy headers or the connection address.

    Falls back to the default location when the caller has no public address
    or the IP-location provider fails.
    """
    connection_address = request.client.host if request.client else None
    client_address = resolve_client_address(request.headers, connection_address)
    logger.info(
        "Client IP location request "
        f"path={request.url.path} connection={connection_address} "
        f"x_forwarded_for={request.headers.get('x-forwarded-for')} resolved={client_address}"
    )
    location = await location_service.locate_ip(client_address)
    return LocationResponse(lat=location.lat, lng=location.lng, address=location.address)


@router.get(
    "/api/location/geocode",
    response_model=AddressResponse,
    status_code=status.HTTP_200_OK,
    tags=["location"],
    summary="Reverse-geocode a coordinate pair into an address.",
    responses=ERROR_RESPONSES,
)
async def location_geocode(
    request: Request,
    query: Annotated[CoordinateQuery, Depends()],
    location_service: Annotated[LocationService, Depends(get_location_service)],
) -> AddressResponse:
    logger.info(f"Geocode request path={request.url.path} lat={query.lat} lng={query.lng}")
    address = await location_service.reverse_geocode(query.lat, query.lng)
    return AddressResponse(address=address)


@router.get(
    "/api/location/search",
    response_model=SearchResponse,
    status_code=status.HTTP_200_OK,
    tags=["location"],
    summary="Search places by name.",
    responses=ERROR_RESPONSES,
)
async def location_search(
    request: Request,
    query: Annotated[SearchQuery, Depends()],
    location_service: Annotated[LocationService, Depends(get_location_service)],
) -> SearchResponse:
    """Search the local place table and, when configured, the external provider.

    Returns an empty list rather than an error when nothing matches.
    """
    keywords = query.q.strip()
    if not keywords:
        raise ParameterMissingError("Missing required parameter(s): q")
    logger.info(f"Place search request path={request.url.path} q={keywords}")
    results = await location_service.search(keywords)
    return SearchResponse(results=results)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory; each app owns its own cache and provider clients."""
    application = FastAPI(
        title="Weather Gateway",
        version="0.1.0",
        description="Weather, geocoding, place search and IP location aggregated from several providers.",
        default_response_class=UTF8JSONResponse,
    )
    build_services(application, settings or load_settings())

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register global exception handlers using the shared handlers module.
    application.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    application.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
    application.add_exception_handler(ParameterMissingError, parameter_missing_exception_handler)
    application.add_exception_handler(ResourceExhaustedError, resource_exhausted_exception_handler)
    application.add_exception_handler(StarletteHTTPException, http_exception_handler)
    application.add_exception_handler(Exception, unhandled_exception_handler)

    application.include_router(router)
    return application


app = create_app()
logger.info("Started Weather Gateway")
