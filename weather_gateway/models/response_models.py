from pydantic import BaseModel

from weather_gateway.models.common import PlaceCandidate


class CacheStats(BaseModel):
    entries: int
    in_flight: int
    hits: int
    misses: int
    coalesced: int


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str
    weather_provider_configured: bool
    search_provider_configured: bool
    cache: CacheStats


class AddressResponse(BaseModel):
    """Response model for reverse geocoding."""

    address: str


class SearchResponse(BaseModel):
    """Response model for place search; an empty list means nothing matched."""

    results: list[PlaceCandidate]


class LocationResponse(BaseModel):
    """Response model for IP-based location."""

    lat: float
    lng: float
    address: str


class ErrorResponse(BaseModel):
    """Uniform error body for every endpoint."""

    error: str
