from pydantic import BaseModel, Field


class CoordinateQuery(BaseModel):
    """Query parameters shared by /api/weather and /api/location/geocode.

    Both parameters are required; a missing or non-numeric value is rejected
    before the endpoint handler is invoked.
    """

    lat: float = Field(ge=-90, le=90, description="Latitude in decimal degrees.", examples=[39.9042])
    lng: float = Field(ge=-180, le=180, description="Longitude in decimal degrees.", examples=[116.4074])


class SearchQuery(BaseModel):
    """Query parameters for /api/location/search."""

    q: str = Field(
        description="Free-text place name or address.",
        examples=["杭州", "西湖"],
    )
