from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SkyconInfo(BaseModel):
    """Display icon and description for a provider skycon code."""

    icon: str
    desc: str


class LifeIndexEntry(BaseModel):
    index: str | int | float = ""
    desc: str = ""


class CurrentWeather(BaseModel):
    temperature: int
    apparent_temperature: int
    humidity: int
    wind_speed: int
    wind_direction: int
    pressure: int
    visibility: float | None = None
    skycon: str
    weather_info: SkyconInfo
    air_quality: dict[str, Any] = Field(default_factory=dict)


class HourlyForecast(BaseModel):
    time: int = Field(ge=0, le=23, description="Local hour of day at the requested longitude.")
    temperature: int
    skycon: str
    weather_info: SkyconInfo


class DailyForecast(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: str
    weekday: str
    relative_day: str = Field(alias="relativeDay")
    max_temp: int
    min_temp: int
    skycon: str
    weather_info: SkyconInfo
    life_index: dict[str, LifeIndexEntry]


class WeatherReport(BaseModel):
    """Normalized weather payload served by /api/weather.

    ``synthetic`` is true only for the built-in demo payload served when no
    weather provider token is configured.
    """

    current: CurrentWeather
    hourly: list[HourlyForecast]
    daily: list[DailyForecast]
    forecast_keypoint: str
    synthetic: bool = False
