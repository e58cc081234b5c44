import os

from pydantic import BaseModel, Field, field_validator


def _env(name: str) -> str | None:
    """Read an environment variable, treating blank values as unset."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


class Settings(BaseModel):
    """Runtime configuration, populated from environment variables.

    Provider credentials are optional: without a Caiyun token the weather
    endpoint serves a synthetic payload, and without an AMap key the AMap
    stages are simply left out of the search and geocode chains.
    """

    caiyun_api_token: str | None = None
    amap_api_key: str | None = None
    host: str = "0.0.0.0"
    port: int = 8000
    provider_timeout_seconds: float = Field(default=3.0, gt=0)
    weather_timeout_seconds: float = Field(default=10.0, gt=0)
    nominatim_timeout_seconds: float = Field(default=5.0, gt=0)
    location_chain_timeout_seconds: float | None = Field(default=None, gt=0)
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_max_entries: int = Field(default=1000, ge=1)

    @field_validator("caiyun_api_token", "amap_api_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value_str = str(value).strip()
        return value_str or None


def load_settings() -> Settings:
    """Build Settings from the process environment.

    Only variables that are actually set are passed on, so the model defaults
    apply to everything else.
    """
    env_map = {
        "caiyun_api_token": "CAIYUN_API_TOKEN",
        "amap_api_key": "AMAP_API_KEY",
        "host": "HOST",
        "port": "PORT",
        "provider_timeout_seconds": "PROVIDER_TIMEOUT_SECONDS",
        "weather_timeout_seconds": "WEATHER_TIMEOUT_SECONDS",
        "nominatim_timeout_seconds": "NOMINATIM_TIMEOUT_SECONDS",
        "location_chain_timeout_seconds": "LOCATION_CHAIN_TIMEOUT_SECONDS",
        "cache_ttl_seconds": "CACHE_TTL_SECONDS",
        "cache_max_entries": "CACHE_MAX_ENTRIES",
    }
    values = {field: _env(var) for field, var in env_map.items()}
    return Settings(**{field: value for field, value in values.items() if value is not None})
