"""Transform a raw Caiyun payload into the WeatherReport contract.

Provider fields are read leniently: a missing or non-numeric value falls
back to a default rather than failing the whole response. Only a payload
without ``result.realtime`` is rejected outright.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any

from weather_gateway.errors import UpstreamMalformedError
from weather_gateway.models.weather import (
    CurrentWeather,
    DailyForecast,
    HourlyForecast,
    LifeIndexEntry,
    WeatherReport,
)
from weather_gateway.weather.skycon import DEFAULT_SKYCON, skycon_info

HOURLY_STEPS = 24
DAILY_STEPS = 3
STANDARD_PRESSURE_PA = 101325

RELATIVE_DAYS = ("今天", "明天", "后天")
WEEKDAYS = ("周一", "周二", "周三", "周四", "周五", "周六", "周日")
LIFE_INDEX_KEYS = ("ultraviolet", "carWashing", "dressing", "comfort", "coldRisk")
MISSING_LIFE_INDEX = LifeIndexEntry(index="", desc="暂无数据")
DEFAULT_KEYPOINT = "暂无预报信息"


def safe_get(data: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted path through nested dicts and lists, e.g. ``"skycon.0.value"``."""
    current = data
    for key in path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return default
    return current


def round_half_up(value: Any, default: int = 0) -> int:
    """Round like the provider's own clients do: halves go up, also for negatives."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return math.floor(number + 0.5)


def _number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return default if math.isnan(number) else number


def _finite_or_none(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if math.isfinite(value) else None


def local_time_for_longitude(longitude: float, now: datetime | None = None) -> datetime:
    """Approximate local time at ``longitude``: one hour per 15 degrees east of UTC."""
    utc_now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return utc_now + timedelta(hours=round_half_up(longitude / 15))


def shape_weather(raw: dict[str, Any], longitude: float, now: datetime | None = None) -> WeatherReport:
    result = raw.get("result")
    if not isinstance(result, dict):
        raise UpstreamMalformedError("weather payload is missing the result section")
    realtime = result.get("realtime")
    if not isinstance(realtime, dict):
        raise UpstreamMalformedError("weather payload is missing realtime data")

    local_now = local_time_for_longitude(longitude, now)
    keypoint = result.get("forecast_keypoint")

    return WeatherReport(
        current=_shape_current(realtime),
        hourly=_shape_hourly(result.get("hourly"), local_now),
        daily=_shape_daily(result.get("daily"), local_now),
        forecast_keypoint=keypoint if isinstance(keypoint, str) and keypoint else DEFAULT_KEYPOINT,
    )


def _shape_current(realtime: dict[str, Any]) -> CurrentWeather:
    skycon = safe_get(realtime, "skycon")
    skycon = skycon if isinstance(skycon, str) else DEFAULT_SKYCON
    visibility = safe_get(realtime, "visibility", 0)
    air_quality = safe_get(realtime, "air_quality", {})

    return CurrentWeather(
        temperature=round_half_up(realtime.get("temperature")),
        apparent_temperature=round_half_up(realtime.get("apparent_temperature")),
        humidity=round_half_up(_number(safe_get(realtime, "humidity"), 0) * 100),
        # m/s to km/h
        wind_speed=round_half_up(_number(safe_get(realtime, "wind.speed"), 0) * 3.6),
        wind_direction=round_half_up(safe_get(realtime, "wind.direction")),
        # Pa to hPa
        pressure=round_half_up(_number(safe_get(realtime, "pressure"), STANDARD_PRESSURE_PA) / 100),
        visibility=_finite_or_none(visibility),
        skycon=skycon,
        weather_info=skycon_info(skycon),
        air_quality=air_quality if isinstance(air_quality, dict) else {},
    )


def _shape_hourly(hourly: Any, local_now: datetime) -> list[HourlyForecast]:
    temperatures = safe_get(hourly, "temperature")
    if not isinstance(temperatures, list):
        return []

    forecast = []
    for index, temperature in enumerate(temperatures[:HOURLY_STEPS]):
        skycon = _skycon_at(hourly, index)
        forecast.append(
            HourlyForecast(
                time=(local_now.hour + index) % 24,
                temperature=round_half_up(safe_get(temperature, "value")),
                skycon=skycon,
                weather_info=skycon_info(skycon),
            )
        )
    return forecast


def _shape_daily(daily: Any, local_now: datetime) -> list[DailyForecast]:
    temperatures = safe_get(daily, "temperature")
    if not isinstance(temperatures, list):
        return []

    forecast = []
    for index, temperature in enumerate(temperatures[:DAILY_STEPS]):
        date = local_now.date() + timedelta(days=index)
        skycon = _skycon_at(daily, index)
        weekday = WEEKDAYS[date.weekday()]
        forecast.append(
            DailyForecast(
                date=f"{date.month}月{date.day}日",
                weekday=weekday,
                relative_day=RELATIVE_DAYS[index] if index < len(RELATIVE_DAYS) else weekday,
                max_temp=round_half_up(safe_get(temperature, "max")),
                min_temp=round_half_up(safe_get(temperature, "min")),
                skycon=skycon,
                weather_info=skycon_info(skycon),
                life_index={key: _life_index(daily, key, index) for key in LIFE_INDEX_KEYS},
            )
        )
    return forecast


def _skycon_at(section: Any, index: int) -> str:
    skycon = safe_get(section, f"skycon.{index}.value")
    return skycon if isinstance(skycon, str) and skycon else DEFAULT_SKYCON


def _life_index(daily: Any, key: str, index: int) -> LifeIndexEntry:
    entry = safe_get(daily, f"life_index.{key}.{index}")
    if not isinstance(entry, dict):
        return MISSING_LIFE_INDEX
    value = entry.get("index")
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        value = ""
    elif isinstance(value, float) and not math.isfinite(value):
        value = ""
    return LifeIndexEntry(index=value, desc=str(entry.get("desc") or ""))


def synthetic_weather(now: datetime | None = None, longitude: float = 116.4074) -> WeatherReport:
    """Fixed moderate-rain demo payload served when no weather token is configured."""
    local_now = local_time_for_longitude(longitude, now)
    rain = skycon_info("MODERATE_RAIN")
    today = local_now.date()

    return WeatherReport(
        current=CurrentWeather(
            temperature=26,
            apparent_temperature=30,
            humidity=87,
            wind_speed=28,
            wind_direction=0,
            pressure=1007,
            visibility=5.26,
            skycon="MODERATE_RAIN",
            weather_info=rain,
            air_quality={"aqi": {"chn": 14}, "description": {"chn": "优"}, "pm25": 9, "pm10": 14, "o3": 19},
        ),
        hourly=[
            HourlyForecast(time=(local_now.hour + i) % 24, temperature=26, skycon="MODERATE_RAIN", weather_info=rain)
            for i in range(HOURLY_STEPS)
        ],
        daily=[
            DailyForecast(
                date=f"{today.month}月{today.day}日",
                weekday=WEEKDAYS[today.weekday()],
                relative_day=RELATIVE_DAYS[0],
                max_temp=29,
                min_temp=24,
                skycon="MODERATE_RAIN",
                weather_info=rain,
                life_index={
                    "ultraviolet": LifeIndexEntry(index="弱", desc="辐射较弱，涂擦SPF12-15、PA+护肤品。"),
                    "carWashing": LifeIndexEntry(index="不宜", desc="有雨，雨水和泥水会弄脏您的爱车。"),
                    "dressing": LifeIndexEntry(index="舒适", desc="建议穿长袖衬衫单裤等服装。"),
                    "comfort": LifeIndexEntry(index="较舒适", desc="白天有雨，会感到有点儿凉，但大部分人完全可以接受。"),
                    "coldRisk": LifeIndexEntry(index="少发", desc="无明显降温，感冒机率较低。"),
                },
            )
        ],
        forecast_keypoint="今天有中雨，注意携带雨具。",
        synthetic=True,
    )
