from datetime import datetime, timezone

import pytest

from weather_gateway.errors import UpstreamMalformedError
from weather_gateway.weather.shaper import (
    DEFAULT_KEYPOINT,
    local_time_for_longitude,
    round_half_up,
    safe_get,
    shape_weather,
    synthetic_weather,
)
from tests.common import caiyun_payload

# A Monday, 04:30 UTC; 12:30 local at 120°E.
FIXED_NOW = datetime(2024, 5, 20, 4, 30, tzinfo=timezone.utc)


def test_shape_current_conditions_unit_conversions() -> None:
    report = shape_weather(caiyun_payload(), 120.15, FIXED_NOW)
    current = report.current

    assert current.temperature == 27
    assert current.apparent_temperature == 29
    assert current.humidity == 87
    assert current.wind_speed == 28
    assert current.wind_direction == 135
    assert current.pressure == 1007
    assert current.visibility == pytest.approx(5.26)
    assert current.weather_info.desc == "中雨"
    assert current.air_quality["aqi"]["chn"] == 14
    assert report.forecast_keypoint == "未来两小时不会下雨，放心出门吧"
    assert report.synthetic is False


def test_hourly_forecast_uses_local_hours_and_caps_at_24() -> None:
    report = shape_weather(caiyun_payload(), 120.15, FIXED_NOW)

    assert len(report.hourly) == 24
    assert report.hourly[0].time == 12
    assert report.hourly[12].time == 0
    assert report.hourly[23].time == 11
    assert report.hourly[0].temperature == 27
    assert report.hourly[1].temperature == 26
    assert report.hourly[3].skycon == "CLOUDY"
    assert report.hourly[3].weather_info.desc == "阴"


def test_daily_forecast_labels_and_life_indices() -> None:
    report = shape_weather(caiyun_payload(), 120.15, FIXED_NOW)

    assert len(report.daily) == 3
    assert [day.date for day in report.daily] == ["5月20日", "5月21日", "5月22日"]
    assert [day.weekday for day in report.daily] == ["周一", "周二", "周三"]
    assert [day.relative_day for day in report.daily] == ["今天", "明天", "后天"]
    assert report.daily[0].max_temp == 29
    assert report.daily[0].min_temp == 24

    today = report.daily[0].life_index
    assert set(today) == {"ultraviolet", "carWashing", "dressing", "comfort", "coldRisk"}
    assert today["ultraviolet"].index == "1"
    assert today["ultraviolet"].desc == "最弱"
    assert today["carWashing"].desc == "暂无数据"
    assert report.daily[1].life_index["comfort"].desc == "暂无数据"


def test_daily_relative_day_serializes_with_camel_case_alias() -> None:
    report = shape_weather(caiyun_payload(), 120.15, FIXED_NOW)

    dumped = report.model_dump(by_alias=True)

    assert dumped["daily"][0]["relativeDay"] == "今天"


def test_western_longitude_shifts_to_previous_local_day() -> None:
    report = shape_weather(caiyun_payload(), -75.0, FIXED_NOW)

    assert report.hourly[0].time == 23
    assert report.daily[0].date == "5月19日"
    assert report.daily[0].weekday == "周日"


def test_missing_sections_fall_back_to_defaults() -> None:
    raw = {"status": "ok", "result": {"realtime": {"temperature": "n/a"}}}

    report = shape_weather(raw, 116.4, FIXED_NOW)

    assert report.current.temperature == 0
    assert report.current.pressure == 1013
    assert report.current.skycon == "CLEAR_DAY"
    assert report.hourly == []
    assert report.daily == []
    assert report.forecast_keypoint == DEFAULT_KEYPOINT


def test_unusable_scalars_are_blanked() -> None:
    payload = caiyun_payload()
    payload["result"]["realtime"]["visibility"] = float("nan")
    payload["result"]["daily"]["life_index"]["ultraviolet"][0] = {"index": {"level": 1}, "desc": "最弱"}

    report = shape_weather(payload, 120.15, FIXED_NOW)

    assert report.current.visibility is None
    assert report.daily[0].life_index["ultraviolet"].index == ""
    assert report.daily[0].life_index["ultraviolet"].desc == "最弱"


def test_unknown_skycon_code_maps_to_unknown_info() -> None:
    payload = caiyun_payload()
    payload["result"]["realtime"]["skycon"] = "VOLCANIC_ASH"

    report = shape_weather(payload, 120.15, FIXED_NOW)

    assert report.current.skycon == "VOLCANIC_ASH"
    assert report.current.weather_info.desc == "未知"


@pytest.mark.parametrize("raw", [{}, {"result": None}, {"result": {"hourly": {}}}])
def test_payload_without_realtime_is_rejected(raw: dict) -> None:
    with pytest.raises(UpstreamMalformedError):
        shape_weather(raw, 120.15, FIXED_NOW)


@pytest.mark.parametrize(
    "value, expected",
    [(2.5, 3), (2.4, 2), (-2.5, -2), (-2.6, -3), ("7.5", 8), (None, 0), ("abc", 0), (float("nan"), 0)],
)
def test_round_half_up(value, expected: int) -> None:
    assert round_half_up(value) == expected


def test_safe_get_walks_dicts_and_lists() -> None:
    data = {"skycon": [{"value": "CLOUDY"}]}

    assert safe_get(data, "skycon.0.value") == "CLOUDY"
    assert safe_get(data, "skycon.5.value", "fallback") == "fallback"
    assert safe_get(data, "missing.path") is None


def test_local_time_for_longitude() -> None:
    assert local_time_for_longitude(120.15, FIXED_NOW).hour == 12
    assert local_time_for_longitude(0.0, FIXED_NOW).hour == 4
    assert local_time_for_longitude(-75.0, FIXED_NOW).hour == 23


def test_synthetic_weather_payload() -> None:
    report = synthetic_weather(FIXED_NOW)

    assert report.synthetic is True
    assert report.current.temperature == 26
    assert report.current.apparent_temperature == 30
    assert report.current.humidity == 87
    assert report.current.wind_speed == 28
    assert report.current.pressure == 1007
    assert report.current.skycon == "MODERATE_RAIN"
    assert len(report.hourly) == 24
    assert report.hourly[0].time == 12
    assert all(hour.temperature == 26 for hour in report.hourly)
    assert len(report.daily) == 1
    assert report.daily[0].relative_day == "今天"
    assert report.daily[0].date == "5月20日"
    assert report.forecast_keypoint == "今天有中雨，注意携带雨具。"
