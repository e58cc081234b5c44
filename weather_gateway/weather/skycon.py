from weather_gateway.models.weather import SkyconInfo

DEFAULT_SKYCON = "CLEAR_DAY"

SKYCON_MAP: dict[str, SkyconInfo] = {
    "CLEAR_DAY": SkyconInfo(icon="☀️", desc="晴"),
    "CLEAR_NIGHT": SkyconInfo(icon="🌙", desc="晴（夜间）"),
    "PARTLY_CLOUDY_DAY": SkyconInfo(icon="⛅", desc="多云"),
    "PARTLY_CLOUDY_NIGHT": SkyconInfo(icon="☁️", desc="多云（夜间）"),
    "CLOUDY": SkyconInfo(icon="☁️", desc="阴"),
    "LIGHT_HAZE": SkyconInfo(icon="🌫️", desc="轻度霾"),
    "MODERATE_HAZE": SkyconInfo(icon="🌫️", desc="中度霾"),
    "HEAVY_HAZE": SkyconInfo(icon="🌫️", desc="重度霾"),
    "LIGHT_RAIN": SkyconInfo(icon="🌦️", desc="小雨"),
    "MODERATE_RAIN": SkyconInfo(icon="🌧️", desc="中雨"),
    "HEAVY_RAIN": SkyconInfo(icon="⛈️", desc="大雨"),
    "STORM_RAIN": SkyconInfo(icon="⛈️", desc="暴雨"),
    "FOG": SkyconInfo(icon="🌫️", desc="雾"),
    "LIGHT_SNOW": SkyconInfo(icon="🌨️", desc="小雪"),
    "MODERATE_SNOW": SkyconInfo(icon="❄️", desc="中雪"),
    "HEAVY_SNOW": SkyconInfo(icon="❄️", desc="大雪"),
    "STORM_SNOW": SkyconInfo(icon="❄️", desc="暴雪"),
    "HAIL": SkyconInfo(icon="🌨️", desc="冰雹"),
    "SLEET": SkyconInfo(icon="🌨️", desc="雨夹雪"),
    "DUST": SkyconInfo(icon="🌪️", desc="浮尘"),
    "SAND": SkyconInfo(icon="🌪️", desc="沙尘"),
    "WIND": SkyconInfo(icon="💨", desc="大风"),
}

UNKNOWN_SKYCON = SkyconInfo(icon="🌤️", desc="未知")


def skycon_info(code: str) -> SkyconInfo:
    return SKYCON_MAP.get(code, UNKNOWN_SKYCON)
