from __future__ import annotations

from enum import Enum


class ConditionCategory(str, Enum):
    CLEAR = "clear"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    FOG = "fog"
    DRIZZLE = "drizzle"
    RAIN = "rain"
    FREEZING_RAIN = "freezing_rain"
    SNOW = "snow"
    THUNDERSTORM = "thunderstorm"
    UNKNOWN = "unknown"


WMO_CODES: dict[int, tuple[ConditionCategory, str]] = {
    0: (ConditionCategory.CLEAR, "Clear sky"),
    1: (ConditionCategory.CLEAR, "Mainly clear"),
    2: (ConditionCategory.PARTLY_CLOUDY, "Partly cloudy"),
    3: (ConditionCategory.CLOUDY, "Overcast"),
    45: (ConditionCategory.FOG, "Fog"),
    48: (ConditionCategory.FOG, "Depositing rime fog"),
    51: (ConditionCategory.DRIZZLE, "Light drizzle"),
    53: (ConditionCategory.DRIZZLE, "Moderate drizzle"),
    55: (ConditionCategory.DRIZZLE, "Dense drizzle"),
    56: (ConditionCategory.FREEZING_RAIN, "Light freezing drizzle"),
    57: (ConditionCategory.FREEZING_RAIN, "Dense freezing drizzle"),
    61: (ConditionCategory.RAIN, "Slight rain"),
    63: (ConditionCategory.RAIN, "Moderate rain"),
    65: (ConditionCategory.RAIN, "Heavy rain"),
    66: (ConditionCategory.FREEZING_RAIN, "Light freezing rain"),
    67: (ConditionCategory.FREEZING_RAIN, "Heavy freezing rain"),
    71: (ConditionCategory.SNOW, "Slight snowfall"),
    73: (ConditionCategory.SNOW, "Moderate snowfall"),
    75: (ConditionCategory.SNOW, "Heavy snowfall"),
    77: (ConditionCategory.SNOW, "Snow grains"),
    80: (ConditionCategory.RAIN, "Slight rain showers"),
    81: (ConditionCategory.RAIN, "Moderate rain showers"),
    82: (ConditionCategory.RAIN, "Violent rain showers"),
    85: (ConditionCategory.SNOW, "Slight snow showers"),
    86: (ConditionCategory.SNOW, "Heavy snow showers"),
    95: (ConditionCategory.THUNDERSTORM, "Thunderstorm"),
    96: (ConditionCategory.THUNDERSTORM, "Thunderstorm with slight hail"),
    99: (ConditionCategory.THUNDERSTORM, "Thunderstorm with heavy hail"),
}

# Condition strings used by providers that report a named condition instead of a WMO code.
LABEL_CATEGORIES: dict[str, ConditionCategory] = {
    "sunny": ConditionCategory.CLEAR,
    "clear": ConditionCategory.CLEAR,
    "partly_cloudy": ConditionCategory.PARTLY_CLOUDY,
    "cloudy": ConditionCategory.CLOUDY,
    "overcast": ConditionCategory.CLOUDY,
    "foggy": ConditionCategory.FOG,
    "fog": ConditionCategory.FOG,
    "mist": ConditionCategory.FOG,
    "drizzle": ConditionCategory.DRIZZLE,
    "light_rain": ConditionCategory.RAIN,
    "rain": ConditionCategory.RAIN,
    "heavy_rain": ConditionCategory.RAIN,
    "showers": ConditionCategory.RAIN,
    "freezing_rain": ConditionCategory.FREEZING_RAIN,
    "sleet": ConditionCategory.FREEZING_RAIN,
    "snow": ConditionCategory.SNOW,
    "light_snow": ConditionCategory.SNOW,
    "heavy_snow": ConditionCategory.SNOW,
    "thunderstorm": ConditionCategory.THUNDERSTORM,
    "storm": ConditionCategory.THUNDERSTORM,
}

_RAIN_CATEGORIES = frozenset(
    {ConditionCategory.DRIZZLE, ConditionCategory.RAIN, ConditionCategory.FREEZING_RAIN}
)


def category_for_wmo_code(code: int | None) -> ConditionCategory:
    if code is None:
        return ConditionCategory.UNKNOWN
    entry = WMO_CODES.get(code)
    return entry[0] if entry is not None else ConditionCategory.UNKNOWN


def label_for_wmo_code(code: int | None) -> str:
    if code is None:
        return "Unknown"
    entry = WMO_CODES.get(code)
    return entry[1] if entry is not None else f"Code {code}"


def category_for_label(label: str | None) -> ConditionCategory:
    """Normalize a provider condition string such as ``"light_rain"`` or ``"Partly Cloudy"``."""
    if not label:
        return ConditionCategory.UNKNOWN
    key = "_".join(label.strip().lower().replace("-", " ").split())
    category = LABEL_CATEGORIES.get(key)
    if category is not None:
        return category

    # Free-text descriptions ("Light rain showers") fall back to keyword matching.
    if "thunder" in key:
        return ConditionCategory.THUNDERSTORM
    if "snow" in key:
        return ConditionCategory.SNOW
    if "freezing" in key or "sleet" in key:
        return ConditionCategory.FREEZING_RAIN
    if "drizzle" in key:
        return ConditionCategory.DRIZZLE
    if "rain" in key or "shower" in key:
        return ConditionCategory.RAIN
    if "fog" in key or "mist" in key:
        return ConditionCategory.FOG
    return ConditionCategory.UNKNOWN


def is_rain(category: ConditionCategory) -> bool:
    return category in _RAIN_CATEGORIES


def is_snow(category: ConditionCategory) -> bool:
    return category is ConditionCategory.SNOW


def is_thunderstorm(category: ConditionCategory) -> bool:
    return category is ConditionCategory.THUNDERSTORM


def is_adverse(category: ConditionCategory) -> bool:
    return is_rain(category) or is_snow(category) or is_thunderstorm(category)
