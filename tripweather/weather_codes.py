"""WMO weather interpretation codes as reported by Open-Meteo."""
from __future__ import annotations

from typing import Optional

WEATHER_DESCRIPTIONS = {
    0: "Clear sky", 1: "Mainly clear", 2: "Partly cloudy", 3: "Overcast",
    45: "Fog", 48: "Freezing fog",
    51: "Light drizzle", 53: "Drizzle", 55: "Heavy drizzle",
    56: "Freezing drizzle", 57: "Heavy freezing drizzle",
    61: "Light rain", 63: "Rain", 65: "Heavy rain",
    66: "Freezing rain", 67: "Heavy freezing rain",
    71: "Light snow", 73: "Snow", 75: "Heavy snow", 77: "Snow grains",
    80: "Rain showers", 81: "Moderate showers", 82: "Violent showers",
    85: "Light snow showers", 86: "Heavy snow showers",
    95: "Thunderstorm", 96: "Thunderstorm with hail", 99: "Severe thunderstorm",
}

PRECIP_CODES = range(51, 100)
SNOW_CODES = (range(71, 78), range(85, 87))
SEVERE_MIN_CODE = 95


def describe(code: Optional[int]) -> str:
    if code is None:
        return "Unknown"
    return WEATHER_DESCRIPTIONS.get(code, "Unknown")


def is_precip_code(code: Optional[int]) -> bool:
    return code is not None and code in PRECIP_CODES


def is_snow_code(code: Optional[int]) -> bool:
    return code is not None and any(code in r for r in SNOW_CODES)


def is_severe_code(code: Optional[int]) -> bool:
    """Thunderstorms, with or without hail."""
    return code is not None and code >= SEVERE_MIN_CODE
