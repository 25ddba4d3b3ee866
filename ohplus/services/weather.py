"""Weather lookups for the logistics dashboard.

AccuWeather serves the current conditions of a fixed set of Philippine
locations, Open-Meteo serves region forecasts. Both results are kept in a
small in-process cache for ``CACHE_SECONDS``.
"""

import logging
import os
import threading
import time
from datetime import datetime, timedelta, timezone

import httpx

from ohplus.core.errors import IntegrationError, InvalidInputError, NotFoundError

logger = logging.getLogger("ohplus.weather")

CACHE_SECONDS = 30 * 60
ACCUWEATHER_URL = "http://dataservice.accuweather.com"
OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_LOCATION_KEY = "264885"
DEFAULT_REGION = "NCR"

PHILIPPINES_LOCATIONS = (
    {"key": "264885", "name": "Manila", "region": "NCR"},
    {"key": "264886", "name": "Quezon City", "region": "NCR"},
    {"key": "264308", "name": "Cebu City", "region": "Central Visayas"},
    {"key": "264312", "name": "Davao City", "region": "Davao Region"},
    {"key": "264870", "name": "Iloilo City", "region": "Western Visayas"},
    {"key": "264873", "name": "Bacolod", "region": "Western Visayas"},
    {"key": "264874", "name": "Cagayan de Oro", "region": "Northern Mindanao"},
    {"key": "264875", "name": "Zamboanga City", "region": "Zamboanga Peninsula"},
    {"key": "264876", "name": "Baguio", "region": "Cordillera Administrative Region"},
    {"key": "264877", "name": "Tacloban", "region": "Eastern Visayas"},
)

ACCUWEATHER_ICONS = {
    1: "sun",
    2: "cloud-sun",
    3: "cloud-sun",
    4: "cloud",
    5: "cloud",
    6: "cloud",
    7: "cloud",
    8: "cloud",
    11: "cloud-fog",
    12: "cloud-rain",
    13: "cloud-rain",
    14: "cloud-rain",
    15: "cloud-lightning",
    16: "cloud-lightning",
    17: "cloud-lightning",
    18: "cloud-rain",
    19: "cloud-snow",
    20: "cloud-snow",
    21: "cloud-snow",
    22: "cloud-snow",
    23: "cloud-snow",
    24: "cloud-snow",
    25: "cloud-snow",
    26: "cloud-rain",
    29: "cloud-rain",
    30: "sun",
    31: "sun",
    32: "wind",
    33: "sun",
    34: "cloud-sun",
    35: "cloud-sun",
    36: "cloud",
    37: "cloud",
    38: "cloud",
    39: "cloud-rain",
    40: "cloud-rain",
    41: "cloud-lightning",
    42: "cloud-lightning",
    43: "cloud-snow",
    44: "cloud-snow",
}

PAGASA_REGIONS = {
    "NCR": "Metro Manila",
    "REGION_I": "Ilocos Region",
    "REGION_II": "Cagayan Valley",
    "REGION_III": "Central Luzon",
    "REGION_IV_A": "CALABARZON",
    "REGION_IV_B": "MIMAROPA",
    "REGION_V": "Bicol Region",
    "REGION_VI": "Western Visayas",
    "REGION_VII": "Central Visayas",
    "REGION_VIII": "Eastern Visayas",
    "REGION_IX": "Zamboanga Peninsula",
    "REGION_X": "Northern Mindanao",
    "REGION_XI": "Davao Region",
    "REGION_XII": "SOCCSKSARGEN",
    "REGION_XIII": "Caraga",
    "CAR": "Cordillera Administrative Region",
    "BARMM": "Bangsamoro Autonomous Region in Muslim Mindanao",
}

# Regional centres (lat, lon).
REGION_COORDINATES = {
    "NCR": (14.5995, 120.9842),
    "REGION_I": (16.6159, 120.3209),
    "REGION_II": (17.6132, 121.7270),
    "REGION_III": (15.0794, 120.6200),
    "REGION_IV_A": (14.1008, 121.0794),
    "REGION_IV_B": (13.4119, 121.1803),
    "REGION_V": (13.1391, 123.7438),
    "REGION_VI": (10.7202, 122.5621),
    "REGION_VII": (10.3157, 123.8854),
    "REGION_VIII": (11.2543, 124.9617),
    "REGION_IX": (6.9214, 122.0790),
    "REGION_X": (8.4542, 124.6319),
    "REGION_XI": (7.1907, 125.4553),
    "REGION_XII": (6.1164, 125.1716),
    "REGION_XIII": (8.9475, 125.5406),
    "CAR": (16.4023, 120.5960),
    "BARMM": (7.2236, 124.2464),
}

WMO_CONDITIONS = {
    0: ("Clear sky", "sun"),
    1: ("Mainly clear", "cloud-sun"),
    2: ("Partly cloudy", "cloud-sun"),
    3: ("Overcast", "cloud"),
    45: ("Fog", "cloud-fog"),
    48: ("Depositing rime fog", "cloud-fog"),
    51: ("Light drizzle", "cloud-drizzle"),
    53: ("Moderate drizzle", "cloud-drizzle"),
    55: ("Dense drizzle", "cloud-drizzle"),
    61: ("Slight rain", "cloud-rain"),
    63: ("Moderate rain", "cloud-rain"),
    65: ("Heavy rain", "cloud-rain"),
    80: ("Slight rain showers", "cloud-rain"),
    81: ("Moderate rain showers", "cloud-rain"),
    82: ("Violent rain showers", "cloud-rain"),
    95: ("Thunderstorm", "cloud-lightning"),
    96: ("Thunderstorm with slight hail", "cloud-lightning"),
    99: ("Thunderstorm with heavy hail", "cloud-lightning"),
}

COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


class RateLimitedError(IntegrationError):
    pass


class _TimedCache:
    def __init__(self, ttl: int = CACHE_SECONDS) -> None:
        self.ttl = ttl
        self._entries: dict[str, tuple[float, dict]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, allow_stale: bool = False) -> dict | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if allow_stale or time.monotonic() - stored_at < self.ttl:
            return value
        return None

    def set(self, key: str, value: dict) -> None:
        with self._lock:
            self._entries[key] = (time.monotonic(), value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


accuweather_cache = _TimedCache()
forecast_cache = _TimedCache()


def _get_json(url: str, params: dict | None = None, timeout: float = 8.0):
    with httpx.Client(timeout=timeout) as client:
        response = client.get(url, params=params)
    if response.status_code == 429:
        raise RateLimitedError("Weather API rate limit exceeded")
    if response.status_code >= 400:
        raise IntegrationError(f"Weather API error: {response.status_code}")
    if "application/json" not in response.headers.get("content-type", ""):
        raise IntegrationError("Weather API returned invalid response format")
    return response.json()


def map_accuweather_icon(icon_number: int | None) -> str:
    return ACCUWEATHER_ICONS.get(icon_number, "cloud")


def get_location(location_key: str) -> dict:
    for location in PHILIPPINES_LOCATIONS:
        if location["key"] == location_key:
            return location
    raise InvalidInputError("Invalid location key")


def _weekday(value: str) -> str:
    try:
        return datetime.fromisoformat(value).strftime("%A")
    except ValueError:
        return ""


def fallback_weather(location: dict, reason: str | None = None) -> dict:
    now = datetime.now(timezone.utc)
    condition = "Weather data temporarily unavailable"
    if reason:
        condition = f"Weather service unavailable ({reason})"
    return {
        "location": location["name"],
        "locationKey": location["key"],
        "current": {
            "temperature": 28,
            "feelsLike": 32,
            "condition": condition,
            "icon": "cloud",
            "humidity": 75,
            "windSpeed": 10,
            "windDirection": "E",
            "uvIndex": 6,
            "visibility": 10,
            "cloudCover": 50,
            "isDayTime": True,
            "lastUpdated": now.isoformat(),
        },
        "forecast": [
            {
                "date": (now + timedelta(days=offset)).isoformat(),
                "dayOfWeek": (now + timedelta(days=offset)).strftime("%A"),
                "temperature": {"min": 24, "max": 32},
                "day": {"condition": "Partly Cloudy", "icon": "cloud-sun", "precipitation": False},
                "night": {"condition": "Clear", "icon": "moon", "precipitation": False},
            }
            for offset in range(5)
        ],
        "alerts": [],
        "lastUpdated": now.isoformat(),
        "isFallback": True,
    }


def _accuweather_alerts(api_key: str) -> list[dict]:
    try:
        alerts = _get_json(f"{ACCUWEATHER_URL}/alerts/v1/PH", {"apikey": api_key})
    except (IntegrationError, httpx.HTTPError) as exc:
        logger.warning("accuweather alerts unavailable: %s", exc)
        return []
    return [
        {
            "id": alert.get("AlertID"),
            "type": alert.get("Type"),
            "category": alert.get("Category"),
            "level": alert.get("Level"),
            "priority": alert.get("Priority"),
            "description": (alert.get("Description") or {}).get("Localized", ""),
            "area": (alert.get("Area") or {}).get("Name", ""),
        }
        for alert in alerts or []
    ]


def _day_part(part: dict) -> dict:
    return {
        "condition": part.get("IconPhrase", ""),
        "icon": map_accuweather_icon(part.get("Icon")),
        "precipitation": bool(part.get("HasPrecipitation")),
    }


def fetch_accuweather(location: dict, api_key: str) -> dict:
    key = location["key"]
    current = _get_json(
        f"{ACCUWEATHER_URL}/currentconditions/v1/{key}", {"apikey": api_key, "details": "true"}
    )[0]
    daily = _get_json(
        f"{ACCUWEATHER_URL}/forecasts/v1/daily/5day/{key}",
        {"apikey": api_key, "details": "true", "metric": "true"},
    )
    forecast = [
        {
            "date": day["Date"],
            "dayOfWeek": _weekday(day["Date"]),
            "temperature": {
                "min": round(day["Temperature"]["Minimum"]["Value"]),
                "max": round(day["Temperature"]["Maximum"]["Value"]),
            },
            "day": _day_part(day.get("Day") or {}),
            "night": _day_part(day.get("Night") or {}),
        }
        for day in daily.get("DailyForecasts", [])
    ]
    return {
        "location": location["name"],
        "locationKey": key,
        "current": {
            "temperature": round(current["Temperature"]["Metric"]["Value"]),
            "feelsLike": round(current["RealFeelTemperature"]["Metric"]["Value"]),
            "condition": current.get("WeatherText", ""),
            "icon": map_accuweather_icon(current.get("WeatherIcon")),
            "humidity": current.get("RelativeHumidity"),
            "windSpeed": round(current["Wind"]["Speed"]["Metric"]["Value"]),
            "windDirection": current["Wind"]["Direction"]["Localized"],
            "uvIndex": current.get("UVIndex"),
            "visibility": current["Visibility"]["Metric"]["Value"],
            "cloudCover": current.get("CloudCover"),
            "isDayTime": current.get("IsDayTime"),
            "lastUpdated": current.get("LocalObservationDateTime"),
        },
        "forecast": forecast,
        "alerts": _accuweather_alerts(api_key),
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
        "isFallback": False,
    }


def get_philippines_weather(location_key: str | None = None) -> dict:
    location = get_location(location_key or DEFAULT_LOCATION_KEY)
    cached = accuweather_cache.get(location["key"])
    if cached is not None:
        return cached
    api_key = os.getenv("ACCUWEATHER_API_KEY")
    if not api_key:
        logger.warning("ACCUWEATHER_API_KEY not configured, serving fallback weather")
        return fallback_weather(location)
    try:
        data = fetch_accuweather(location, api_key)
    except (IntegrationError, httpx.HTTPError, KeyError, IndexError, TypeError) as exc:
        logger.warning("accuweather failed location=%s: %s", location["key"], exc)
        return fallback_weather(location, str(exc))
    accuweather_cache.set(location["key"], data)
    return data


def map_weather_code(code: int | None) -> str:
    return WMO_CONDITIONS.get(code, ("Unknown", "cloud"))[1]


def map_weather_condition(code: int | None) -> str:
    return WMO_CONDITIONS.get(code, ("Unknown", "cloud"))[0]


def degrees_to_direction(degrees: float | None) -> str:
    if degrees is None:
        return "N"
    return COMPASS_POINTS[round(degrees / 45) % 8]


def get_regions() -> list[dict]:
    regions = []
    for region_id, name in PAGASA_REGIONS.items():
        lat, lon = REGION_COORDINATES[region_id]
        regions.append({"id": region_id, "name": name, "lat": lat, "lon": lon})
    return regions


def _fetch_open_meteo(region_id: str) -> dict:
    lat, lon = REGION_COORDINATES[region_id]
    current_data = _get_json(
        OPEN_METEO_URL,
        {
            "latitude": lat,
            "longitude": lon,
            "current": "temperature,relative_humidity_2m,apparent_temperature,is_day,"
            "precipitation,rain,weather_code,wind_speed_10m,wind_direction_10m",
            "hourly": "temperature_2m,relative_humidity_2m,precipitation_probability,"
            "weather_code,wind_speed_10m",
            "timezone": "auto",
        },
    )
    daily_data = _get_json(
        OPEN_METEO_URL,
        {
            "latitude": lat,
            "longitude": lon,
            "daily": "weather_code,temperature_2m_max,temperature_2m_min,"
            "precipitation_probability_max,wind_speed_10m_max",
            "timezone": "auto",
        },
    )
    daily = daily_data["daily"]
    forecast = []
    for index, day in enumerate(daily["time"]):
        code = daily["weather_code"][index]
        forecast.append(
            {
                "date": day,
                "dayOfWeek": _weekday(day)[:3],
                "temperature": {
                    "min": daily["temperature_2m_min"][index],
                    "max": daily["temperature_2m_max"][index],
                },
                "condition": map_weather_condition(code),
                "icon": map_weather_code(code),
                "rainChance": daily["precipitation_probability_max"][index] or 0,
                "humidity": 0,
                "windSpeed": daily["wind_speed_10m_max"][index],
            }
        )
    if not forecast:
        raise IntegrationError("Weather API returned no forecast")

    rain_chance = 0
    probabilities = ((current_data.get("hourly") or {}).get("precipitation_probability") or [])[:12]
    probabilities = [value for value in probabilities if value is not None]
    if probabilities:
        rain_chance = round(sum(probabilities) / len(probabilities))

    current = current_data["current"]
    return {
        "location": PAGASA_REGIONS[region_id],
        "date": datetime.now(timezone.utc).isoformat(),
        "temperature": {
            "current": current["temperature"],
            "min": forecast[0]["temperature"]["min"],
            "max": forecast[0]["temperature"]["max"],
            "feels_like": current.get("apparent_temperature"),
        },
        "humidity": current.get("relative_humidity_2m"),
        "windSpeed": current.get("wind_speed_10m"),
        "windDirection": degrees_to_direction(current.get("wind_direction_10m")),
        "condition": map_weather_condition(current.get("weather_code")),
        "icon": map_weather_code(current.get("weather_code")),
        "rainChance": rain_chance,
        "alerts": [],
        "forecast": forecast[:7],
        "source": "Open-Meteo",
    }


def get_region_forecast(region_id: str | None = None) -> dict:
    region_id = normalize_region(region_id or DEFAULT_REGION)
    cached = forecast_cache.get(region_id)
    if cached is not None:
        return cached
    try:
        data = _fetch_open_meteo(region_id)
    except RateLimitedError:
        stale = forecast_cache.get(region_id, allow_stale=True)
        if stale is not None:
            logger.warning("open-meteo rate limited, serving stale forecast region=%s", region_id)
            return {**stale, "warning": "Using cached data due to rate limiting"}
        raise
    except (httpx.HTTPError, KeyError, IndexError, TypeError) as exc:
        logger.warning("open-meteo failed region=%s: %s", region_id, exc)
        raise IntegrationError("Failed to fetch weather data") from exc
    forecast_cache.set(region_id, data)
    return data


def normalize_region(region: str) -> str:
    """Accept a region id (``REGION_VII``) or its PAGASA name (``Central Visayas``)."""
    candidate = region.strip()
    upper = candidate.upper().replace(" ", "_").replace("-", "_")
    if upper in PAGASA_REGIONS:
        return upper
    for region_id, name in PAGASA_REGIONS.items():
        if name.lower() == candidate.lower():
            return region_id
    raise NotFoundError("Region not found")


def icon_from_condition(condition: str | None) -> str:
    if not condition:
        return "cloud"
    lowered = condition.lower()
    if "rain" in lowered or "shower" in lowered:
        return "cloud-rain"
    if "thunder" in lowered or "storm" in lowered:
        return "cloud-lightning"
    if "cloud" in lowered:
        return "cloud-sun" if "partly" in lowered else "cloud"
    if "clear" in lowered or "sunny" in lowered:
        return "sun"
    return "cloud"


def get_pagasa_forecast(region: str) -> dict:
    region_id = normalize_region(region)
    forecast = get_region_forecast(region_id)
    return {
        **forecast,
        "location": PAGASA_REGIONS[region_id],
        "icon": icon_from_condition(forecast.get("condition")),
        "source": "PAGASA (via Open-Meteo)",
    }
