# homelab_dash/services/weather.py
import ipaddress
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Request

from ..config import Settings, get_settings
from ..deps import get_http_client
from ..errors import UpstreamError, raise_for_upstream
from ..utils.fallback import fetch_with_fallback

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/weather", tags=["weather"])

OPEN_METEO_API = "https://api.open-meteo.com/v1/forecast"
IP_API = "http://ip-api.com/json"

# WMO weather interpretation codes -> (description, icon key)
WEATHER_CODES: Dict[int, tuple] = {
    0: ("Clear sky", "clear"),
    1: ("Mainly clear", "mostly-clear"),
    2: ("Partly cloudy", "partly-cloudy"),
    3: ("Overcast", "cloudy"),
    45: ("Fog", "fog"),
    48: ("Depositing rime fog", "fog"),
    51: ("Light drizzle", "rain"),
    53: ("Moderate drizzle", "rain"),
    55: ("Dense drizzle", "rain"),
    56: ("Light freezing drizzle", "sleet"),
    57: ("Dense freezing drizzle", "sleet"),
    61: ("Slight rain", "rain"),
    63: ("Moderate rain", "rain"),
    65: ("Heavy rain", "rain"),
    66: ("Light freezing rain", "sleet"),
    67: ("Heavy freezing rain", "sleet"),
    71: ("Slight snow", "snow"),
    73: ("Moderate snow", "snow"),
    75: ("Heavy snow", "snow"),
    77: ("Snow grains", "snow"),
    80: ("Slight rain showers", "showers"),
    81: ("Moderate rain showers", "showers"),
    82: ("Violent rain showers", "storm"),
    85: ("Slight snow showers", "sleet"),
    86: ("Heavy snow showers", "sleet"),
    95: ("Thunderstorm", "storm"),
    96: ("Thunderstorm with slight hail", "storm"),
    99: ("Thunderstorm with heavy hail", "storm"),
}
UNKNOWN_WEATHER = ("Unknown", "unknown")


def mock_weather(city: str) -> dict:
    return {
        "temperature": 22,
        "apparentTemperature": 21,
        "weatherCode": 1,
        "description": "Mainly clear",
        "icon": "mostly-clear",
        "humidity": 60,
        "windSpeed": 12,
        "isDay": True,
        "location": city,
    }


def client_ip(headers) -> Optional[str]:
    """Caller address from proxy headers: Cloudflare, then X-Forwarded-For, then X-Real-IP."""
    cf = headers.get("cf-connecting-ip")
    if cf:
        return cf.strip()
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        return first or None
    real = headers.get("x-real-ip")
    return real.strip() if real else None


def is_public_ip(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return not (addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved)


async def locate_ip(client: httpx.AsyncClient, ip: str, timeout: float) -> Optional[Dict[str, Any]]:
    """ip-api.com lookup; any failure means "use the default location"."""
    if not is_public_ip(ip):
        return None
    try:
        r = await client.get(
            f"{IP_API}/{ip}",
            params={"fields": "status,city,country,lat,lon,timezone"},
            timeout=timeout,
        )
        raise_for_upstream("ip-api", r)
        data = r.json()
    except (httpx.HTTPError, UpstreamError, ValueError) as e:
        logger.info("IP geolocation failed, using default location: %s", e)
        return None
    if data.get("status") != "success":
        return None
    return data


def weather_from_current(current: Dict[str, Any], city: str) -> dict:
    code = current.get("weather_code")
    description, icon = WEATHER_CODES.get(code, UNKNOWN_WEATHER)
    return {
        "temperature": round(current["temperature_2m"]),
        "apparentTemperature": round(current["apparent_temperature"]),
        "weatherCode": code,
        "description": description,
        "icon": icon,
        "humidity": current.get("relative_humidity_2m"),
        "windSpeed": round(current.get("wind_speed_10m") or 0),
        "isDay": current.get("is_day") == 1,
        "location": city,
    }


@router.get("")
async def get_weather(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    ip = client_ip(request.headers)
    location = await locate_ip(client, ip, settings.lookup_timeout) if ip else None
    if location:
        lat, lon = location["lat"], location["lon"]
        city = location.get("city") or settings.weather_default_city
        tz = location.get("timezone") or settings.weather_default_timezone
    else:
        lat, lon = settings.weather_default_lat, settings.weather_default_lon
        city, tz = settings.weather_default_city, settings.weather_default_timezone

    async def primary():
        r = await client.get(
            OPEN_METEO_API,
            params={
                "latitude": lat,
                "longitude": lon,
                "current": "temperature_2m,apparent_temperature,weather_code,"
                "relative_humidity_2m,wind_speed_10m,is_day",
                "timezone": tz,
            },
        )
        raise_for_upstream("Open-Meteo", r)
        return weather_from_current(r.json()["current"], city)

    result = await fetch_with_fallback(
        primary,
        lambda: mock_weather(city),
        source="open-meteo",
        error_message="Failed to fetch weather data",
    )
    return result.envelope(detectedIP=ip)
