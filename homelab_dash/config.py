# homelab_dash/config.py
import os
import logging
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()  # loads .env from project root

DEFAULT_TZ = "Australia/Sydney"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    timezone: str = DEFAULT_TZ
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    http_timeout: float = 10.0
    # geolocation and uptime lookups must not hold up the response
    lookup_timeout: float = 3.0

    dawarich_url: str = "http://localhost:3000"
    dawarich_api_key: Optional[str] = None

    blinko_url: str = "http://localhost:1111"
    blinko_api_token: Optional[str] = None
    rss_proxy_host: Optional[str] = None
    rss_proxy_port: int = 1200

    uptime_kuma_url: str = "http://localhost:3001"
    uptime_status_page: str = "homelab"

    jellyfin_url: str = "http://localhost:8096"
    jellyfin_api_key: Optional[str] = None

    qbit_url: str = "http://localhost:8080"
    qbit_username: Optional[str] = None
    qbit_password: Optional[str] = None

    beszel_url: str = "http://localhost:8090"
    beszel_email: Optional[str] = None
    beszel_password: Optional[str] = None

    pve_host: Optional[str] = None
    pve_node: str = "pve"
    pve_user: str = "root@pam"
    pve_password: Optional[str] = None
    pve_verify_ssl: bool = False

    b2_key_id: Optional[str] = None
    b2_app_key: Optional[str] = None
    b2_bucket: Optional[str] = None

    weather_default_lat: float = -33.8688
    weather_default_lon: float = 151.2093
    weather_default_city: str = "Sydney"
    weather_default_timezone: str = DEFAULT_TZ


def load_settings() -> Settings:
    """Build Settings from the process environment (and .env)."""
    origins = _env("CORS_ORIGINS", "*")
    return Settings(
        timezone=_env("TIMEZONE", DEFAULT_TZ),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        http_timeout=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
        lookup_timeout=_env_float("LOOKUP_TIMEOUT_SECONDS", 3.0),
        dawarich_url=_env("DAWARICH_URL", "http://localhost:3000").rstrip("/"),
        dawarich_api_key=_env("DAWARICH_API_KEY"),
        blinko_url=_env("BLINKO_URL", "http://localhost:1111").rstrip("/"),
        blinko_api_token=_env("BLINKO_API_TOKEN"),
        rss_proxy_host=_env("RSS_PROXY_HOST"),
        rss_proxy_port=int(_env_float("RSS_PROXY_PORT", 1200)),
        uptime_kuma_url=_env("UPTIME_KUMA_URL", "http://localhost:3001").rstrip("/"),
        uptime_status_page=_env("UPTIME_STATUS_PAGE", "homelab"),
        jellyfin_url=_env("JELLYFIN_URL", "http://localhost:8096").rstrip("/"),
        jellyfin_api_key=_env("JELLYFIN_API_KEY"),
        qbit_url=_env("QBIT_URL", "http://localhost:8080").rstrip("/"),
        qbit_username=_env("QBIT_USERNAME"),
        qbit_password=_env("QBIT_PASSWORD"),
        beszel_url=_env("BESZEL_URL", "http://localhost:8090").rstrip("/"),
        beszel_email=_env("BESZEL_EMAIL"),
        beszel_password=_env("BESZEL_PASSWORD"),
        pve_host=_env("PVE_HOST"),
        pve_node=_env("PVE_NODE", "pve"),
        pve_user=_env("PVE_USER", "root@pam"),
        pve_password=_env("PVE_PASSWORD"),
        pve_verify_ssl=_env_bool("PVE_VERIFY_SSL", False),
        b2_key_id=_env("B2_KEY_ID"),
        b2_app_key=_env("B2_APP_KEY"),
        b2_bucket=_env("B2_BUCKET"),
        weather_default_lat=_env_float("WEATHER_DEFAULT_LAT", -33.8688),
        weather_default_lon=_env_float("WEATHER_DEFAULT_LON", 151.2093),
        weather_default_city=_env("WEATHER_DEFAULT_CITY", "Sydney"),
        weather_default_timezone=_env("WEATHER_DEFAULT_TIMEZONE", DEFAULT_TZ),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
