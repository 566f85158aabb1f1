# homelab_dash/services/beszel.py
from typing import Any, Dict, List

import httpx
from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..deps import get_http_client, get_token_caches
from ..errors import NotConfiguredError, UpstreamAuthError, UpstreamError, raise_for_upstream
from ..utils.fallback import fetch_with_fallback
from ..utils.tokens import TokenCache, TokenCaches

router = APIRouter(prefix="/api/beszel", tags=["systems"])

PROVIDER = "Beszel"

MOCK_SYSTEMS = [
    {"id": "pve-main", "name": "PVE", "status": "online", "cpu": 68, "memory": 82, "temp": 52,
     "gpuLoad": None, "gpuTemp": None},
    {"id": "fnos", "name": "fnOS", "status": "online", "cpu": 15, "memory": 45, "temp": 38,
     "gpuLoad": None, "gpuTemp": None},
    {"id": "rtx4090", "name": "4090-PC", "status": "online", "cpu": 23, "memory": 45, "temp": 38,
     "gpuLoad": 12, "gpuTemp": 45},
]


def _tenths(value):
    # Beszel reports temperatures in tenths of a degree
    return round(value / 10) if value else None


def transform_system(system: Dict[str, Any]) -> dict:
    info = system.get("info") or {}
    return {
        "id": system.get("id", ""),
        "name": system.get("name", ""),
        "status": "online" if system.get("status") == "up" else "offline",
        "cpu": round(info.get("cpu") or 0),
        "memory": round(info.get("mp") or 0),
        "temp": _tenths(info.get("t")),
        "gpuLoad": info.get("g"),
        "gpuTemp": _tenths(info.get("gt")),
    }


async def authenticate(client: httpx.AsyncClient, settings: Settings, cache: TokenCache) -> str:
    token = cache.get()
    if token:
        return token
    if not settings.beszel_email or not settings.beszel_password:
        raise NotConfiguredError("Beszel credentials not configured. Set BESZEL_EMAIL and BESZEL_PASSWORD.")
    r = await client.post(
        f"{settings.beszel_url}/api/collections/users/auth-with-password",
        json={"identity": settings.beszel_email, "password": settings.beszel_password},
    )
    raise_for_upstream(PROVIDER, r)
    token = r.json().get("token")
    if not token:
        raise UpstreamError(PROVIDER, "auth response carried no token")
    return cache.store(token)


async def fetch_systems(client: httpx.AsyncClient, settings: Settings, cache: TokenCache) -> List[dict]:
    token = await authenticate(client, settings, cache)
    r = await client.get(
        f"{settings.beszel_url}/api/collections/systems/records",
        headers={"Authorization": token},
    )
    try:
        raise_for_upstream(PROVIDER, r)
    except UpstreamAuthError:
        cache.invalidate()
        raise
    return [transform_system(s) for s in r.json().get("items") or []]


@router.get("")
async def get_beszel(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    tokens: TokenCaches = Depends(get_token_caches),
):
    result = await fetch_with_fallback(
        lambda: fetch_systems(client, settings, tokens.beszel),
        lambda: MOCK_SYSTEMS,
        source="beszel",
        error_message="Failed to fetch system data",
    )
    count = len(result.data) if result.is_live else 0
    if result.is_live and not result.data:
        result.data, result.source = MOCK_SYSTEMS, "mock"
    return result.envelope(count=count)
