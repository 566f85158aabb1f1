# homelab_dash/services/storage.py
from typing import Any, Dict, List

import httpx
from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..deps import get_pve_client, get_token_caches
from ..errors import NotConfiguredError, UpstreamAuthError, UpstreamError, raise_for_upstream
from ..utils.fallback import fetch_with_fallback
from ..utils.tokens import TokenCache, TokenCaches

router = APIRouter(prefix="/api/storage", tags=["storage"])

PROVIDER = "Proxmox"
TB = 1024 ** 4
MEDIA_POOL = "tank"

MOCK_POOLS = [
    {"name": "TANK", "used": 14.2, "total": 27.3, "status": "healthy", "type": "media/docker"},
    {"name": "COLD", "used": 8.5, "total": 14.5, "status": "healthy", "type": "backup/archive"},
]


def _api(settings: Settings) -> str:
    return f"https://{settings.pve_host}:8006/api2/json"


def pool_from_payload(pool: Dict[str, Any]) -> dict:
    name = pool.get("name", "")
    return {
        "name": name.upper(),
        "used": round((pool.get("alloc") or 0) / TB, 2),
        "total": round((pool.get("size") or 0) / TB, 2),
        "status": "healthy" if pool.get("health") == "ONLINE" else "degraded",
        "type": "media/docker" if name == MEDIA_POOL else "backup/archive",
    }


async def get_ticket(client: httpx.AsyncClient, settings: Settings, cache: TokenCache) -> str:
    ticket = cache.get()
    if ticket:
        return ticket
    if not settings.pve_host or not settings.pve_password:
        raise NotConfiguredError("Proxmox credentials not configured")
    r = await client.post(
        f"{_api(settings)}/access/ticket",
        data={"username": settings.pve_user, "password": settings.pve_password},
    )
    raise_for_upstream(PROVIDER, r)
    try:
        ticket = r.json()["data"]["ticket"]
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamError(PROVIDER, "returned no ticket") from e
    return cache.store(ticket)


async def fetch_pools(client: httpx.AsyncClient, settings: Settings, cache: TokenCache) -> List[dict]:
    ticket = await get_ticket(client, settings, cache)
    r = await client.get(
        f"{_api(settings)}/nodes/{settings.pve_node}/disks/zfs",
        headers={"Cookie": f"PVEAuthCookie={ticket}"},
    )
    try:
        raise_for_upstream(PROVIDER, r)
    except UpstreamAuthError:
        cache.invalidate()
        raise
    return [pool_from_payload(p) for p in r.json().get("data") or []]


@router.get("")
async def get_storage(
    client: httpx.AsyncClient = Depends(get_pve_client),
    settings: Settings = Depends(get_settings),
    tokens: TokenCaches = Depends(get_token_caches),
):
    result = await fetch_with_fallback(
        lambda: fetch_pools(client, settings, tokens.pve),
        lambda: MOCK_POOLS,
        source="pve",
        error_message="Failed to fetch storage data",
    )
    if result.is_live and not result.data:
        result.data, result.source = MOCK_POOLS, "mock"
    if not result.is_live:
        return result.envelope(message="Using mock data - PVE API not available")
    return result.envelope()
