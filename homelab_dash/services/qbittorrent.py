# homelab_dash/services/qbittorrent.py
import re
from typing import Any, Dict, List

import httpx
from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..deps import get_http_client, get_token_caches
from ..errors import NotConfiguredError, UpstreamAuthError, raise_for_upstream
from ..utils.fallback import fetch_with_fallback, utc_now_iso
from ..utils.tokens import TokenCache, TokenCaches

router = APIRouter(prefix="/api/qbittorrent", tags=["activity"])

PROVIDER = "qBittorrent"
MIN_SPEED_BYTES = 1024 * 1024
NEARLY_DONE = 90
NO_ETA = 8640000  # qBittorrent's "infinity"
TITLE_MAX = 40
UNITS = ["B", "KB", "MB", "GB", "TB"]
SID_COOKIE_RE = re.compile(r"SID=([^;]+)")


def format_bytes(size: float) -> str:
    if size <= 0:
        return "0 B"
    i = 0
    while size >= 1024 and i < len(UNITS) - 1:
        size /= 1024
        i += 1
    return f"{round(size, 1):g} {UNITS[i]}"


def format_eta(seconds: int) -> str:
    if seconds < 0 or seconds == NO_ETA:
        return "∞"
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


def torrent_from_payload(t: Dict[str, Any]) -> dict:
    return {
        "hash": t.get("hash", ""),
        "name": t.get("name", ""),
        "size": t.get("size", 0),
        "progress": round((t.get("progress") or 0) * 100),
        "dlspeed": t.get("dlspeed", 0),
        "upspeed": t.get("upspeed", 0),
        "state": t.get("state", ""),
        "eta": t.get("eta", NO_ETA),
        "category": t.get("category") or "",
    }


def worth_showing(t: dict) -> bool:
    """Hide stalled or slow downloads unless they are almost finished."""
    return t["dlspeed"] >= MIN_SPEED_BYTES or t["progress"] >= NEARLY_DONE


def torrent_activity(t: dict) -> dict:
    if "paused" in t["state"]:
        status = "paused"
    elif t["progress"] >= 100:
        status = "completed"
    else:
        status = "active"
    name = t["name"]
    return {
        "type": "qbittorrent",
        "title": name[:TITLE_MAX] + "..." if len(name) > TITLE_MAX else name,
        "subtitle": f"{t['progress']}% · {format_bytes(t['dlspeed'])}/s · ETA: {format_eta(t['eta'])}",
        "progress": t["progress"],
        "status": status,
        "timestamp": utc_now_iso(),
        "icon": "download",
    }


async def login(client: httpx.AsyncClient, settings: Settings, cache: TokenCache) -> str:
    sid = cache.get()
    if sid:
        return sid
    if not settings.qbit_username or not settings.qbit_password:
        raise NotConfiguredError("qBittorrent credentials not configured")
    r = await client.post(
        f"{settings.qbit_url}/api/v2/auth/login",
        data={"username": settings.qbit_username, "password": settings.qbit_password},
    )
    raise_for_upstream(PROVIDER, r)
    m = SID_COOKIE_RE.search(r.headers.get("set-cookie", ""))
    if not m:
        # qBittorrent answers 200 "Fails." on bad credentials
        raise UpstreamAuthError(PROVIDER, "authentication failed")
    return cache.store(m.group(1))


async def fetch_torrents(client: httpx.AsyncClient, settings: Settings, cache: TokenCache) -> List[dict]:
    sid = await login(client, settings, cache)
    r = await client.get(
        f"{settings.qbit_url}/api/v2/torrents/info",
        params={"filter": "downloading"},
        headers={"Cookie": f"SID={sid}"},
    )
    try:
        raise_for_upstream(PROVIDER, r)
    except UpstreamAuthError:
        cache.invalidate()
        raise
    return [torrent_from_payload(t) for t in r.json() or []]


@router.get("")
async def get_qbittorrent(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    tokens: TokenCaches = Depends(get_token_caches),
):
    result = await fetch_with_fallback(
        lambda: fetch_torrents(client, settings, tokens.qbittorrent),
        list,
        source="qbittorrent",
        error_message="Failed to fetch torrents",
    )
    all_torrents = result.data
    torrents = [t for t in all_torrents if worth_showing(t)]
    result.data = [torrent_activity(t) for t in torrents]
    return result.envelope(
        torrents=torrents,
        totalTorrents=len(all_torrents),
        filteredCount=len(all_torrents) - len(torrents),
    )
