# homelab_dash/services/uptime.py
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..deps import get_http_client
from ..errors import UpstreamError, raise_for_upstream
from ..utils.fallback import envelope

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/uptime", tags=["uptime"])

SERVICE_NAMES = {
    "jellyfin": "Jellyfin",
    "sonarr": "Sonarr",
    "radarr": "Radarr",
    "ollama": "Ollama",
    "comfyui": "ComfyUI",
    "n8n": "n8n",
    "portainer": "Portainer",
    "adguard": "AdGuard",
    "prowlarr": "Prowlarr",
    "bazarr": "Bazarr",
    "qbittorrent": "qBittorrent",
    "qbit": "qBittorrent",
    "jellyseerr": "Jellyseerr",
    "freshrss": "FreshRSS",
    "uptime kuma": "Uptime Kuma",
    "uptime": "Uptime Kuma",
    "beszel": "Beszel",
    "dawarich": "Dawarich",
    "blinko": "Blinko",
    "forgejo": "Forgejo",
    "gitea": "Forgejo",
    "open webui": "Open WebUI",
    "chat": "Open WebUI",
    "dozzle": "Dozzle",
    "syncthing": "Syncthing",
    "mt photos": "MT Photos",
    "photos": "MT Photos",
    "reactive resume": "Reactive Resume",
    "resume": "Reactive Resume",
}

STATUS_METRIC_RE = re.compile(r'monitor_status\{monitor_name="([^"]+)".*\}\s+(\d+)')
RESPONSE_METRIC_RE = re.compile(r'monitor_response_time\{monitor_name="([^"]+)".*\}\s+([\d.]+)')

MOCK_MONITORS = [
    {"id": i, "name": name, "status": up, "uptime": uptime, "responseTime": rt}
    for i, (name, up, uptime, rt) in enumerate(
        [
            ("Jellyfin", True, 99.9, 45),
            ("Sonarr", True, 99.8, 32),
            ("Radarr", True, 99.9, 28),
            ("Ollama", True, 98.5, 120),
            ("ComfyUI", False, 0, 0),
            ("n8n", True, 99.9, 35),
            ("Portainer", True, 100, 22),
            ("AdGuard", True, 100, 15),
            ("Prowlarr", True, 99.7, 40),
            ("Bazarr", True, 99.8, 38),
            ("qBittorrent", True, 99.5, 25),
            ("Jellyseerr", True, 99.9, 30),
            ("FreshRSS", True, 99.8, 42),
            ("Uptime Kuma", True, 100, 12),
            ("Beszel", True, 99.9, 18),
            ("Dawarich", True, 99.5, 55),
            ("Blinko", True, 99.9, 20),
            ("Forgejo", True, 99.8, 35),
            ("Open WebUI", True, 99.7, 48),
            ("Dozzle", True, 100, 15),
            ("Syncthing", True, 99.9, 22),
            ("MT Photos", True, 99.8, 85),
            ("Reactive Resume", True, 99.5, 40),
        ],
        start=1,
    )
]


def normalize_name(name: Optional[str]) -> str:
    name = name or ""
    return SERVICE_NAMES.get(name.lower(), name)


def monitors_from_status_page(payload: Dict[str, Any]) -> List[dict]:
    monitors = []
    for group in payload.get("publicGroupList") or []:
        if not isinstance(group, dict):
            continue
        for monitor in group.get("monitorList") or []:
            if not isinstance(monitor, dict):
                continue
            monitors.append(
                {
                    "id": monitor.get("id"),
                    "name": normalize_name(monitor.get("name")),
                    # 1 = up, 0 = down, 2 = pending
                    "status": monitor.get("status") == 1,
                    "uptime": monitor.get("uptime24") or monitor.get("uptime") or 100,
                    "responseTime": monitor.get("avgPing") or 0,
                }
            )
    return monitors


def monitors_from_metrics(text: str) -> List[dict]:
    """Parse the Prometheus exposition Uptime Kuma serves at /metrics."""
    by_name: Dict[str, dict] = {}
    for line in text.splitlines():
        m = STATUS_METRIC_RE.search(line)
        if m:
            name, status = m.groups()
            by_name[name] = {"name": normalize_name(name), "status": status == "1", "responseTime": 0}
        m = RESPONSE_METRIC_RE.search(line)
        if m and m.group(1) in by_name:
            by_name[m.group(1)]["responseTime"] = float(m.group(2))

    return [
        {
            "id": i,
            "name": row["name"],
            "status": row["status"],
            "uptime": 100 if row["status"] else 0,
            "responseTime": row["responseTime"],
        }
        for i, row in enumerate(by_name.values(), start=1)
    ]


async def fetch_status_page(client: httpx.AsyncClient, settings: Settings) -> List[dict]:
    try:
        r = await client.get(
            f"{settings.uptime_kuma_url}/api/status-page/{settings.uptime_status_page}",
            headers={"Accept": "application/json"},
            timeout=settings.lookup_timeout,
        )
        raise_for_upstream("Uptime Kuma", r)
        return monitors_from_status_page(r.json())
    except (httpx.HTTPError, UpstreamError, ValueError, AttributeError, TypeError) as e:
        logger.warning("Failed to fetch Uptime Kuma status page: %s", e)
        return []


async def fetch_metrics(client: httpx.AsyncClient, settings: Settings) -> List[dict]:
    try:
        r = await client.get(
            f"{settings.uptime_kuma_url}/metrics",
            headers={"Accept": "text/plain"},
            timeout=settings.lookup_timeout,
        )
        raise_for_upstream("Uptime Kuma", r)
        return monitors_from_metrics(r.text)
    except (httpx.HTTPError, UpstreamError) as e:
        logger.warning("Failed to fetch Uptime Kuma metrics: %s", e)
        return []


@router.get("")
async def get_uptime(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    monitors = await fetch_status_page(client, settings)
    if not monitors:
        monitors = await fetch_metrics(client, settings)
    if monitors:
        return envelope(monitors, "uptime-kuma")
    # an empty status page is treated like an unreachable one
    return envelope(MOCK_MONITORS, "mock")
