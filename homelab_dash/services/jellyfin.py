# homelab_dash/services/jellyfin.py
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..deps import get_http_client
from ..errors import NotConfiguredError, raise_for_upstream
from ..utils.fallback import fetch_with_fallback, utc_now_iso

router = APIRouter(prefix="/api/jellyfin", tags=["activity"])

PROVIDER = "Jellyfin"
MEDIA_TYPES = {"Movie": "movie", "Episode": "episode", "Audio": "music"}
MEDIA_ICONS = {"movie": "movie", "episode": "tv", "music": "music"}


def session_from_payload(session: Dict[str, Any]) -> Optional[dict]:
    """Now-playing session, or None for idle clients."""
    item = session.get("NowPlayingItem")
    if not item:
        return None
    play_state = session.get("PlayState") or {}
    media_type = MEDIA_TYPES.get(item.get("Type"), "other")

    position = play_state.get("PositionTicks")
    runtime = item.get("RunTimeTicks")
    progress = round(position / runtime * 100) if position and runtime else 0

    episode_info = None
    if media_type == "episode" and item.get("ParentIndexNumber") and item.get("IndexNumber"):
        episode_info = f"S{item['ParentIndexNumber']}E{item['IndexNumber']}"

    return {
        "type": "jellyfin",
        "user": session.get("UserName") or "Unknown",
        "title": item.get("Name", ""),
        "seriesName": item.get("SeriesName"),
        "episodeInfo": episode_info,
        "mediaType": media_type,
        "progress": progress,
        "isPlaying": not play_state.get("IsPaused", False),
        "client": session.get("Client") or "Unknown",
        "timestamp": utc_now_iso(),
    }


def session_activity(session: dict) -> dict:
    title, subtitle = session["title"], session["user"]
    if session["mediaType"] == "episode" and session.get("seriesName"):
        title = session["seriesName"]
        subtitle = f"{session['episodeInfo']} - {session['title']}"
    return {
        "type": "jellyfin",
        "title": title,
        "subtitle": subtitle,
        "progress": session["progress"],
        "status": "active" if session["isPlaying"] else "paused",
        "timestamp": session["timestamp"],
        "icon": MEDIA_ICONS.get(session["mediaType"], "play"),
    }


async def fetch_sessions(client: httpx.AsyncClient, settings: Settings) -> List[dict]:
    if not settings.jellyfin_api_key:
        raise NotConfiguredError("Jellyfin API key not configured")
    r = await client.get(
        f"{settings.jellyfin_url}/Sessions",
        headers={"X-Jellyfin-Token": settings.jellyfin_api_key, "Accept": "application/json"},
    )
    raise_for_upstream(PROVIDER, r)
    sessions = (session_from_payload(s) for s in r.json() or [])
    return [s for s in sessions if s]


@router.get("")
async def get_jellyfin(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    result = await fetch_with_fallback(
        lambda: fetch_sessions(client, settings),
        list,
        source="jellyfin",
        error_message="Failed to fetch Jellyfin sessions",
    )
    sessions = result.data
    result.data = [session_activity(s) for s in sessions]
    return result.envelope(sessions=sessions)
