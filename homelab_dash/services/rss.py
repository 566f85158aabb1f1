# homelab_dash/services/rss.py
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..deps import get_http_client
from ..errors import InvalidParameterError
from ..models import Note
from ..utils.fallback import fetch_with_fallback
from ..utils.notes import parse_rss_item, sort_rss_items
from ..utils.timeutils import parse_day, parse_timestamp, tzinfo_from_name
from . import blinko

router = APIRouter(prefix="/api/rss", tags=["rss"])

DEFAULT_TAG = "rss"


def mock_items() -> List[dict]:
    now = datetime.now(timezone.utc)

    def ago(days: int) -> str:
        return (now - timedelta(days=days)).isoformat().replace("+00:00", "Z")

    return [
        {"id": 1, "title": "Next.js 16 正式发布", "url": "https://nextjs.org", "source": "nextjs.org",
         "isNew": True, "isStarred": False, "publishedAt": ago(0)},
        {"id": 2, "title": "Python 3.14 新特性一览", "url": "https://python.org", "source": "python.org",
         "isNew": True, "isStarred": True, "publishedAt": ago(0)},
        {"id": 3, "title": "Docker 容器最佳实践", "url": "https://docker.com", "source": "docker.com",
         "isNew": False, "isStarred": False, "publishedAt": ago(2)},
        {"id": 4, "title": "Homelab 完整搭建指南", "url": "https://reddit.com/r/homelab", "source": "reddit.com",
         "isNew": False, "isStarred": False, "publishedAt": ago(3)},
    ]


def filter_by_day(notes: List[Note], day: str, tz) -> List[Note]:
    """Keep notes created on `day` (YYYY-MM-DD) in the dashboard timezone."""
    try:
        wanted = parse_day(day)
    except ValueError as e:
        raise InvalidParameterError("Invalid date parameter, expected YYYY-MM-DD") from e
    kept = []
    for note in notes:
        created = parse_timestamp(note.created_at)
        if created is not None and created.astimezone(tz).date() == wanted:
            kept.append(note)
    return kept


def rss_stats(items: List[dict]) -> dict:
    return {
        "total": len(items),
        "new": sum(1 for i in items if i.get("isNew")),
        "starred": sum(1 for i in items if i.get("isStarred")),
    }


@router.get("")
async def get_rss(
    tag: str = DEFAULT_TAG,
    date: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    search_tag = f"#{(tag or DEFAULT_TAG).lstrip('#')}"

    async def primary():
        notes = await blinko.list_notes(
            client, settings, note_type=blinko.TYPE_BLINKO, size=50, search_text=search_tag
        )
        # Blinko search is fuzzy; keep only notes that carry the tag
        notes = [n for n in notes if search_tag in n.content]
        if date:
            notes = filter_by_day(notes, date, tzinfo_from_name(settings.timezone))
        now = datetime.now(timezone.utc)
        items = [
            parse_rss_item(n, now, settings.rss_proxy_host, settings.rss_proxy_port)
            for n in notes
        ]
        return [i.to_json() for i in sort_rss_items(items)]

    def fallback():
        return mock_items() if not settings.blinko_api_token else []

    result = await fetch_with_fallback(
        primary,
        fallback,
        source="blinko",
        error_message="Failed to fetch RSS items",
    )
    return result.envelope(stats=rss_stats(result.data))
