# homelab_dash/services/journey.py
import logging
from datetime import datetime
from typing import Any, List, Optional, Tuple

import httpx
from fastapi import APIRouter, Depends, Query

from ..config import Settings, get_settings
from ..deps import get_http_client
from ..errors import InvalidParameterError, NotConfiguredError, raise_for_upstream
from ..utils.fallback import fetch_with_fallback
from ..utils.timeutils import day_range, iso_utc, parse_day, parse_timestamp, today_in, tzinfo_from_name
from .stops import GpsPoint, TraceSummary, summarize_trace

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/dawarich", tags=["journey"])

PROVIDER = "Dawarich"

# shown when DAWARICH_API_KEY is unset
MOCK_JOURNEY = {
    "stops": [
        {"time": "09:23", "location": "HOME", "icon": "home", "lat": 0, "lon": 0, "isCurrent": False},
        {"time": "10:15", "location": "CAFE", "icon": "coffee", "lat": 0, "lon": 0, "isCurrent": False},
        {"time": "12:20", "location": "PARK", "icon": "park", "lat": 0, "lon": 0, "isCurrent": False},
        {"time": "13:25", "location": "NOW", "icon": "pin", "lat": 0, "lon": 0, "isCurrent": True},
    ],
    "stats": {"totalDistance": 9.2, "stopCount": 3},
}

# shown when the upstream fails
FALLBACK_JOURNEY = {
    "stops": [
        {"time": "09:23", "location": "HOME", "icon": "home", "lat": 0, "lon": 0, "isCurrent": False},
        {"time": "13:25", "location": "NOW", "icon": "pin", "lat": 0, "lon": 0, "isCurrent": True},
    ],
    "stats": {"totalDistance": 0, "stopCount": 1},
}


def _optional_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def points_from_payload(payload: Any) -> List[GpsPoint]:
    """Dawarich answers either a bare list or {"data": [...]}; bad rows are skipped."""
    rows = payload.get("data", []) if isinstance(payload, dict) else payload
    points = []
    skipped = 0
    for row in rows or []:
        if not isinstance(row, dict):
            skipped += 1
            continue
        lat = _optional_float(row.get("latitude"))
        lon = _optional_float(row.get("longitude"))
        ts = parse_timestamp(row.get("timestamp"))
        if lat is None or lon is None or ts is None:
            skipped += 1
            continue
        points.append(
            GpsPoint(
                latitude=lat,
                longitude=lon,
                timestamp=ts,
                velocity=_optional_float(row.get("velocity")),
                altitude=_optional_float(row.get("altitude")),
                accuracy=_optional_float(row.get("accuracy")),
                battery=_optional_float(row.get("battery")),
            )
        )
    if skipped:
        logger.warning("Dawarich: skipped %s unusable points", skipped)
    return points


def resolve_range(
    date: Optional[str],
    from_: Optional[str],
    to: Optional[str],
    tz,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime, bool]:
    """(start, end, is_today) for the query; from+to wins over date, default is today."""
    today = today_in(tz, now)
    try:
        if from_ and to:
            start_day, end_day = parse_day(from_), parse_day(to)
        elif date:
            start_day = end_day = parse_day(date)
        else:
            start_day = end_day = today
    except ValueError as e:
        raise InvalidParameterError("Invalid date parameter, expected YYYY-MM-DD") from e
    start, end = day_range(start_day, end_day, tz)
    return start, end, start_day == today


async def fetch_points(client: httpx.AsyncClient, settings: Settings, start: datetime, end: datetime) -> List[GpsPoint]:
    if not settings.dawarich_api_key:
        raise NotConfiguredError("Dawarich API key not configured")
    r = await client.get(
        f"{settings.dawarich_url}/api/v1/points",
        params={
            "api_key": settings.dawarich_api_key,
            "start_at": iso_utc(start),
            "end_at": iso_utc(end),
            "per_page": 1000,
        },
        headers={"Accept": "application/json"},
    )
    raise_for_upstream(PROVIDER, r)
    return points_from_payload(r.json())


@router.get("")
async def get_journey(
    date: Optional[str] = None,
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    async def primary() -> TraceSummary:
        if not settings.dawarich_api_key:
            raise NotConfiguredError("Dawarich API key not configured")
        tz = tzinfo_from_name(settings.timezone)
        start, end, is_today = resolve_range(date, from_, to, tz)
        points = await fetch_points(client, settings, start, end)
        return summarize_trace(points, tz, is_today)

    def fallback():
        return MOCK_JOURNEY if not settings.dawarich_api_key else FALLBACK_JOURNEY

    result = await fetch_with_fallback(
        primary,
        fallback,
        source="dawarich",
        error_message="Failed to fetch journey data",
    )
    if not result.is_live:
        result.data, stats = result.data["stops"], result.data["stats"]
        return result.envelope(stats=stats)

    summary: TraceSummary = result.data
    result.data = [s.to_json() for s in summary.stops]
    return result.envelope(
        track=summary.track,
        bounds=summary.bounds,
        stats={
            "totalDistance": summary.total_distance_km,
            "stopCount": summary.stop_count,
            "pointCount": summary.point_count,
        },
    )
