# homelab_dash/services/blinko.py
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings
from ..errors import NotConfiguredError, UpstreamError, raise_for_upstream
from ..models import Note

logger = logging.getLogger("uvicorn.error")

PROVIDER = "Blinko"
TYPE_BLINKO = 0
TYPE_TODO = 2


def _headers(settings: Settings) -> Dict[str, str]:
    if not settings.blinko_api_token:
        raise NotConfiguredError("Blinko API token not configured")
    return {"Content-Type": "application/json", "Authorization": f"Bearer {settings.blinko_api_token}"}


def _notes_from_payload(payload: Any) -> List[Note]:
    rows = payload.get("data", payload) if isinstance(payload, dict) else payload
    notes = []
    for row in rows or []:
        try:
            notes.append(Note.model_validate(row))
        except (ValueError, TypeError):
            logger.warning("Skipping malformed Blinko note: %r", row.get("id") if isinstance(row, dict) else row)
    return notes


async def _post(client: httpx.AsyncClient, settings: Settings, path: str, body: Dict[str, Any]) -> httpx.Response:
    headers = _headers(settings)
    r = await client.post(f"{settings.blinko_url}{path}", json=body, headers=headers)
    raise_for_upstream(PROVIDER, r)
    return r


async def list_notes(
    client: httpx.AsyncClient,
    settings: Settings,
    *,
    note_type: int,
    size: int,
    search_text: Optional[str] = None,
) -> List[Note]:
    body: Dict[str, Any] = {"type": note_type, "size": size, "isArchived": False}
    if search_text:
        body["searchText"] = search_text
    r = await _post(client, settings, "/api/v1/note/list", body)
    return _notes_from_payload(r.json())


async def upsert_note(
    client: httpx.AsyncClient,
    settings: Settings,
    content: str,
    note_id: Optional[int] = None,
    note_type: int = TYPE_TODO,
) -> Note:
    body: Dict[str, Any] = {"content": content, "type": note_type}
    if note_id:
        body["id"] = note_id
    r = await _post(client, settings, "/api/v1/note/upsert", body)
    try:
        return Note.model_validate(r.json())
    except ValueError as e:
        raise UpstreamError(PROVIDER, "returned an unreadable note") from e


async def delete_notes(client: httpx.AsyncClient, settings: Settings, ids: List[int]) -> None:
    await _post(client, settings, "/api/v1/note/delete", {"ids": ids})
