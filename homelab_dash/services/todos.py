# homelab_dash/services/todos.py
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..deps import get_http_client
from ..errors import UpstreamError
from ..models import TodoPatch, TodoWrite
from ..utils.fallback import fetch_with_fallback, utc_now_iso
from ..utils.notes import format_todo_content, parse_todo, sort_todos
from . import blinko

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/blinko", tags=["todos"])


def _failure(error: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def _not_configured() -> JSONResponse:
    return _failure("Blinko API token not configured", 500)


def _upstream_failure(e: UpstreamError, action: str) -> JSONResponse:
    logger.warning("Blinko %s failed: %s", action, e)
    return _failure(f"Failed to {action} todo: {e.status_code}", e.status_code or 502)


@router.get("")
async def list_todos(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    async def primary():
        notes = await blinko.list_notes(client, settings, note_type=blinko.TYPE_TODO, size=100)
        return [t.to_json() for t in sort_todos(parse_todo(n) for n in notes)]

    result = await fetch_with_fallback(
        primary,
        list,
        source="blinko",
        error_message="Failed to fetch todos from Blinko",
        unconfigured_success=False,
    )
    return result.envelope()


async def _save(client, settings, note_id, content, column, done, action) -> JSONResponse:
    formatted = format_todo_content(content, column, done)
    try:
        note = await blinko.upsert_note(client, settings, formatted, note_id=note_id)
    except UpstreamError as e:
        return _upstream_failure(e, action)
    except httpx.HTTPError as e:
        logger.warning("Blinko %s unreachable: %r", action, e)
        return _failure(f"Failed to {action} todo", 500)
    return JSONResponse(
        content={"success": True, "data": parse_todo(note).to_json(), "timestamp": utc_now_iso()}
    )


@router.post("")
async def save_todo(
    body: TodoWrite,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    """Create a todo, or update it when `id` is given."""
    if not settings.blinko_api_token:
        return _not_configured()
    return await _save(client, settings, body.id, body.content, body.column, bool(body.done), "save")


@router.patch("")
async def toggle_todo(
    body: TodoPatch,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    if not settings.blinko_api_token:
        return _not_configured()
    if not body.id:
        return _failure("Todo ID required", 400)
    return await _save(client, settings, body.id, body.content, body.column, body.done, "update")


@router.delete("")
async def delete_todo(
    id: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    if not settings.blinko_api_token:
        return _not_configured()
    if not id:
        return _failure("Todo ID required", 400)
    try:
        note_id = int(id)
    except ValueError:
        return _failure("Todo ID must be a number", 400)

    try:
        await blinko.delete_notes(client, settings, [note_id])
    except UpstreamError as e:
        return _upstream_failure(e, "delete")
    except httpx.HTTPError as e:
        logger.warning("Blinko delete unreachable: %r", e)
        return _failure("Failed to delete todo", 500)
    return {"success": True, "timestamp": utc_now_iso()}
