"""Search history endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Query

from twmt_search.api.utils import unwrap_or_raise
import twmt_search.api.dependencies as deps


router = APIRouter()


@router.get("/history")
async def get_history(
    limit: int | None = Query(None, description="Entries to return, capped at the history size"),
):
    """Most recent searches first."""
    service = deps.get_search_service()
    entries = unwrap_or_raise(service.get_history(limit))
    return {
        "total": len(entries),
        "entries": [entry.to_dict() for entry in entries],
    }


@router.delete("/history")
async def clear_history():
    service = deps.get_search_service()
    removed = unwrap_or_raise(service.clear_history())
    return {"success": True, "removed": removed}
