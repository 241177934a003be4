"""Statistics and status endpoints."""
from __future__ import annotations

from fastapi import APIRouter

from twmt_search.api.utils import unwrap_or_raise
from twmt_search.config.constants import APP_VERSION
import twmt_search.api.dependencies as deps


router = APIRouter()


@router.get("/statistics")
async def get_statistics():
    """History and saved-search usage summary."""
    service = deps.get_search_service()
    return unwrap_or_raise(service.get_statistics())


@router.get("/status")
async def get_status():
    """Liveness and configuration snapshot for polling clients."""
    config = deps.get_config()
    return {
        "status": "ok",
        "version": APP_VERSION,
        "server_started_at": deps.get_started_at(),
        "database_path": config.paths.database_path,
        "history_cap": config.history.cap,
        "query_timeout_seconds": config.search.query_timeout_seconds,
    }
