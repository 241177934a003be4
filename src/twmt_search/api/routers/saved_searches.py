"""Saved search endpoints for managing reusable searches."""
from __future__ import annotations

from fastapi import APIRouter, Query

from twmt_search.api.models import (
    SavedSearchCreateRequest,
    SavedSearchUpdateRequest,
    SearchPageResponse,
)
from twmt_search.api.utils import unwrap_or_raise
import twmt_search.api.dependencies as deps


router = APIRouter()


@router.get("/saved-searches")
async def list_saved_searches():
    service = deps.get_search_service()
    searches = unwrap_or_raise(service.get_saved_searches())
    return {
        "total": len(searches),
        "searches": [s.to_dict() for s in searches],
    }


@router.post("/saved-searches", status_code=201)
async def create_saved_search(request: SavedSearchCreateRequest):
    service = deps.get_search_service()
    saved = unwrap_or_raise(service.save_search(
        request.name,
        request.query,
        request.filter.to_domain() if request.filter is not None else None,
    ))
    return {"success": True, "search": saved.to_dict()}


@router.get("/saved-searches/{saved_id}")
async def get_saved_search(saved_id: str):
    service = deps.get_search_service()
    saved = unwrap_or_raise(service.get_saved_search(saved_id))
    return saved.to_dict()


@router.put("/saved-searches/{saved_id}")
async def update_saved_search(saved_id: str, request: SavedSearchUpdateRequest):
    service = deps.get_search_service()
    saved = unwrap_or_raise(service.update_saved_search(
        saved_id,
        name=request.name,
        query=request.query,
        search_filter=request.filter.to_domain() if request.filter is not None else None,
        clear_filter=request.clear_filter,
    ))
    return {"success": True, "search": saved.to_dict()}


@router.delete("/saved-searches/{saved_id}")
async def delete_saved_search(saved_id: str):
    service = deps.get_search_service()
    unwrap_or_raise(service.delete_saved_search(saved_id))
    return {"success": True}


@router.post("/saved-searches/{saved_id}/run", response_model=SearchPageResponse)
async def run_saved_search(saved_id: str, page: int = Query(1, ge=1)):
    """Run a saved search and count the use."""
    service = deps.get_search_service()
    page_model = unwrap_or_raise(await service.run_saved_search(saved_id, page))
    return SearchPageResponse.from_model(page_model)
