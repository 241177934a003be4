"""Pydantic response models for API endpoints."""
from __future__ import annotations

from pydantic import BaseModel

from twmt_search.models import SearchResult, SearchResultsModel


class SearchResultResponse(BaseModel):
    """Single search result in API response."""
    id: str
    type: str
    matched_field: str
    highlighted_text: str
    relevance_score: float
    project_id: str | None = None
    project_name: str | None = None
    language_code: str | None = None
    language_name: str | None = None
    key: str | None = None
    source_text: str | None = None
    translated_text: str | None = None
    context: str | None = None
    file_name: str | None = None
    category: str | None = None
    status: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResultResponse":
        return cls(**result.to_dict())


class SearchListResponse(BaseModel):
    """Results of a single search entry point."""
    results: list[SearchResultResponse]
    total: int


class SearchPageResponse(BaseModel):
    """One page of a full query run."""
    results: list[SearchResultResponse]
    total_count: int
    current_page: int
    page_size: int
    total_pages: int
    has_previous_page: bool
    has_next_page: bool
    range_text: str
    summary: str
    error: str | None = None

    @classmethod
    def from_model(cls, page: SearchResultsModel) -> "SearchPageResponse":
        return cls(
            results=[SearchResultResponse.from_result(r) for r in page.results],
            total_count=page.total_count,
            current_page=page.current_page,
            page_size=page.page_size,
            total_pages=page.total_pages,
            has_previous_page=page.has_previous_page,
            has_next_page=page.has_next_page,
            range_text=page.range_text,
            summary=page.query.summary,
            error=page.error,
        )
