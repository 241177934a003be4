"""Pydantic request models for API endpoints."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from twmt_search.models import SearchFilter, SearchResultType


class SearchFilterModel(BaseModel):
    """Structured filter accepted in request bodies."""
    project_ids: list[str] | None = None
    language_codes: list[str] | None = None
    statuses: list[str] | None = None
    file_names: list[str] | None = None
    types: list[SearchResultType] | None = None
    min_date: datetime | None = None
    max_date: datetime | None = None
    min_relevance_score: float | None = None

    def to_domain(self) -> SearchFilter:
        return SearchFilter(**self.model_dump())


class ValidateQueryRequest(BaseModel):
    """Query validation request."""
    query: str
    operator: str = "and"
    phrase_search: bool = False
    prefix_search: bool = False


class SavedSearchCreateRequest(BaseModel):
    """Saved search creation request."""
    name: str = Field(min_length=1, max_length=200)
    query: str = Field(min_length=1)
    filter: SearchFilterModel | None = None


class SavedSearchUpdateRequest(BaseModel):
    """Partial saved search update; omitted fields are left unchanged."""
    name: str | None = Field(default=None, min_length=1, max_length=200)
    query: str | None = Field(default=None, min_length=1)
    filter: SearchFilterModel | None = None
    clear_filter: bool = False
