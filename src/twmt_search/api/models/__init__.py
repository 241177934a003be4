"""Pydantic models for API requests and responses."""
from twmt_search.api.models.requests import (
    SearchFilterModel,
    ValidateQueryRequest,
    SavedSearchCreateRequest,
    SavedSearchUpdateRequest,
)
from twmt_search.api.models.responses import (
    SearchResultResponse,
    SearchListResponse,
    SearchPageResponse,
)

__all__ = [
    # Requests
    "SearchFilterModel",
    "ValidateQueryRequest",
    "SavedSearchCreateRequest",
    "SavedSearchUpdateRequest",
    # Responses
    "SearchResultResponse",
    "SearchListResponse",
    "SearchPageResponse",
]
