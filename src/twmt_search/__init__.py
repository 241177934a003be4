from __future__ import annotations

__version__ = "0.1.0"
__author__ = "TWMT Contributors"

from twmt_search.models import (
    SearchFilter,
    SearchOptions,
    SearchQuery,
    SearchResult,
    SearchResultsModel,
    SearchScope,
)

__all__ = [
    "SearchFilter",
    "SearchOptions",
    "SearchQuery",
    "SearchResult",
    "SearchResultsModel",
    "SearchScope",
    "SearchService",
]


def __getattr__(name: str):
    if name == "SearchService":
        from twmt_search.services.search_service import SearchService

        return SearchService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
