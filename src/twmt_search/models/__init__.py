"""Data models for twmt_search."""
from twmt_search.models.enums import (
    SearchScope,
    SearchOperator,
    SearchResultType,
    RegexTarget,
)
from twmt_search.models.domain import (
    SearchFilter,
    SearchOptions,
    SearchQuery,
    SearchResult,
    SearchResultsModel,
    SavedSearch,
    SearchHistoryEntry,
    ParsedQuery,
    Outcome,
    to_epoch_ms,
    from_epoch_ms,
)
from twmt_search.models.errors import (
    SearchError,
    EmptyQueryError,
    InvalidSyntaxError,
    InvalidPatternError,
    InjectionRejectedError,
    StorageError,
    NotFoundError,
    DuplicateNameError,
    InvalidInputError,
)

__all__ = [
    # Enums
    "SearchScope",
    "SearchOperator",
    "SearchResultType",
    "RegexTarget",
    # Domain models
    "SearchFilter",
    "SearchOptions",
    "SearchQuery",
    "SearchResult",
    "SearchResultsModel",
    "SavedSearch",
    "SearchHistoryEntry",
    "ParsedQuery",
    "Outcome",
    "to_epoch_ms",
    "from_epoch_ms",
    # Errors
    "SearchError",
    "EmptyQueryError",
    "InvalidSyntaxError",
    "InvalidPatternError",
    "InjectionRejectedError",
    "StorageError",
    "NotFoundError",
    "DuplicateNameError",
    "InvalidInputError",
]
