"""Domain models for twmt_search - search data structures."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from twmt_search.models.enums import SearchOperator, SearchResultType, SearchScope
from twmt_search.models.errors import SearchError


T = TypeVar("T")

RESULTS_PER_PAGE_CHOICES = (25, 50, 100, 200)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: Any) -> datetime | None:
    """Decode an epoch-millisecond column value; ``None`` and junk decode to ``None``."""
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return from_epoch_ms(value)
    return datetime.fromisoformat(str(value))


@dataclass
class SearchFilter:
    """Structured filters combined with AND into generated SQL."""
    project_ids: list[str] | None = None
    language_codes: list[str] | None = None
    statuses: list[str] | None = None
    file_names: list[str] | None = None
    types: list[SearchResultType] | None = None
    min_date: datetime | None = None
    max_date: datetime | None = None
    min_relevance_score: float | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.project_ids is None
            and self.language_codes is None
            and self.statuses is None
            and self.file_names is None
            and self.types is None
            and self.min_date is None
            and self.max_date is None
            and self.min_relevance_score is None
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_ids": self.project_ids,
            "language_codes": self.language_codes,
            "statuses": self.statuses,
            "file_names": self.file_names,
            "types": [t.value for t in self.types] if self.types is not None else None,
            "min_date": self.min_date.isoformat() if self.min_date else None,
            "max_date": self.max_date.isoformat() if self.max_date else None,
            "min_relevance_score": self.min_relevance_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SearchFilter":
        """Build a filter from its ``to_dict`` form; unknown keys are ignored."""
        if not data:
            return cls()
        types = data.get("types")
        min_score = data.get("min_relevance_score")
        return cls(
            project_ids=_string_list(data.get("project_ids")),
            language_codes=_string_list(data.get("language_codes")),
            statuses=_string_list(data.get("statuses")),
            file_names=_string_list(data.get("file_names")),
            types=[SearchResultType(t) for t in types] if types is not None else None,
            min_date=_parse_datetime(data.get("min_date")),
            max_date=_parse_datetime(data.get("max_date")),
            min_relevance_score=float(min_score) if min_score is not None else None,
        )


def _string_list(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        raise ValueError("Filter values must be a list of strings.")
    return [str(v) for v in value]


@dataclass(frozen=True)
class SearchOptions:
    """Flags controlling FTS syntax wrapping and builder selection."""
    case_sensitive: bool = False
    whole_word: bool = False
    use_regex: bool = False
    phrase_search: bool = False
    prefix_search: bool = False
    include_obsolete: bool = False
    results_per_page: int = 50

    def __post_init__(self) -> None:
        if self.results_per_page not in RESULTS_PER_PAGE_CHOICES:
            raise ValueError(
                f"results_per_page must be one of {RESULTS_PER_PAGE_CHOICES}, "
                f"got {self.results_per_page}"
            )


@dataclass(frozen=True)
class SearchQuery:
    """A complete search request. Replace it with ``dataclasses.replace`` to edit."""
    text: str = ""
    scope: SearchScope = SearchScope.ALL
    operator: SearchOperator = SearchOperator.AND
    filter: SearchFilter | None = None
    options: SearchOptions = field(default_factory=SearchOptions)

    @property
    def is_valid(self) -> bool:
        return len(self.text.strip()) >= 2

    @property
    def summary(self) -> str:
        parts = [f'"{self.text.strip()}" in {self.scope.display_name.lower()}']
        if self.options.use_regex:
            parts.append("regex")
        if self.options.phrase_search:
            parts.append("phrase")
        if self.options.prefix_search:
            parts.append("prefix")
        if self.filter is not None and not self.filter.is_empty:
            parts.append("filtered")
        return ", ".join(parts)


@dataclass
class SearchResult:
    """Single search result with metadata and score."""
    id: str
    type: SearchResultType
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
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "project_id": self.project_id,
            "project_name": self.project_name,
            "language_code": self.language_code,
            "language_name": self.language_name,
            "key": self.key,
            "source_text": self.source_text,
            "translated_text": self.translated_text,
            "matched_field": self.matched_field,
            "highlighted_text": self.highlighted_text,
            "relevance_score": self.relevance_score,
            "context": self.context,
            "file_name": self.file_name,
            "category": self.category,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class SearchResultsModel:
    """One page of results plus pagination state."""
    results: list[SearchResult]
    total_count: int
    current_page: int
    page_size: int
    query: SearchQuery
    error: str | None = None

    @classmethod
    def empty(
        cls,
        query: SearchQuery,
        *,
        page_size: int = 50,
        error: str | None = None,
    ) -> "SearchResultsModel":
        return cls(
            results=[],
            total_count=0,
            current_page=1,
            page_size=page_size,
            query=query,
            error=error,
        )

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def range_text(self) -> str:
        if self.total_count == 0:
            return "No results"
        start = (self.current_page - 1) * self.page_size + 1
        end = min(start + len(self.results) - 1, self.total_count)
        return f"{start}-{end} of {self.total_count}"


@dataclass
class SavedSearch:
    """A named, persisted query definition."""
    id: str
    name: str
    query: str
    filter: SearchFilter | None
    usage_count: int
    created_at: datetime
    last_used_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "query": self.query,
            "filter": self.filter.to_dict() if self.filter is not None else None,
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat(),
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
        }


@dataclass
class SearchHistoryEntry:
    """One executed search."""
    id: int
    query: str
    result_count: int
    searched_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "query": self.query,
            "result_count": self.result_count,
            "searched_at": self.searched_at.isoformat(),
        }


@dataclass
class Outcome(Generic[T]):
    """Explicit success/failure value returned by service entry points."""
    value: T | None = None
    error: SearchError | None = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: SearchError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


@dataclass
class ParsedQuery:
    """Search text broken into FTS operands, ready to render as a MATCH expression."""
    original: str
    expression: str
    terms: list[str] = field(default_factory=list)
    phrases: list[str] = field(default_factory=list)
    operators: list[str] = field(default_factory=list)

    @property
    def needles(self) -> list[str]:
        """Plain strings to look for when picking snippets and matched fields."""
        return [*self.phrases, *self.terms]
