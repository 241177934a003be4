"""Run search SQL against the store and map rows to ``SearchResult``."""
from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from twmt_search.config.constants import (
    DEFAULT_CONTEXT_LENGTH,
    DEFAULT_QUERY_TIMEOUT_SECONDS,
    DEFAULT_REGEX_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SNIPPET_TOKENS,
)
from twmt_search.core import fts_query_builder as fts
from twmt_search.core.query_parser import prepare_fts_query
from twmt_search.core.regex_query_builder import build_query as build_regex_query, validate_and_escape
from twmt_search.core.sanitizer import sanitize
from twmt_search.core.snippets import (
    best_context,
    highlight,
    highlight_pattern,
    pattern_context,
)
from twmt_search.core.sql import SqlQuery, clamp_limit, clamp_offset, render_count
from twmt_search.models import (
    ParsedQuery,
    RegexTarget,
    SearchError,
    SearchFilter,
    SearchOperator,
    SearchOptions,
    SearchResult,
    SearchResultType,
    StorageError,
    from_epoch_ms,
)
from twmt_search.storage import DatabaseBusyError, SearchStore

if TYPE_CHECKING:
    from twmt_search.config import Config
    from twmt_search.services.search_history import SearchHistoryManager


logger = logging.getLogger(__name__)

# Extra time given to the worker thread after the store deadline fires.
_TIMEOUT_GRACE_SECONDS = 1.0

REGEX_HISTORY_PREFIX = "REGEX: "

_MATCHABLE_FIELDS = ("key", "source_text", "translated_text")


def _matched_field(row: dict[str, Any], needles: list[str]) -> str:
    """First of key/source/translation containing a needle, else the first non-null."""
    lowered = [n.lower() for n in needles if n]
    for field_name in _MATCHABLE_FIELDS:
        value = row.get(field_name)
        if value and any(n in str(value).lower() for n in lowered):
            return field_name
    for field_name in _MATCHABLE_FIELDS:
        if row.get(field_name):
            return field_name
    return "unknown"


def _as_str(value: Any) -> str | None:
    return None if value is None else str(value)


class SearchExecutor:
    """Async entry points for every search path.

    Each method validates its input, runs the SQL in a worker thread bounded by
    the per-query timeout and records history. Errors are raised as
    ``SearchError`` subclasses; ``SearchService`` turns them into outcomes.
    """

    def __init__(
        self,
        store: SearchStore,
        history: "SearchHistoryManager | None" = None,
        *,
        timeout: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
        context_length: int = DEFAULT_CONTEXT_LENGTH,
        snippet_tokens: int = DEFAULT_SNIPPET_TOKENS,
        default_limit: int = DEFAULT_SEARCH_LIMIT,
        regex_limit: int = DEFAULT_REGEX_LIMIT,
        record_history: bool = True,
    ) -> None:
        self._store = store
        self._history = history
        self._timeout = timeout
        self._context_length = context_length
        self._snippet_tokens = snippet_tokens
        self._default_limit = default_limit
        self._regex_limit = regex_limit
        self._record_history = record_history and history is not None

    @classmethod
    def from_config(
        cls,
        config: "Config",
        store: SearchStore,
        history: "SearchHistoryManager | None" = None,
    ) -> "SearchExecutor":
        return cls(
            store,
            history,
            timeout=config.search.query_timeout_seconds,
            context_length=config.search.context_length,
            snippet_tokens=config.search.snippet_tokens,
            default_limit=config.search.default_limit,
            regex_limit=config.search.regex_limit,
            record_history=config.search.record_history,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_query(
        self,
        query: str,
        operator: SearchOperator = SearchOperator.AND,
        options: SearchOptions | None = None,
    ) -> ParsedQuery:
        """Run both input checks and return the MATCH expression that would be used."""
        options = options or SearchOptions()
        return prepare_fts_query(
            query,
            operator,
            phrase=options.phrase_search,
            prefix=options.prefix_search,
        )

    # ------------------------------------------------------------------
    # Single-source FTS searches
    # ------------------------------------------------------------------

    async def search_units(
        self,
        query: str,
        search_filter: SearchFilter | None = None,
        *,
        operator: SearchOperator = SearchOperator.AND,
        options: SearchOptions | None = None,
        limit: int | None = None,
        offset: int = 0,
        key_only: bool = False,
    ) -> list[SearchResult]:
        options = options or SearchOptions()
        parsed = self.validate_query(query, operator, options)
        results = await self._units(parsed, search_filter, options, self._limit(limit), offset, key_only)
        await self._record(query, len(results))
        return results

    async def search_versions(
        self,
        query: str,
        search_filter: SearchFilter | None = None,
        *,
        operator: SearchOperator = SearchOperator.AND,
        options: SearchOptions | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SearchResult]:
        options = options or SearchOptions()
        parsed = self.validate_query(query, operator, options)
        results = await self._versions(parsed, search_filter, options, self._limit(limit), offset)
        await self._record(query, len(results))
        return results

    async def search_memory(
        self,
        query: str,
        search_filter: SearchFilter | None = None,
        *,
        operator: SearchOperator = SearchOperator.AND,
        options: SearchOptions | None = None,
        source_language: str | None = None,
        target_language: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SearchResult]:
        options = options or SearchOptions()
        parsed = self.validate_query(query, operator, options)
        results = await self._memory(
            parsed,
            search_filter,
            self._limit(limit),
            offset,
            source_language=source_language,
            target_language=target_language,
        )
        await self._record(query, len(results))
        return results

    async def search_glossary(
        self,
        query: str,
        *,
        glossary_id: str | None = None,
        category: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SearchResult]:
        """Substring search over glossary entries, alphabetical by term.

        The text goes through the injection check but is matched literally.
        """
        sanitize(query)
        results = await self._glossary(
            query.strip(),
            self._limit(limit),
            offset,
            glossary_id=glossary_id,
            category=category,
        )
        await self._record(query, len(results))
        return results

    async def count_units(
        self,
        query: str,
        search_filter: SearchFilter | None = None,
        *,
        operator: SearchOperator = SearchOperator.AND,
        options: SearchOptions | None = None,
        key_only: bool = False,
    ) -> int:
        options = options or SearchOptions()
        parsed = self.validate_query(query, operator, options)
        plan = fts.units_plan(
            parsed.expression,
            search_filter,
            limit=1,
            key_only=key_only,
            include_obsolete=options.include_obsolete,
        )
        return await self._count(render_count(plan), "count units")

    async def count_versions(
        self,
        query: str,
        search_filter: SearchFilter | None = None,
        *,
        operator: SearchOperator = SearchOperator.AND,
        options: SearchOptions | None = None,
    ) -> int:
        options = options or SearchOptions()
        parsed = self.validate_query(query, operator, options)
        plan = fts.versions_plan(
            parsed.expression,
            search_filter,
            limit=1,
            include_obsolete=options.include_obsolete,
        )
        return await self._count(render_count(plan), "count versions")

    # ------------------------------------------------------------------
    # Aggregate search
    # ------------------------------------------------------------------

    async def search_all(
        self,
        query: str,
        search_filter: SearchFilter | None = None,
        *,
        operator: SearchOperator = SearchOperator.AND,
        options: SearchOptions | None = None,
        limit: int | None = None,
    ) -> list[SearchResult]:
        """
        Search units, versions and memory concurrently and merge by relevance.

        A branch that fails is logged and left out; the rest are still
        returned. When every branch fails the result is empty and no history
        is recorded. ``filter.types`` picks the branches, and the glossary
        only joins when it is listed there.
        """
        options = options or SearchOptions()
        parsed = self.validate_query(query, operator, options)
        limit = self._limit(limit)

        branches = self._branches(parsed, query, search_filter, options)
        if not branches:
            await self._record(query, 0)
            return []

        per_branch = max(1, limit // len(branches))
        started = time.perf_counter()
        outcomes = await asyncio.gather(
            *(run(per_branch) for _, run in branches),
            return_exceptions=True,
        )

        merged: list[SearchResult] = []
        failures: list[Exception] = []
        for (name, _), outcome in zip(branches, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("Dropping %s results for %r: %s", name, query, outcome)
                failures.append(outcome)
                continue
            merged.extend(outcome)

        if len(failures) == len(branches):
            logger.error("Every search_all branch failed for %r; returning no results", query)
            return []

        merged.sort(key=lambda r: r.relevance_score, reverse=True)
        results = merged[:limit]
        logger.debug(
            "search_all %r: %d merged, %d returned in %.1f ms",
            query,
            len(merged),
            len(results),
            (time.perf_counter() - started) * 1000,
        )
        await self._record(query, len(results))
        return results

    def _branches(
        self,
        parsed: ParsedQuery,
        raw_query: str,
        search_filter: SearchFilter | None,
        options: SearchOptions,
    ) -> list[tuple[str, Callable[[int], Awaitable[list[SearchResult]]]]]:
        types = None if search_filter is None else search_filter.types
        wanted = set(types) if types is not None else {
            SearchResultType.TRANSLATION_UNIT,
            SearchResultType.TRANSLATION_VERSION,
            SearchResultType.TRANSLATION_MEMORY,
        }
        branches: list[tuple[str, Callable[[int], Awaitable[list[SearchResult]]]]] = []
        if SearchResultType.TRANSLATION_UNIT in wanted:
            branches.append(("units", lambda n: self._units(parsed, search_filter, options, n, 0, False)))
        if SearchResultType.TRANSLATION_VERSION in wanted:
            branches.append(("versions", lambda n: self._versions(parsed, search_filter, options, n, 0)))
        if SearchResultType.TRANSLATION_MEMORY in wanted:
            branches.append(("memory", lambda n: self._memory(parsed, search_filter, n, 0)))
        if SearchResultType.GLOSSARY_ENTRY in wanted:
            branches.append(("glossary", lambda n: self._glossary(raw_query.strip(), n, 0)))
        return branches

    # ------------------------------------------------------------------
    # Regex search
    # ------------------------------------------------------------------

    async def search_with_regex(
        self,
        pattern: str,
        search_in: RegexTarget = RegexTarget.BOTH,
        search_filter: SearchFilter | None = None,
        *,
        limit: int | None = None,
        case_sensitive: bool = True,
        whole_word: bool = False,
        include_obsolete: bool = False,
    ) -> list[SearchResult]:
        validate_and_escape(pattern)
        effective = rf"\b(?:{pattern})\b" if whole_word else pattern
        validate_and_escape(effective)

        sql = build_regex_query(
            effective,
            search_in,
            search_filter,
            limit=clamp_limit(self._regex_limit if limit is None else limit),
            case_sensitive=case_sensitive,
            include_obsolete=include_obsolete,
        )
        rows = await self._fetch(sql, "regex search")

        compiled = re.compile(effective if case_sensitive else f"(?i){effective}")
        results = [self._regex_row(row, compiled) for row in rows]
        await self._record(REGEX_HISTORY_PREFIX + pattern, len(results))
        return results

    def _regex_row(self, row: dict[str, Any], compiled: re.Pattern[str]) -> SearchResult:
        matched = row.get("matched_field") or "source_text"
        text = row.get(matched)
        result_type = (
            SearchResultType.TRANSLATION_VERSION
            if matched == "translated_text"
            else SearchResultType.TRANSLATION_UNIT
        )
        return SearchResult(
            id=str(row["id"]),
            type=result_type,
            matched_field=matched,
            highlighted_text=highlight_pattern(text, compiled),
            relevance_score=1.0,
            project_id=_as_str(row.get("project_id")),
            project_name=row.get("project_name"),
            language_code=row.get("language_code"),
            language_name=row.get("language_name"),
            key=row.get("key"),
            source_text=row.get("source_text"),
            translated_text=row.get("translated_text"),
            context=pattern_context(text, compiled, self._context_length),
            file_name=row.get("file_name"),
            status=row.get("status"),
            created_at=from_epoch_ms(row.get("created_at")),
            updated_at=from_epoch_ms(row.get("updated_at")),
        )

    # ------------------------------------------------------------------
    # Branch runners (no history)
    # ------------------------------------------------------------------

    async def _units(
        self,
        parsed: ParsedQuery,
        search_filter: SearchFilter | None,
        options: SearchOptions,
        limit: int,
        offset: int,
        key_only: bool,
    ) -> list[SearchResult]:
        sql = fts.build_units_query(
            parsed.expression,
            search_filter,
            limit=limit,
            offset=clamp_offset(offset),
            key_only=key_only,
            include_obsolete=options.include_obsolete,
            snippet_tokens=self._snippet_tokens,
        )
        rows = await self._fetch(sql, "unit search")
        return [self._unit_row(row, parsed.needles) for row in rows]

    async def _versions(
        self,
        parsed: ParsedQuery,
        search_filter: SearchFilter | None,
        options: SearchOptions,
        limit: int,
        offset: int,
    ) -> list[SearchResult]:
        sql = fts.build_versions_query(
            parsed.expression,
            search_filter,
            limit=limit,
            offset=clamp_offset(offset),
            include_obsolete=options.include_obsolete,
            snippet_tokens=self._snippet_tokens,
        )
        rows = await self._fetch(sql, "version search")
        return [self._version_row(row, parsed.needles) for row in rows]

    async def _memory(
        self,
        parsed: ParsedQuery,
        search_filter: SearchFilter | None,
        limit: int,
        offset: int,
        *,
        source_language: str | None = None,
        target_language: str | None = None,
    ) -> list[SearchResult]:
        sql = fts.build_memory_query(
            parsed.expression,
            search_filter,
            limit=limit,
            offset=clamp_offset(offset),
            source_language=source_language,
            target_language=target_language,
            snippet_tokens=self._snippet_tokens,
        )
        rows = await self._fetch(sql, "memory search")
        return [self._memory_row(row, parsed.needles) for row in rows]

    async def _glossary(
        self,
        text: str,
        limit: int,
        offset: int,
        *,
        glossary_id: str | None = None,
        category: str | None = None,
    ) -> list[SearchResult]:
        sql = fts.build_glossary_query(
            text,
            limit=limit,
            offset=clamp_offset(offset),
            glossary_id=glossary_id,
            category=category,
        )
        rows = await self._fetch(sql, "glossary search")
        return [self._glossary_row(row, text) for row in rows]

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _unit_row(self, row: dict[str, Any], needles: list[str]) -> SearchResult:
        matched = _matched_field(row, needles)
        return SearchResult(
            id=str(row["id"]),
            type=SearchResultType.TRANSLATION_UNIT,
            matched_field=matched,
            highlighted_text=row.get("highlighted") or highlight(row.get("source_text"), needles),
            relevance_score=float(row.get("rank") or 0.0),
            project_id=_as_str(row.get("project_id")),
            project_name=row.get("project_name"),
            key=row.get("key"),
            source_text=row.get("source_text"),
            context=best_context(row.get(matched) or row.get("source_text"), needles, self._context_length),
            file_name=row.get("file_name"),
            created_at=from_epoch_ms(row.get("created_at")),
            updated_at=from_epoch_ms(row.get("updated_at")),
        )

    def _version_row(self, row: dict[str, Any], needles: list[str]) -> SearchResult:
        matched = _matched_field(row, needles)
        return SearchResult(
            id=str(row["id"]),
            type=SearchResultType.TRANSLATION_VERSION,
            matched_field=matched,
            highlighted_text=row.get("highlighted") or highlight(row.get("translated_text"), needles),
            relevance_score=float(row.get("rank") or 0.0),
            project_id=_as_str(row.get("project_id")),
            project_name=row.get("project_name"),
            language_code=row.get("language_code"),
            language_name=row.get("language_name"),
            key=row.get("key"),
            source_text=row.get("source_text"),
            translated_text=row.get("translated_text"),
            context=best_context(row.get(matched) or row.get("translated_text"), needles, self._context_length),
            file_name=row.get("file_name"),
            status=row.get("status"),
            created_at=from_epoch_ms(row.get("created_at")),
            updated_at=from_epoch_ms(row.get("updated_at")),
        )

    def _memory_row(self, row: dict[str, Any], needles: list[str]) -> SearchResult:
        matched = _matched_field(row, needles)
        return SearchResult(
            id=str(row["id"]),
            type=SearchResultType.TRANSLATION_MEMORY,
            matched_field=matched,
            highlighted_text=row.get("highlighted") or highlight(row.get("source_text"), needles),
            relevance_score=float(row.get("rank") or 0.0),
            language_code=row.get("target_language"),
            source_text=row.get("source_text"),
            translated_text=row.get("translated_text"),
            context=best_context(row.get(matched) or row.get("source_text"), needles, self._context_length),
            created_at=from_epoch_ms(row.get("created_at")),
            updated_at=from_epoch_ms(row.get("updated_at")),
        )

    def _glossary_row(self, row: dict[str, Any], text: str) -> SearchResult:
        return SearchResult(
            id=str(row["id"]),
            type=SearchResultType.GLOSSARY_ENTRY,
            matched_field="term",
            highlighted_text=highlight(row.get("term"), [text]),
            relevance_score=1.0,
            source_text=row.get("term"),
            translated_text=row.get("translation"),
            context=row.get("notes"),
            category=row.get("category"),
            created_at=from_epoch_ms(row.get("created_at")),
            updated_at=from_epoch_ms(row.get("updated_at")),
        )

    # ------------------------------------------------------------------
    # Storage plumbing
    # ------------------------------------------------------------------

    def _limit(self, limit: int | None) -> int:
        return clamp_limit(self._default_limit if limit is None else limit)

    async def _fetch(self, query: SqlQuery, operation: str) -> list[dict[str, Any]]:
        started = time.perf_counter()
        ticket = object()
        try:
            rows = await asyncio.wait_for(
                asyncio.to_thread(self._store.fetch_all, query, timeout=self._timeout, owner=ticket),
                timeout=self._timeout + _TIMEOUT_GRACE_SECONDS,
            )
        except DatabaseBusyError as exc:
            # No statement of ours ran.
            logger.warning("%s gave up waiting for the database after %.1fs", operation, self._timeout)
            raise StorageError(operation, f"Database busy; gave up after {self._timeout:g}s") from exc
        except (asyncio.TimeoutError, TimeoutError) as exc:
            self._store.interrupt(ticket)
            logger.error("%s timed out after %.1fs", operation, self._timeout)
            raise StorageError(operation, f"Search timed out after {self._timeout:g}s") from exc
        except sqlite3.Error as exc:
            logger.error("Storage failure during %s", operation, exc_info=True)
            raise StorageError(operation) from exc

        logger.debug(
            "%s returned %d rows in %.1f ms",
            operation,
            len(rows),
            (time.perf_counter() - started) * 1000,
        )
        return rows

    async def _count(self, query: SqlQuery, operation: str) -> int:
        rows = await self._fetch(query, operation)
        return int(rows[0]["total"]) if rows else 0

    async def _record(self, query: str, result_count: int) -> None:
        if not self._record_history or self._history is None:
            return
        try:
            await asyncio.to_thread(self._history.add_to_history, query, result_count)
        except SearchError as exc:
            logger.warning("Could not record search history for %r: %s", query, exc)
