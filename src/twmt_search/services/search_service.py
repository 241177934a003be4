"""Search facade used by the API and CLI.

Every method returns an ``Outcome`` instead of raising, so callers branch on
``outcome.ok`` and read ``outcome.error.kind`` for the failure category.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from twmt_search.config import Config
from twmt_search.core.sql import MAX_LIMIT
from twmt_search.models import (
    InvalidInputError,
    Outcome,
    ParsedQuery,
    RegexTarget,
    SavedSearch,
    SearchError,
    SearchFilter,
    SearchHistoryEntry,
    SearchOperator,
    SearchOptions,
    SearchQuery,
    SearchResult,
    SearchResultsModel,
    SearchScope,
)
from twmt_search.services.search_executor import SearchExecutor
from twmt_search.services.search_history import SearchHistoryManager
from twmt_search.storage import SearchStore


logger = logging.getLogger(__name__)


class SearchService:
    """Executor plus history manager behind one outcome-returning surface."""

    def __init__(self, executor: SearchExecutor, history: SearchHistoryManager) -> None:
        self.executor = executor
        self.history = history

    @classmethod
    def from_config(cls, config: Config, store: SearchStore | None = None) -> "SearchService":
        store = store or SearchStore(config.paths.database_path)
        store.ensure_schema()
        history = SearchHistoryManager(
            store,
            cap=config.history.cap,
            default_limit=config.history.default_list_limit,
        )
        return cls(SearchExecutor.from_config(config, store, history), history)

    # ------------------------------------------------------------------
    # Searches
    # ------------------------------------------------------------------

    async def search_units(self, query: str, search_filter: SearchFilter | None = None, **kwargs: Any) -> Outcome[list[SearchResult]]:
        return await self._attempt(self.executor.search_units(query, search_filter, **kwargs))

    async def search_versions(self, query: str, search_filter: SearchFilter | None = None, **kwargs: Any) -> Outcome[list[SearchResult]]:
        return await self._attempt(self.executor.search_versions(query, search_filter, **kwargs))

    async def search_memory(self, query: str, search_filter: SearchFilter | None = None, **kwargs: Any) -> Outcome[list[SearchResult]]:
        return await self._attempt(self.executor.search_memory(query, search_filter, **kwargs))

    async def search_glossary(self, query: str, **kwargs: Any) -> Outcome[list[SearchResult]]:
        return await self._attempt(self.executor.search_glossary(query, **kwargs))

    async def search_all(self, query: str, search_filter: SearchFilter | None = None, **kwargs: Any) -> Outcome[list[SearchResult]]:
        return await self._attempt(self.executor.search_all(query, search_filter, **kwargs))

    async def search_with_regex(
        self,
        pattern: str,
        search_in: RegexTarget = RegexTarget.BOTH,
        search_filter: SearchFilter | None = None,
        **kwargs: Any,
    ) -> Outcome[list[SearchResult]]:
        return await self._attempt(self.executor.search_with_regex(pattern, search_in, search_filter, **kwargs))

    def validate_query(
        self,
        query: str,
        operator: SearchOperator = SearchOperator.AND,
        options: SearchOptions | None = None,
    ) -> Outcome[ParsedQuery]:
        try:
            return Outcome.success(self.executor.validate_query(query, operator, options))
        except SearchError as exc:
            return Outcome.failure(exc)

    async def run_query(self, query: SearchQuery, page: int = 1) -> SearchResultsModel:
        """
        Execute a full ``SearchQuery`` and return one page of results.

        Regex queries map the scope onto source/target/both. Otherwise
        source and key search units, target searches versions, and both/all
        fan out across every source. Failures come back as an empty page
        with ``error`` set.

        Args:
            query: Query text, scope, operator, filter and options
            page: 1-based page number

        Returns:
            Results page; ``total_count`` is a true count on the units and
            versions paths and the number of results shown otherwise
        """
        page_size = query.options.results_per_page
        if page < 1:
            return SearchResultsModel.empty(query, page_size=page_size, error="Page must be at least 1")

        offset = (page - 1) * page_size
        # Regex and aggregate results are fetched up to the end of this page and sliced.
        window = min(offset + page_size, MAX_LIMIT)
        options = query.options
        try:
            if options.use_regex:
                results = await self.executor.search_with_regex(
                    query.text,
                    RegexTarget.from_scope(query.scope),
                    query.filter,
                    limit=window,
                    case_sensitive=options.case_sensitive,
                    whole_word=options.whole_word,
                    include_obsolete=options.include_obsolete,
                )
                total = len(results)
                results = results[offset:]
            elif query.scope in (SearchScope.SOURCE, SearchScope.KEY):
                key_only = query.scope is SearchScope.KEY
                results = await self.executor.search_units(
                    query.text,
                    query.filter,
                    operator=query.operator,
                    options=options,
                    limit=page_size,
                    offset=offset,
                    key_only=key_only,
                )
                total = await self.executor.count_units(
                    query.text,
                    query.filter,
                    operator=query.operator,
                    options=options,
                    key_only=key_only,
                )
            elif query.scope is SearchScope.TARGET:
                results = await self.executor.search_versions(
                    query.text,
                    query.filter,
                    operator=query.operator,
                    options=options,
                    limit=page_size,
                    offset=offset,
                )
                total = await self.executor.count_versions(
                    query.text,
                    query.filter,
                    operator=query.operator,
                    options=options,
                )
            else:
                results = await self.executor.search_all(
                    query.text,
                    query.filter,
                    operator=query.operator,
                    options=options,
                    limit=window,
                )
                total = len(results)
                results = results[offset:]
        except SearchError as exc:
            logger.info("Search %s failed: %s", query.summary, exc)
            return SearchResultsModel.empty(query, page_size=page_size, error=str(exc))

        return SearchResultsModel(
            results=results,
            total_count=total,
            current_page=page,
            page_size=page_size,
            query=query,
        )

    async def run_saved_search(self, saved_id: str, page: int = 1) -> Outcome[SearchResultsModel]:
        """Bump the saved search's usage counter and run it across all sources."""
        try:
            saved = await asyncio.to_thread(self.history.increment_usage, saved_id)
        except SearchError as exc:
            return Outcome.failure(exc)
        query = SearchQuery(text=saved.query, filter=saved.filter)
        return Outcome.success(await self.run_query(query, page))

    # ------------------------------------------------------------------
    # History and saved searches
    # ------------------------------------------------------------------

    def get_history(self, limit: int | None = None) -> Outcome[list[SearchHistoryEntry]]:
        return self._call(self.history.get_history, limit)

    def clear_history(self) -> Outcome[int]:
        return self._call(self.history.clear_history)

    def save_search(self, name: str, query: str, search_filter: SearchFilter | None = None) -> Outcome[SavedSearch]:
        return self._call(self.history.save_search, name, query, search_filter)

    def get_saved_searches(self) -> Outcome[list[SavedSearch]]:
        return self._call(self.history.get_saved_searches)

    def get_saved_search(self, saved_id: str) -> Outcome[SavedSearch]:
        return self._call(self.history.get_saved_search, saved_id)

    def update_saved_search(self, saved_id: str, **changes: Any) -> Outcome[SavedSearch]:
        return self._call(self.history.update_saved_search, saved_id, **changes)

    def delete_saved_search(self, saved_id: str) -> Outcome[None]:
        return self._call(self.history.delete_saved_search, saved_id)

    def increment_usage(self, saved_id: str) -> Outcome[SavedSearch]:
        return self._call(self.history.increment_usage, saved_id)

    def get_statistics(self) -> Outcome[dict[str, Any]]:
        return self._call(self.history.get_statistics)

    # ------------------------------------------------------------------

    @staticmethod
    async def _attempt(pending) -> Outcome:
        try:
            return Outcome.success(await pending)
        except SearchError as exc:
            return Outcome.failure(exc)

    @staticmethod
    def _call(func, *args: Any, **kwargs: Any) -> Outcome:
        try:
            return Outcome.success(func(*args, **kwargs))
        except SearchError as exc:
            return Outcome.failure(exc)
        except ValueError as exc:
            return Outcome.failure(InvalidInputError(str(exc)))
