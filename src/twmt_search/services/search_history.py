"""Search history and saved-search persistence."""
from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from twmt_search.config.constants import DEFAULT_HISTORY_CAP, DEFAULT_HISTORY_LIST_LIMIT
from twmt_search.core.sql import SqlQuery
from twmt_search.models import (
    DuplicateNameError,
    EmptyQueryError,
    InvalidInputError,
    NotFoundError,
    SavedSearch,
    SearchFilter,
    SearchHistoryEntry,
    StorageError,
    from_epoch_ms,
    to_epoch_ms,
)
from twmt_search.storage import SearchStore


logger = logging.getLogger(__name__)

_SAVED_SEARCH_COLUMNS = "id, name, query, filter_json, usage_count, created_at, last_used_at"


def _now_ms() -> int:
    return to_epoch_ms(datetime.now(timezone.utc))


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("Storage failure during %s", operation, exc_info=True)
        raise StorageError(operation) from exc


def _row_to_saved_search(row: dict[str, Any]) -> SavedSearch:
    filter_json = row.get("filter_json")
    search_filter = SearchFilter.from_dict(json.loads(filter_json)) if filter_json else None
    return SavedSearch(
        id=row["id"],
        name=row["name"],
        query=row["query"],
        filter=search_filter,
        usage_count=int(row["usage_count"]),
        created_at=from_epoch_ms(row["created_at"]),
        last_used_at=from_epoch_ms(row.get("last_used_at")),
    )


def _filter_json(search_filter: SearchFilter | None) -> str | None:
    if search_filter is None or search_filter.is_empty:
        return None
    return json.dumps(search_filter.to_dict())


class SearchHistoryManager:
    """Bounded search history plus named saved searches with usage counters.

    History keeps at most ``cap`` entries; adding beyond the cap evicts the
    oldest rows in the same transaction as the insert.
    """

    def __init__(
        self,
        store: SearchStore,
        *,
        cap: int = DEFAULT_HISTORY_CAP,
        default_limit: int = DEFAULT_HISTORY_LIST_LIMIT,
    ) -> None:
        if cap < 1:
            raise ValueError("History cap must be at least 1.")
        self._store = store
        self._cap = cap
        self._default_limit = default_limit

    @property
    def cap(self) -> int:
        return self._cap

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_to_history(self, query: str, result_count: int) -> None:
        text = (query or "").strip()
        if not text:
            raise EmptyQueryError()

        with _storage_errors("add to history"), self._store.transaction() as conn:
            (count,) = conn.execute("SELECT COUNT(*) FROM search_history").fetchone()
            overflow = count - self._cap + 1
            if overflow > 0:
                conn.execute(
                    """
                    DELETE FROM search_history
                    WHERE id IN (
                        SELECT id FROM search_history
                        ORDER BY searched_at ASC, id ASC
                        LIMIT ?
                    )
                    """,
                    (overflow,),
                )
            conn.execute(
                "INSERT INTO search_history (query, result_count, searched_at) VALUES (?, ?, ?)",
                (text, max(0, int(result_count)), _now_ms()),
            )

    def get_history(self, limit: int | None = None) -> list[SearchHistoryEntry]:
        """Most recent entries first, ``limit`` clamped to [1, cap]."""
        limit = self._default_limit if limit is None else limit
        safe_limit = max(1, min(int(limit), self._cap))
        with _storage_errors("get history"):
            rows = self._store.fetch_all(SqlQuery(
                """
                SELECT id, query, result_count, searched_at
                FROM search_history
                ORDER BY searched_at DESC, id DESC
                LIMIT ?
                """,
                (safe_limit,),
            ))
        return [
            SearchHistoryEntry(
                id=int(row["id"]),
                query=row["query"],
                result_count=int(row["result_count"]),
                searched_at=from_epoch_ms(row["searched_at"]),
            )
            for row in rows
        ]

    def clear_history(self) -> int:
        with _storage_errors("clear history"):
            removed = self._store.execute("DELETE FROM search_history")
        logger.info("Cleared %d search history entries", removed)
        return removed

    # ------------------------------------------------------------------
    # Saved searches
    # ------------------------------------------------------------------

    def save_search(
        self,
        name: str,
        query: str,
        search_filter: SearchFilter | None = None,
    ) -> SavedSearch:
        clean_name = self._validate_name(name)
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Saved search query is required.")

        saved_id = str(uuid4())
        with _storage_errors("save search"):
            try:
                with self._store.transaction() as conn:
                    existing = conn.execute(
                        "SELECT 1 FROM saved_searches WHERE name = ?", (clean_name,)
                    ).fetchone()
                    if existing is not None:
                        raise DuplicateNameError(clean_name)
                    conn.execute(
                        """
                        INSERT INTO saved_searches (id, name, query, filter_json, usage_count, created_at)
                        VALUES (?, ?, ?, ?, 0, ?)
                        """,
                        (saved_id, clean_name, query.strip(), _filter_json(search_filter), _now_ms()),
                    )
            except sqlite3.IntegrityError as exc:
                raise DuplicateNameError(clean_name) from exc
        return self.get_saved_search(saved_id)

    def get_saved_searches(self) -> list[SavedSearch]:
        with _storage_errors("list saved searches"):
            rows = self._store.fetch_all(SqlQuery(
                f"""
                SELECT {_SAVED_SEARCH_COLUMNS}
                FROM saved_searches
                ORDER BY usage_count DESC, created_at DESC
                """
            ))
        return [_row_to_saved_search(row) for row in rows]

    def get_saved_search(self, saved_id: str) -> SavedSearch:
        with _storage_errors("get saved search"):
            row = self._store.fetch_one(SqlQuery(
                f"SELECT {_SAVED_SEARCH_COLUMNS} FROM saved_searches WHERE id = ?",
                (saved_id,),
            ))
        if row is None:
            raise NotFoundError(f"Saved search not found: {saved_id}")
        return _row_to_saved_search(row)

    def update_saved_search(
        self,
        saved_id: str,
        *,
        name: str | None = None,
        query: str | None = None,
        search_filter: SearchFilter | None = None,
        clear_filter: bool = False,
    ) -> SavedSearch:
        """Change any of name, query and filter; omitted fields keep their value."""
        assignments: list[str] = []
        params: list[Any] = []

        clean_name = None
        if name is not None:
            clean_name = self._validate_name(name)
            assignments.append("name = ?")
            params.append(clean_name)
        if query is not None:
            if not query.strip():
                raise InvalidInputError("Saved search query is required.")
            assignments.append("query = ?")
            params.append(query.strip())
        if search_filter is not None or clear_filter:
            assignments.append("filter_json = ?")
            params.append(None if clear_filter else _filter_json(search_filter))

        with _storage_errors("update saved search"):
            try:
                with self._store.transaction() as conn:
                    exists = conn.execute(
                        "SELECT 1 FROM saved_searches WHERE id = ?", (saved_id,)
                    ).fetchone()
                    if exists is None:
                        raise NotFoundError(f"Saved search not found: {saved_id}")
                    if clean_name is not None:
                        clash = conn.execute(
                            "SELECT 1 FROM saved_searches WHERE name = ? AND id != ?",
                            (clean_name, saved_id),
                        ).fetchone()
                        if clash is not None:
                            raise DuplicateNameError(clean_name)
                    if assignments:
                        conn.execute(
                            f"UPDATE saved_searches SET {', '.join(assignments)} WHERE id = ?",
                            (*params, saved_id),
                        )
            except sqlite3.IntegrityError as exc:
                raise DuplicateNameError(clean_name or "") from exc
        return self.get_saved_search(saved_id)

    def delete_saved_search(self, saved_id: str) -> None:
        with _storage_errors("delete saved search"):
            removed = self._store.execute("DELETE FROM saved_searches WHERE id = ?", (saved_id,))
        if removed == 0:
            raise NotFoundError(f"Saved search not found: {saved_id}")

    def increment_usage(self, saved_id: str) -> SavedSearch:
        with _storage_errors("increment saved search usage"):
            updated = self._store.execute(
                """
                UPDATE saved_searches
                SET usage_count = usage_count + 1, last_used_at = ?
                WHERE id = ?
                """,
                (_now_ms(), saved_id),
            )
        if updated == 0:
            raise NotFoundError(f"Saved search not found: {saved_id}")
        return self.get_saved_search(saved_id)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self, *, top: int = 10) -> dict[str, Any]:
        with _storage_errors("get search statistics"):
            summary = self._store.fetch_one(SqlQuery(
                """
                SELECT
                    COUNT(*) AS total_searches,
                    COUNT(DISTINCT query) AS unique_queries,
                    AVG(result_count) AS avg_results,
                    SUM(CASE WHEN result_count = 0 THEN 1 ELSE 0 END) AS zero_result_searches,
                    MAX(searched_at) AS last_searched_at
                FROM search_history
                """
            )) or {}
            saved = self._store.fetch_one(SqlQuery(
                """
                SELECT COUNT(*) AS saved_searches_count, SUM(usage_count) AS saved_search_uses
                FROM saved_searches
                """
            )) or {}
            top_terms = self._store.fetch_all(SqlQuery(
                """
                SELECT query, COUNT(*) AS search_count, AVG(result_count) AS avg_results
                FROM search_history
                GROUP BY query
                ORDER BY search_count DESC, MAX(searched_at) DESC
                LIMIT ?
                """,
                (top,),
            ))
            dead_ends = self._store.fetch_all(SqlQuery(
                """
                SELECT query, COUNT(*) AS search_count
                FROM search_history
                WHERE result_count = 0
                GROUP BY query
                ORDER BY search_count DESC, MAX(searched_at) DESC
                LIMIT ?
                """,
                (top,),
            ))
            top_saved = self._store.fetch_all(SqlQuery(
                """
                SELECT id, name, usage_count, last_used_at
                FROM saved_searches
                ORDER BY usage_count DESC, created_at DESC
                LIMIT ?
                """,
                (min(top, 5),),
            ))

        last_searched = from_epoch_ms(summary.get("last_searched_at"))
        return {
            "total_searches": int(summary.get("total_searches") or 0),
            "unique_queries": int(summary.get("unique_queries") or 0),
            "avg_results": round(float(summary.get("avg_results") or 0), 1),
            "zero_result_searches": int(summary.get("zero_result_searches") or 0),
            "last_searched_at": last_searched.isoformat() if last_searched else None,
            "saved_searches_count": int(saved.get("saved_searches_count") or 0),
            "saved_search_uses": int(saved.get("saved_search_uses") or 0),
            "history_cap": self._cap,
            "most_searched_terms": [
                {
                    "query": row["query"],
                    "search_count": int(row["search_count"]),
                    "avg_results": round(float(row["avg_results"] or 0), 1),
                }
                for row in top_terms
            ],
            "zero_result_queries": [
                {"query": row["query"], "search_count": int(row["search_count"])}
                for row in dead_ends
            ],
            "top_saved_searches": [
                {"id": row["id"], "name": row["name"], "usage_count": int(row["usage_count"])}
                for row in top_saved
            ],
        }

    @staticmethod
    def _validate_name(name: str | None) -> str:
        if not isinstance(name, str) or not name.strip():
            raise InvalidInputError("Saved search name is required.")
        return name.strip()
