"""SQLite connection wrapper used by the search and history services.

One connection per store, shared across threads and serialized with a lock.
Each call can carry a deadline; a progress handler aborts the running
statement once it passes.
"""
from __future__ import annotations

import logging
import re
import sqlite3
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any

from twmt_search.core.sql import SqlQuery
from twmt_search.storage.schema import CONTENT_SCHEMA, HISTORY_SCHEMA


logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"

# Progress handler granularity, in SQLite VM instructions.
_PROGRESS_STEPS = 1000


@lru_cache(maxsize=128)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _regexp(pattern: str | None, value: Any) -> bool:
    """SQLite ``REGEXP`` implementation: ``value REGEXP pattern``."""
    if pattern is None or value is None:
        return False
    return _compile(pattern).search(str(value)) is not None


class DatabaseBusyError(TimeoutError):
    """The store lock could not be taken before the caller's deadline."""


class SearchStore:
    def __init__(self, db_path: Path | str = MEMORY_DATABASE) -> None:
        self._db_path = str(db_path)
        if self._db_path != MEMORY_DATABASE:
            Path(self._db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            self._db_path = str(Path(self._db_path).expanduser())

        self._lock = threading.Lock()
        # Guards _owner, which names the caller whose statement holds the connection.
        self._owner_lock = threading.Lock()
        self._owner: object | None = None
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.create_function("REGEXP", 2, _regexp, deterministic=True)
        if self._db_path != MEMORY_DATABASE:
            self._conn.execute("PRAGMA journal_mode=WAL")

    @property
    def db_path(self) -> str:
        return self._db_path

    def ensure_schema(self) -> None:
        """Create translation, FTS and history tables if missing."""
        with self._lock:
            self._conn.executescript(CONTENT_SCHEMA)
            self._conn.executescript(HISTORY_SCHEMA)
            self._conn.commit()
        logger.debug("Search schema ready in %s", self._db_path)

    @contextmanager
    def _locked(self, timeout: float | None, owner: object | None = None) -> Iterator[sqlite3.Connection]:
        deadline = None if timeout is None else time.monotonic() + timeout
        acquired = self._lock.acquire(timeout=-1 if timeout is None else max(timeout, 0))
        if not acquired:
            raise DatabaseBusyError("Timed out waiting for the database")
        with self._owner_lock:
            self._owner = owner
        try:
            if deadline is not None:
                self._conn.set_progress_handler(
                    lambda: 1 if time.monotonic() > deadline else 0,
                    _PROGRESS_STEPS,
                )
            yield self._conn
        finally:
            if deadline is not None:
                self._conn.set_progress_handler(None, _PROGRESS_STEPS)
            with self._owner_lock:
                self._owner = None
            self._lock.release()

    def fetch_all(
        self,
        query: SqlQuery,
        *,
        timeout: float | None = None,
        owner: object | None = None,
    ) -> list[dict[str, Any]]:
        """Run ``query`` and return its rows as dicts.

        ``owner`` tags the call so that ``interrupt(owner)`` reaches this
        statement and nothing else.

        Raises:
            DatabaseBusyError: The lock was not free within ``timeout``
            sqlite3.OperationalError: ``interrupted`` once the deadline passes
        """
        with self._locked(timeout, owner) as conn:
            rows = conn.execute(query.sql, query.params).fetchall()
        return [dict(row) for row in rows]

    def fetch_one(self, query: SqlQuery, *, timeout: float | None = None) -> dict[str, Any] | None:
        with self._locked(timeout) as conn:
            row = conn.execute(query.sql, query.params).fetchone()
        return dict(row) if row is not None else None

    def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> int:
        """Run one write statement in its own transaction and return the affected row count."""
        with self._locked(None) as conn:
            with conn:
                cursor = conn.execute(sql, tuple(params))
            return cursor.rowcount

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the store lock across several statements committed together."""
        with self._locked(None) as conn:
            with conn:
                yield conn

    def interrupt(self, owner: object | None = None) -> bool:
        """Abort the running statement from any thread.

        With ``owner`` set, only a statement started by that caller is
        aborted; returns whether an interrupt was sent.
        """
        with self._owner_lock:
            if owner is not None and self._owner is not owner:
                return False
            self._conn.interrupt()
            return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()
