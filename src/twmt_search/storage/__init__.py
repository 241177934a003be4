"""SQLite storage for translation search."""
from twmt_search.storage.sqlite_store import DatabaseBusyError, SearchStore, MEMORY_DATABASE

__all__ = [
    "DatabaseBusyError",
    "SearchStore",
    "MEMORY_DATABASE",
]
