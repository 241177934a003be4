"""Shared dependencies for FastAPI routes.

Services are built once in ``initialize_services`` (called from the app
lifespan) and handed out by the getters below. Tests replace the getters with
``monkeypatch`` instead of running the lifespan.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Lock

from twmt_search.config import Config
from twmt_search.services import SearchService
from twmt_search.storage import SearchStore


logger = logging.getLogger(__name__)


# Global singletons (initialized on startup)
_config: Config | None = None
_store: SearchStore | None = None
_search_service: SearchService | None = None
_started_at: str | None = None

_service_lock = Lock()


def initialize_services(config: Config | None = None) -> None:
    """Load configuration, open the database and wire the search services."""
    global _config, _store, _search_service, _started_at

    with _service_lock:
        _config = config or Config.load()
        _store = SearchStore(_config.paths.database_path)
        _search_service = SearchService.from_config(_config, _store)
        _started_at = datetime.now(timezone.utc).isoformat()
    logger.info("Search services ready (database: %s)", _store.db_path)


def shutdown_services() -> None:
    """Close the database connection opened by ``initialize_services``."""
    global _store, _search_service

    with _service_lock:
        if _store is not None:
            _store.close()
        _store = None
        _search_service = None


def get_config() -> Config:
    """Get configuration singleton."""
    if _config is None:
        raise RuntimeError("Services not initialized. Call initialize_services() first.")
    return _config


def get_search_service() -> SearchService:
    """Get search service singleton."""
    if _search_service is None:
        raise RuntimeError("Services not initialized. Call initialize_services() first.")
    return _search_service


def get_started_at() -> str | None:
    return _started_at
