from __future__ import annotations

import pytest

import twmt_search.api.dependencies as deps
from twmt_search.config import Config
from twmt_search.services import SearchService


@pytest.fixture(autouse=True)
def reset_dependency_singletons(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(deps, "_config", None)
    monkeypatch.setattr(deps, "_store", None)
    monkeypatch.setattr(deps, "_search_service", None)
    monkeypatch.setattr(deps, "_started_at", None)


@pytest.mark.parametrize(
    "getter",
    [deps.get_config, deps.get_search_service],
)
def test_getters_require_initialization(getter) -> None:
    with pytest.raises(RuntimeError, match="Services not initialized"):
        getter()


def test_initialize_and_shutdown(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("TWMT_SEARCH_DB_PATH", str(tmp_path / "data" / "twmt.db"))
    deps.initialize_services(Config.load())
    try:
        assert isinstance(deps.get_search_service(), SearchService)
        assert deps.get_started_at() is not None
        assert (tmp_path / "data" / "twmt.db").exists()
    finally:
        deps.shutdown_services()

    with pytest.raises(RuntimeError):
        deps.get_search_service()


def test_shutdown_without_startup_is_noop() -> None:
    deps.shutdown_services()
    assert deps._store is None
