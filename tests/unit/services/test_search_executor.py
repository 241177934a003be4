"""Tests for twmt_search.services.search_executor.SearchExecutor."""
from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
import time

import pytest

from twmt_search.models import (
    EmptyQueryError,
    InjectionRejectedError,
    InvalidPatternError,
    InvalidSyntaxError,
    RegexTarget,
    SearchFilter,
    SearchOperator,
    SearchOptions,
    SearchResultType,
    StorageError,
)
from twmt_search.core.sql import SqlQuery
from twmt_search.services import SearchExecutor, search_executor


def _history_queries(history) -> list[str]:
    return [entry.query for entry in history.get_history()]


async def _fail(*_args, **_kwargs):
    raise StorageError("branch", "branch exploded")


class TestUnitSearch:
    """search_units over keys and source text."""

    @pytest.mark.asyncio
    async def test_emperor(self, executor):
        results = await executor.search_units("emperor")
        assert [r.id for r in results] == ["u6"]
        result = results[0]
        assert result.type is SearchResultType.TRANSLATION_UNIT
        assert result.matched_field in ("key", "source_text")
        assert result.project_name == "Warhammer Units"
        assert result.relevance_score > 0
        assert "<mark>" in result.highlighted_text

    @pytest.mark.asyncio
    async def test_sorted_by_relevance(self, executor):
        results = await executor.search_units("iron")
        assert {r.id for r in results} == {"u1", "u5"}
        scores = [r.relevance_score for r in results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_obsolete_units(self, executor):
        assert [r.id for r in await executor.search_units("shield")] == ["u2"]
        results = await executor.search_units("shield", options=SearchOptions(include_obsolete=True))
        assert {r.id for r in results} == {"u2", "u4"}

    @pytest.mark.asyncio
    async def test_key_only(self, executor):
        assert await executor.search_units("legions", key_only=True) == []
        results = await executor.search_units("title", key_only=True)
        assert {r.id for r in results} == {"u3", "u6"}
        assert all(r.matched_field == "key" for r in results)

    @pytest.mark.asyncio
    async def test_or_operator(self, executor):
        results = await executor.search_units("harvest emperor", operator=SearchOperator.OR)
        assert {r.id for r in results} == {"u3", "u6"}

    @pytest.mark.asyncio
    async def test_project_filter(self, executor):
        results = await executor.search_units("iron", SearchFilter(project_ids=["p2"]))
        assert [r.id for r in results] == ["u5"]

    @pytest.mark.asyncio
    async def test_records_history(self, executor, history):
        await executor.search_units("iron")
        assert history.get_history()[0].query == "iron"
        assert history.get_history()[0].result_count == 2

    @pytest.mark.asyncio
    async def test_history_written_off_the_event_loop(self, executor, history, monkeypatch):
        threads = []
        real_add = history.add_to_history

        def tracking_add(query, result_count):
            threads.append(threading.get_ident())
            real_add(query, result_count)

        monkeypatch.setattr(history, "add_to_history", tracking_add)
        await executor.search_units("iron")
        assert threads and threads[0] != threading.get_ident()
        assert _history_queries(history) == ["iron"]

    @pytest.mark.asyncio
    async def test_history_disabled(self, seeded_store, history):
        quiet = SearchExecutor(seeded_store, history, record_history=False)
        await quiet.search_units("iron")
        assert history.get_history() == []

    @pytest.mark.asyncio
    async def test_invalid_input_not_recorded(self, executor, history):
        with pytest.raises(InjectionRejectedError):
            await executor.search_units("x UNION SELECT 1")
        with pytest.raises(EmptyQueryError):
            await executor.search_units("   ")
        assert history.get_history() == []

    @pytest.mark.asyncio
    async def test_leading_exclusion_rejected(self, executor, history):
        with pytest.raises(InvalidSyntaxError):
            await executor.search_units("-iron")
        assert history.get_history() == []

    @pytest.mark.asyncio
    async def test_exclusion_after_term(self, executor):
        results = await executor.search_units("iron -spearmen")
        assert [r.id for r in results] == ["u5"]

    @pytest.mark.asyncio
    async def test_count(self, executor):
        assert await executor.count_units("iron") == 2
        assert await executor.count_units("dragon") == 0


class TestVersionAndMemorySearch:
    """search_versions and search_memory."""

    @pytest.mark.asyncio
    async def test_versions(self, executor):
        results = await executor.search_versions("fer")
        assert {r.id for r in results} == {"v1", "v5"}
        for r in results:
            assert r.type is SearchResultType.TRANSLATION_VERSION
            assert r.matched_field == "translated_text"
            assert r.language_code == "fr"
            assert r.language_name == "French"

    @pytest.mark.asyncio
    async def test_versions_status_filter(self, executor):
        results = await executor.search_versions("infanterie OR schildinfanterie", SearchFilter(statuses=["pending"]))
        assert [r.id for r in results] == ["v3"]

    @pytest.mark.asyncio
    async def test_count_versions(self, executor):
        assert await executor.count_versions("fer") == 2

    @pytest.mark.asyncio
    async def test_memory_target_language(self, executor):
        results = await executor.search_memory("shield", target_language="de")
        assert [r.id for r in results] == ["tm3"]
        assert results[0].type is SearchResultType.TRANSLATION_MEMORY
        assert results[0].language_code == "de"
        assert results[0].translated_text == "Eiserner Schild"


class TestGlossarySearch:
    """search_glossary substring matching."""

    @pytest.mark.asyncio
    async def test_term(self, executor):
        results = await executor.search_glossary("shield")
        assert [r.id for r in results] == ["g1"]
        result = results[0]
        assert result.type is SearchResultType.GLOSSARY_ENTRY
        assert result.matched_field == "term"
        assert result.source_text == "Shield"
        assert result.translated_text == "Bouclier"
        assert result.category == "military"
        assert result.highlighted_text == "<mark>Shield</mark>"

    @pytest.mark.asyncio
    async def test_underscore_is_literal(self, executor):
        assert [r.id for r in await executor.search_glossary("50_50")] == ["g3"]

    @pytest.mark.asyncio
    async def test_category(self, executor):
        assert await executor.search_glossary("shield", category="units") == []

    @pytest.mark.asyncio
    async def test_injection_rejected(self, executor):
        with pytest.raises(InjectionRejectedError):
            await executor.search_glossary("x UNION SELECT 1")


class TestSearchAll:
    """Concurrent aggregate search."""

    @pytest.mark.asyncio
    async def test_merges_sources(self, executor):
        results = await executor.search_all("iron")
        assert {r.id for r in results} == {"u1", "u5", "tm1", "tm3"}
        scores = [r.relevance_score for r in results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_glossary_excluded_by_default(self, executor):
        results = await executor.search_all("shield")
        assert SearchResultType.GLOSSARY_ENTRY not in {r.type for r in results}

    @pytest.mark.asyncio
    async def test_types_filter(self, executor):
        results = await executor.search_all("shield", SearchFilter(types=[SearchResultType.GLOSSARY_ENTRY]))
        assert [r.id for r in results] == ["g1"]

    @pytest.mark.asyncio
    async def test_empty_types(self, executor, history):
        assert await executor.search_all("shield", SearchFilter(types=[])) == []
        assert history.get_history()[0].result_count == 0

    @pytest.mark.asyncio
    async def test_partial_failure(self, executor, monkeypatch):
        monkeypatch.setattr(executor, "_memory", _fail)
        results = await executor.search_all("iron")
        assert {r.id for r in results} == {"u1", "u5"}

    @pytest.mark.asyncio
    async def test_total_failure_is_empty(self, executor, monkeypatch, history, caplog):
        for branch in ("_units", "_versions", "_memory"):
            monkeypatch.setattr(executor, branch, _fail)
        with caplog.at_level(logging.ERROR, logger="twmt_search.services.search_executor"):
            assert await executor.search_all("iron") == []
        assert "Every search_all branch failed" in caplog.text
        assert history.get_history() == []

    @pytest.mark.asyncio
    async def test_limit(self, executor):
        assert len(await executor.search_all("iron", limit=1)) == 1

    @pytest.mark.asyncio
    async def test_records_once(self, executor, history):
        await executor.search_all("iron")
        assert _history_queries(history) == ["iron"]


class TestRegexSearch:
    """search_with_regex."""

    @pytest.mark.asyncio
    async def test_source(self, executor, history):
        results = await executor.search_with_regex(r"^Iron", RegexTarget.SOURCE)
        assert [r.id for r in results] == ["u5", "u1"]
        assert all(r.type is SearchResultType.TRANSLATION_UNIT for r in results)
        assert results[1].highlighted_text == "<mark>Iron</mark> Spearmen"
        assert results[0].relevance_score == 1.0
        assert _history_queries(history) == ["REGEX: ^Iron"]

    @pytest.mark.asyncio
    async def test_target(self, executor):
        results = await executor.search_with_regex(r"\bfer\b", RegexTarget.TARGET)
        assert {r.id for r in results} == {"v1", "v5"}
        assert all(r.type is SearchResultType.TRANSLATION_VERSION for r in results)
        assert all(r.matched_field == "translated_text" for r in results)

    @pytest.mark.asyncio
    async def test_case_sensitivity(self, executor):
        assert await executor.search_with_regex("iron", RegexTarget.SOURCE) == []
        results = await executor.search_with_regex("iron", RegexTarget.SOURCE, case_sensitive=False)
        assert {r.id for r in results} == {"u1", "u5"}

    @pytest.mark.asyncio
    async def test_whole_word(self, executor):
        assert [r.id for r in await executor.search_with_regex("Spear", RegexTarget.SOURCE)] == ["u1"]
        assert await executor.search_with_regex("Spear", RegexTarget.SOURCE, whole_word=True) == []

    @pytest.mark.asyncio
    async def test_both_reports_source_match_once_as_unit(self, executor):
        results = await executor.search_with_regex("shield", RegexTarget.BOTH)
        assert [(r.id, r.type, r.matched_field) for r in results] == [
            ("u2", SearchResultType.TRANSLATION_UNIT, "source_text"),
        ]

    @pytest.mark.asyncio
    async def test_both_source_wins_over_target(self, executor):
        results = await executor.search_with_regex("(?:Iron|fer)", RegexTarget.BOTH)
        assert {r.id: r.matched_field for r in results} == {"u1": "source_text", "u5": "source_text"}

    @pytest.mark.asyncio
    async def test_both_target_only_match_is_version(self, executor):
        results = await executor.search_with_regex("Spearmen|récolte", RegexTarget.BOTH)
        assert [(r.id, r.type) for r in results] == [
            ("v4", SearchResultType.TRANSLATION_VERSION),
            ("u1", SearchResultType.TRANSLATION_UNIT),
        ]
        assert results[0].matched_field == "translated_text"
        assert results[0].language_code == "fr"

    @pytest.mark.asyncio
    async def test_explicit_zero_limit_clamps_to_one(self, executor):
        assert len(await executor.search_with_regex(r"^Iron", RegexTarget.SOURCE, limit=0)) == 1

    @pytest.mark.asyncio
    async def test_invalid_pattern(self, executor, history):
        with pytest.raises(InvalidPatternError):
            await executor.search_with_regex("[invalid")
        assert history.get_history() == []


class TestFailureHandling:
    """Storage errors and timeouts."""

    @pytest.mark.asyncio
    async def test_sqlite_error(self, executor, seeded_store, monkeypatch):
        def broken(*_args, **_kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(seeded_store, "fetch_all", broken)
        with pytest.raises(StorageError) as exc_info:
            await executor.search_units("iron")
        assert exc_info.value.kind == "storage_failure"
        assert exc_info.value.operation == "unit search"

    @pytest.mark.asyncio
    async def test_timeout_interrupts_own_statement(self, seeded_store, history, monkeypatch):
        owners = []
        interrupted = []

        def slow(*_args, owner=None, **_kwargs):
            owners.append(owner)
            time.sleep(0.3)
            return []

        monkeypatch.setattr(search_executor, "_TIMEOUT_GRACE_SECONDS", 0.0)
        monkeypatch.setattr(seeded_store, "fetch_all", slow)
        monkeypatch.setattr(seeded_store, "interrupt", lambda owner=None: interrupted.append(owner))
        executor = SearchExecutor(seeded_store, history, timeout=0.05)

        with pytest.raises(StorageError, match="timed out"):
            await executor.search_units("iron")
        assert len(owners) == 1 and owners[0] is not None
        assert interrupted == owners

    @pytest.mark.asyncio
    async def test_lock_wait_timeout_spares_running_sibling(self, seeded_store, history, monkeypatch):
        interrupted = []
        real_interrupt = seeded_store.interrupt

        def tracking_interrupt(owner=None):
            interrupted.append(owner)
            return real_interrupt(owner)

        monkeypatch.setattr(seeded_store, "interrupt", tracking_interrupt)
        patient = SearchExecutor(seeded_store, history, timeout=60)
        hasty = SearchExecutor(seeded_store, history, timeout=0.05)
        slow_scan = SqlQuery(
            "WITH RECURSIVE n(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM n WHERE x < 10000000) "
            "SELECT COUNT(*) AS total FROM n"
        )

        sibling = asyncio.create_task(patient._fetch(slow_scan, "slow scan"))
        while seeded_store._owner is None and not sibling.done():
            await asyncio.sleep(0.001)

        with pytest.raises(StorageError, match="busy") as exc_info:
            await hasty.search_units("iron")
        assert exc_info.value.operation == "unit search"

        assert await sibling == [{"total": 10_000_000}]
        assert interrupted == []

    @pytest.mark.asyncio
    async def test_history_failure_does_not_fail_search(self, executor, history, monkeypatch):
        def broken(*_args, **_kwargs):
            raise StorageError("add to history")

        monkeypatch.setattr(history, "add_to_history", broken)
        assert len(await executor.search_units("iron")) == 2
