"""Tests for twmt_search.core.fts_query_builder."""
from __future__ import annotations

import pytest

from twmt_search.core import fts_query_builder as fts
from twmt_search.core.query_parser import prepare_fts_query
from twmt_search.core.sql import MAX_LIMIT
from twmt_search.models import EmptyQueryError, SearchFilter


class TestUnitsQuery:
    """SQL shape of the translation unit search."""

    def test_basic_shape(self):
        parsed = prepare_fts_query("emperor")
        query = fts.build_units_query(parsed.expression, limit=50)
        assert "FROM translation_units_fts" in query.sql
        assert "translation_units_fts MATCH ?" in query.sql
        assert "INNER JOIN translation_units tu ON tu.id = translation_units_fts.unit_id" in query.sql
        assert "ORDER BY rank DESC" in query.sql
        assert query.sql.rstrip().endswith("LIMIT 50")
        assert query.params == ("emperor",)

    def test_match_text_is_bound_not_inlined(self):
        query = fts.build_units_query('"king\'s guard"', limit=10)
        assert "king" not in query.sql
        assert query.params == ('"king\'s guard"',)

    def test_rank_is_negated_bm25(self):
        query = fts.build_units_query("iron", limit=10)
        assert "(-translation_units_fts.rank) AS rank" in query.sql

    def test_key_only_restricts_column(self):
        query = fts.build_units_query("iron OR bronze", limit=10, key_only=True)
        assert query.params == ("{key} : (iron OR bronze)",)

    def test_obsolete_excluded_by_default(self):
        assert "tu.is_obsolete = 0" in fts.build_units_query("iron", limit=10).sql
        assert "is_obsolete" not in fts.build_units_query("iron", limit=10, include_obsolete=True).sql

    def test_offset_rendered_when_positive(self):
        query = fts.build_units_query("iron", limit=25, offset=50)
        assert "LIMIT 25 OFFSET 50" in query.sql

    def test_filter_uses_unit_columns(self):
        search_filter = SearchFilter(project_ids=["p1"], file_names=["units.loc"], language_codes=["fr"])
        query = fts.build_units_query("iron", search_filter, limit=10)
        assert "tu.project_id IN ('p1')" in query.sql
        assert "tu.file_name IN ('units.loc')" in query.sql
        # Units carry no language; the filter field is skipped here.
        assert "language_code" not in query.sql

    def test_min_relevance_filters_on_score(self):
        query = fts.build_units_query("iron", SearchFilter(min_relevance_score=0.5), limit=10)
        assert "(-translation_units_fts.rank) >= 0.5" in query.sql


class TestLimitClamping:
    """Every builder keeps LIMIT within [1, MAX_LIMIT]."""

    @pytest.mark.parametrize(
        "limit,expected",
        [(5000, MAX_LIMIT), (0, 1), (-10, 1), (1, 1), (1000, 1000)],
    )
    def test_units(self, limit, expected):
        query = fts.build_units_query("iron", limit=limit)
        assert f"LIMIT {expected}" in query.sql

    def test_versions(self):
        assert f"LIMIT {MAX_LIMIT}" in fts.build_versions_query("iron", limit=5000).sql

    def test_memory(self):
        assert "LIMIT 1" in fts.build_memory_query("iron", limit=0).sql

    def test_glossary(self):
        assert f"LIMIT {MAX_LIMIT}" in fts.build_glossary_query("iron", limit=99999).sql


class TestVersionsQuery:
    """SQL shape of the translated text search."""

    def test_joins_through_unit(self):
        query = fts.build_versions_query("fer", limit=10)
        assert "INNER JOIN translation_versions tv ON tv.id = translation_versions_fts.version_id" in query.sql
        assert "INNER JOIN translation_units tu ON tu.id = tv.unit_id" in query.sql
        assert "LEFT JOIN languages l ON l.code = tv.language_code" in query.sql

    def test_filter_uses_version_columns(self):
        search_filter = SearchFilter(language_codes=["fr", "de"], statuses=["translated"])
        query = fts.build_versions_query("fer", search_filter, limit=10)
        assert "tv.language_code IN ('fr', 'de')" in query.sql
        assert "tv.status IN ('translated')" in query.sql


class TestMemoryQuery:
    """SQL shape of the translation memory search."""

    def test_target_language(self):
        query = fts.build_memory_query("shield", limit=10, target_language="fr")
        assert "tm.target_language IN ('fr')" in query.sql
        assert "FROM translation_memory_fts" in query.sql

    def test_filter_language_maps_to_target(self):
        query = fts.build_memory_query("shield", SearchFilter(language_codes=["de"]), limit=10)
        assert "tm.target_language IN ('de')" in query.sql


class TestGlossaryQuery:
    """SQL shape of the glossary LIKE search."""

    def test_like_pattern_bound_three_times(self):
        query = fts.build_glossary_query("shield", limit=10)
        assert query.params == ("%shield%",) * 3
        assert "ORDER BY ge.term ASC" in query.sql

    def test_wildcards_escaped(self):
        query = fts.build_glossary_query("50_50%", limit=10)
        assert query.params[0] == "%50\\_50\\%%"

    def test_glossary_and_category(self):
        query = fts.build_glossary_query("shield", limit=10, glossary_id="main", category="mili'tary")
        assert "ge.glossary_id IN ('main')" in query.sql
        assert "ge.category IN ('mili''tary')" in query.sql


class TestEmptyQueryNeverReachesBuilder:
    def test_empty(self):
        with pytest.raises(EmptyQueryError):
            prepare_fts_query("")
