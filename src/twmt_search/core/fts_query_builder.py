"""SQL for the FTS5 translation tables and the LIKE-based glossary search.

MATCH expressions passed in here must come from ``core.query_parser``, which
runs the sanitizer. The expression is still bound as a parameter rather than
spliced into the SQL text.

``rank`` in every result set is the negated bm25 score, so larger means more
relevant and ``ORDER BY rank DESC`` lists the best matches first.
"""
from __future__ import annotations

from twmt_search.core.filters import FilterColumns, filter_sql_conditions, sql_in_list
from twmt_search.core.sql import SelectPlan, SqlQuery, render
from twmt_search.models import SearchFilter


UNITS_FTS = "translation_units_fts"
VERSIONS_FTS = "translation_versions_fts"
MEMORY_FTS = "translation_memory_fts"

SNIPPET_START = "<mark>"
SNIPPET_END = "</mark>"
SNIPPET_ELLIPSIS = "..."
SNIPPET_TOKENS = 10


def _snippet(table: str, column: int, tokens: int = SNIPPET_TOKENS) -> str:
    return (
        f"snippet({table}, {column}, '{SNIPPET_START}', '{SNIPPET_END}', "
        f"'{SNIPPET_ELLIPSIS}', {int(tokens)})"
    )


def _relevance(table: str) -> str:
    return f"(-{table}.rank)"


def units_plan(
    match_expression: str,
    search_filter: SearchFilter | None = None,
    *,
    limit: int,
    offset: int = 0,
    key_only: bool = False,
    include_obsolete: bool = False,
    snippet_tokens: int = SNIPPET_TOKENS,
) -> SelectPlan:
    """Plan a search over unit keys and source text.

    ``key_only`` restricts the match to the ``key`` column.
    """
    expression = f"{{key}} : ({match_expression})" if key_only else match_expression
    plan = SelectPlan(
        columns=[
            "tu.id AS id",
            "tu.project_id AS project_id",
            "p.name AS project_name",
            "tu.key AS key",
            "tu.source_text AS source_text",
            "tu.context AS context",
            "tu.notes AS notes",
            "tu.file_name AS file_name",
            "tu.created_at AS created_at",
            "tu.updated_at AS updated_at",
            f"{_relevance(UNITS_FTS)} AS rank",
            f"{_snippet(UNITS_FTS, -1, snippet_tokens)} AS highlighted",
        ],
        source=UNITS_FTS,
        joins=[
            f"INNER JOIN translation_units tu ON tu.id = {UNITS_FTS}.unit_id",
            "LEFT JOIN projects p ON p.id = tu.project_id",
        ],
        order_by=["rank DESC"],
    )
    plan.add_where(f"{UNITS_FTS} MATCH ?", expression)
    if not include_obsolete:
        plan.add_where("tu.is_obsolete = 0")
    plan.extend_where(filter_sql_conditions(search_filter, FilterColumns(
        project_id="tu.project_id",
        file_name="tu.file_name",
        created_at="tu.created_at",
        relevance=_relevance(UNITS_FTS),
    )))
    plan.page(limit, offset)
    return plan


def versions_plan(
    match_expression: str,
    search_filter: SearchFilter | None = None,
    *,
    limit: int,
    offset: int = 0,
    include_obsolete: bool = False,
    snippet_tokens: int = SNIPPET_TOKENS,
) -> SelectPlan:
    """Plan a search over translated text, joined through the unit for key and source."""
    plan = SelectPlan(
        columns=[
            "tv.id AS id",
            "tu.id AS unit_id",
            "tu.project_id AS project_id",
            "p.name AS project_name",
            "tv.language_code AS language_code",
            "l.name AS language_name",
            "tu.key AS key",
            "tu.source_text AS source_text",
            "tv.translated_text AS translated_text",
            "tv.status AS status",
            "tu.file_name AS file_name",
            "tv.created_at AS created_at",
            "tv.updated_at AS updated_at",
            f"{_relevance(VERSIONS_FTS)} AS rank",
            f"{_snippet(VERSIONS_FTS, 0, snippet_tokens)} AS highlighted",
        ],
        source=VERSIONS_FTS,
        joins=[
            f"INNER JOIN translation_versions tv ON tv.id = {VERSIONS_FTS}.version_id",
            "INNER JOIN translation_units tu ON tu.id = tv.unit_id",
            "LEFT JOIN projects p ON p.id = tu.project_id",
            "LEFT JOIN languages l ON l.code = tv.language_code",
        ],
        order_by=["rank DESC"],
    )
    plan.add_where(f"{VERSIONS_FTS} MATCH ?", match_expression)
    if not include_obsolete:
        plan.add_where("tu.is_obsolete = 0")
    plan.extend_where(filter_sql_conditions(search_filter, FilterColumns(
        project_id="tu.project_id",
        language_code="tv.language_code",
        status="tv.status",
        file_name="tu.file_name",
        created_at="tv.created_at",
        relevance=_relevance(VERSIONS_FTS),
    )))
    plan.page(limit, offset)
    return plan


def memory_plan(
    match_expression: str,
    search_filter: SearchFilter | None = None,
    *,
    source_language: str | None = None,
    target_language: str | None = None,
    limit: int,
    offset: int = 0,
    snippet_tokens: int = SNIPPET_TOKENS,
) -> SelectPlan:
    """Plan a search over translation memory source/target pairs.

    ``language_codes`` in the filter apply to the target language.
    """
    plan = SelectPlan(
        columns=[
            "tm.id AS id",
            "tm.source_text AS source_text",
            "tm.translated_text AS translated_text",
            "tm.source_language AS source_language",
            "tm.target_language AS target_language",
            "tm.usage_count AS usage_count",
            "tm.created_at AS created_at",
            "tm.last_used_at AS last_used_at",
            "tm.updated_at AS updated_at",
            f"{_relevance(MEMORY_FTS)} AS rank",
            f"{_snippet(MEMORY_FTS, -1, snippet_tokens)} AS highlighted",
        ],
        source=MEMORY_FTS,
        joins=[f"INNER JOIN translation_memory tm ON tm.id = {MEMORY_FTS}.tm_id"],
        order_by=["rank DESC"],
    )
    plan.add_where(f"{MEMORY_FTS} MATCH ?", match_expression)
    if source_language:
        plan.add_where(sql_in_list("tm.source_language", [source_language]))
    if target_language:
        plan.add_where(sql_in_list("tm.target_language", [target_language]))
    plan.extend_where(filter_sql_conditions(search_filter, FilterColumns(
        language_code="tm.target_language",
        created_at="tm.created_at",
        relevance=_relevance(MEMORY_FTS),
    )))
    plan.page(limit, offset)
    return plan


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def glossary_plan(
    text: str,
    *,
    glossary_id: str | None = None,
    category: str | None = None,
    limit: int,
    offset: int = 0,
) -> SelectPlan:
    """Plan a substring search over glossary terms, translations and notes.

    There is no relevance signal here, so rows come back alphabetically by term.
    """
    pattern = _like_pattern(text.strip())
    plan = SelectPlan(
        columns=[
            "ge.id AS id",
            "ge.glossary_id AS glossary_id",
            "ge.term AS term",
            "ge.translation AS translation",
            "ge.category AS category",
            "ge.notes AS notes",
            "ge.created_at AS created_at",
            "ge.updated_at AS updated_at",
        ],
        source="glossary_entries ge",
        order_by=["ge.term ASC"],
    )
    plan.add_where(
        "(ge.term LIKE ? ESCAPE '\\' OR ge.translation LIKE ? ESCAPE '\\' "
        "OR ge.notes LIKE ? ESCAPE '\\')",
        pattern,
        pattern,
        pattern,
    )
    if glossary_id is not None:
        plan.add_where(sql_in_list("ge.glossary_id", [glossary_id]))
    if category is not None:
        plan.add_where(sql_in_list("ge.category", [category]))
    plan.page(limit, offset)
    return plan


def build_units_query(match_expression: str, search_filter: SearchFilter | None = None, *, limit: int, offset: int = 0, **kwargs) -> SqlQuery:
    return render(units_plan(match_expression, search_filter, limit=limit, offset=offset, **kwargs))


def build_versions_query(match_expression: str, search_filter: SearchFilter | None = None, *, limit: int, offset: int = 0, **kwargs) -> SqlQuery:
    return render(versions_plan(match_expression, search_filter, limit=limit, offset=offset, **kwargs))


def build_memory_query(match_expression: str, search_filter: SearchFilter | None = None, *, limit: int, offset: int = 0, **kwargs) -> SqlQuery:
    return render(memory_plan(match_expression, search_filter, limit=limit, offset=offset, **kwargs))


def build_glossary_query(text: str, *, limit: int, offset: int = 0, **kwargs) -> SqlQuery:
    return render(glossary_plan(text, limit=limit, offset=offset, **kwargs))
