"""SQL for REGEXP pattern searches over unit source text and translations.

REGEXP is a scalar function registered on the connection (see
``storage.sqlite_store``) and evaluated row by row with no index, so this path
is far slower than MATCH. Keep its limits small.
"""
from __future__ import annotations

import re

from twmt_search.core.filters import FilterColumns, filter_sql_conditions
from twmt_search.core.sql import SelectPlan, SqlQuery, render, render_union
from twmt_search.models import InvalidPatternError, RegexTarget, SearchFilter


DEFAULT_REGEX_LIMIT = 100


def validate_and_escape(pattern: str) -> str:
    """
    Check that ``pattern`` compiles and escape it for a SQL string literal.

    Args:
        pattern: Regular expression supplied by the user

    Returns:
        The pattern with single quotes doubled

    Raises:
        InvalidPatternError: If the pattern is blank or does not compile
    """
    if pattern is None or not pattern.strip():
        raise InvalidPatternError("Regex pattern cannot be empty", pattern=pattern)
    try:
        re.compile(pattern)
    except re.error as exc:
        raise InvalidPatternError(f"Invalid regex pattern: {exc}", pattern=pattern) from exc
    return pattern.replace("'", "''")


def regex_plan(
    pattern: str,
    search_in: RegexTarget = RegexTarget.SOURCE,
    search_filter: SearchFilter | None = None,
    *,
    limit: int = DEFAULT_REGEX_LIMIT,
    case_sensitive: bool = True,
    include_obsolete: bool = False,
    exclude_source_matches: bool = False,
) -> SelectPlan:
    """Plan a REGEXP search over one side; ``pattern`` must already have passed ``validate_and_escape``.

    SOURCE yields one row per unit, TARGET one row per translation version.
    ``exclude_source_matches`` keeps TARGET rows whose unit source does not
    match, so a BOTH search never reports a unit twice.
    """
    if search_in is RegexTarget.BOTH:
        raise ValueError("regex_plan covers one side; use build_query for BOTH")

    bound = pattern if case_sensitive else f"(?i){pattern}"
    on_target = search_in is RegexTarget.TARGET

    columns = [
        "tv.id AS id" if on_target else "tu.id AS id",
        "tu.id AS unit_id",
        "tu.project_id AS project_id",
        "p.name AS project_name",
        "tu.key AS key",
        "tu.source_text AS source_text",
        "tu.file_name AS file_name",
        "tu.created_at AS created_at",
        "tu.updated_at AS updated_at",
    ]
    if on_target:
        columns += [
            "tv.translated_text AS translated_text",
            "tv.language_code AS language_code",
            "l.name AS language_name",
            "tv.status AS status",
            "'translated_text' AS matched_field",
        ]
    else:
        columns += [
            "NULL AS translated_text",
            "NULL AS language_code",
            "NULL AS language_name",
            "NULL AS status",
            "'source_text' AS matched_field",
        ]

    plan = SelectPlan(
        columns=columns,
        source="translation_units tu",
        joins=["LEFT JOIN projects p ON p.id = tu.project_id"],
        order_by=["tu.key ASC"],
    )

    if on_target:
        plan.joins[:0] = ["INNER JOIN translation_versions tv ON tv.unit_id = tu.id"]
        plan.joins.append("LEFT JOIN languages l ON l.code = tv.language_code")
        plan.add_where("tv.translated_text REGEXP ?", bound)
        if exclude_source_matches:
            plan.add_where("NOT (tu.source_text REGEXP ?)", bound)
    else:
        plan.add_where("tu.source_text REGEXP ?", bound)

    if not include_obsolete:
        plan.add_where("tu.is_obsolete = 0")
    plan.extend_where(filter_sql_conditions(search_filter, FilterColumns(
        project_id="tu.project_id",
        language_code="tv.language_code" if on_target else None,
        status="tv.status" if on_target else None,
        file_name="tu.file_name",
        created_at="tu.created_at",
    )))
    plan.page(limit)
    return plan


def build_query(
    pattern: str,
    search_in: RegexTarget = RegexTarget.BOTH,
    search_filter: SearchFilter | None = None,
    *,
    limit: int = DEFAULT_REGEX_LIMIT,
    case_sensitive: bool = True,
    include_obsolete: bool = False,
) -> SqlQuery:
    """Validate ``pattern`` and render the REGEXP search for it.

    BOTH is the source plan plus the target plan restricted to units whose
    source did not match, so a source match wins and is reported once as a
    unit while target-only matches come back as versions.
    """
    validate_and_escape(pattern)
    options = dict(limit=limit, case_sensitive=case_sensitive, include_obsolete=include_obsolete)
    if search_in is not RegexTarget.BOTH:
        return render(regex_plan(pattern, search_in, search_filter, **options))
    plans = [
        regex_plan(pattern, RegexTarget.SOURCE, search_filter, **options),
        regex_plan(pattern, RegexTarget.TARGET, search_filter, exclude_source_matches=True, **options),
    ]
    return render_union(plans, order_by=["key ASC", "id ASC"], limit=limit)
