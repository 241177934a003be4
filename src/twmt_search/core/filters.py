"""SQL predicates for structured search filters.

Filter values are caller-supplied identifiers (project IDs, language codes,
statuses, file names), not search text, so they only need SQL string-literal
escaping. Search text is handled separately by ``core.sanitizer``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from twmt_search.models import SearchFilter, to_epoch_ms


@dataclass(frozen=True)
class FilterColumns:
    """Column expressions a query exposes for each filter field.

    A field mapped to ``None`` does not exist for that query and is skipped.
    """
    project_id: str | None = None
    language_code: str | None = None
    status: str | None = None
    file_name: str | None = None
    created_at: str | None = None
    relevance: str | None = None


def escape_sql_literal(value: str) -> str:
    """Double single quotes so ``value`` can sit inside a SQL string literal."""
    return value.replace("'", "''")


def sql_in_list(column: str, values: list[str]) -> str:
    literals = ", ".join(f"'{escape_sql_literal(v)}'" for v in values)
    return f"{column} IN ({literals})"


def filter_sql_conditions(
    search_filter: SearchFilter | None,
    columns: FilterColumns,
) -> list[str]:
    """
    Build AND-able SQL predicates for the populated fields of a filter.

    Args:
        search_filter: Filter to translate, or None
        columns: Column expressions available in the target query

    Returns:
        List of SQL conditions; empty when the filter is absent or empty
    """
    if search_filter is None or search_filter.is_empty:
        return []

    conditions: list[str] = []
    string_fields = (
        (columns.project_id, search_filter.project_ids),
        (columns.language_code, search_filter.language_codes),
        (columns.status, search_filter.statuses),
        (columns.file_name, search_filter.file_names),
    )
    for column, values in string_fields:
        if column and values:
            conditions.append(sql_in_list(column, values))

    if columns.created_at:
        if search_filter.min_date is not None:
            conditions.append(f"{columns.created_at} >= {to_epoch_ms(search_filter.min_date)}")
        if search_filter.max_date is not None:
            conditions.append(f"{columns.created_at} <= {to_epoch_ms(search_filter.max_date)}")

    min_score = search_filter.min_relevance_score
    if columns.relevance and min_score is not None and math.isfinite(min_score):
        conditions.append(f"{columns.relevance} >= {float(min_score)!r}")

    return conditions
