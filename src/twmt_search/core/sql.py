"""Typed SELECT plans rendered to SQL in one place.

Builders describe a query as a ``SelectPlan`` (columns, source, joins,
predicates, ordering, paging) and ``render`` turns it into SQL text plus the
bound parameters, in the order their placeholders appear.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


MAX_LIMIT = 1000
MAX_OFFSET = 1_000_000


def clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_LIMIT))


def clamp_offset(offset: int) -> int:
    return max(0, min(int(offset), MAX_OFFSET))


@dataclass(frozen=True)
class SqlQuery:
    """Rendered SQL statement and its positional parameters."""
    sql: str
    params: tuple[Any, ...] = ()


@dataclass
class SelectPlan:
    """Structured description of a single SELECT statement."""
    columns: list[str]
    source: str
    joins: list[str] = field(default_factory=list)
    where: list[str] = field(default_factory=list)
    order_by: list[str] = field(default_factory=list)
    limit: int | None = None
    offset: int = 0
    column_params: list[Any] = field(default_factory=list)
    where_params: list[Any] = field(default_factory=list)

    def add_where(self, condition: str, *params: Any) -> None:
        self.where.append(condition)
        self.where_params.extend(params)

    def extend_where(self, conditions: list[str]) -> None:
        self.where.extend(conditions)

    def page(self, limit: int, offset: int = 0) -> None:
        self.limit = clamp_limit(limit)
        self.offset = clamp_offset(offset)


def _body(plan: SelectPlan) -> list[str]:
    lines = ["SELECT", "    " + ",\n    ".join(plan.columns), f"FROM {plan.source}"]
    lines.extend(plan.joins)
    if plan.where:
        lines.append("WHERE " + "\n  AND ".join(plan.where))
    return lines


def render(plan: SelectPlan) -> SqlQuery:
    """Render ``plan`` with ordering and a LIMIT/OFFSET clause."""
    lines = _body(plan)
    if plan.order_by:
        lines.append("ORDER BY " + ", ".join(plan.order_by))
    if plan.limit is not None:
        if plan.offset > 0:
            lines.append(f"LIMIT {plan.limit} OFFSET {plan.offset}")
        else:
            lines.append(f"LIMIT {plan.limit}")
    return SqlQuery(
        sql="\n".join(lines),
        params=tuple(plan.column_params) + tuple(plan.where_params),
    )


def render_count(plan: SelectPlan) -> SqlQuery:
    """Render a ``COUNT(*)`` over the rows ``plan`` matches, ignoring paging."""
    inner = "\n".join(_body(plan))
    return SqlQuery(
        sql=f"SELECT COUNT(*) AS total FROM (\n{inner}\n)",
        params=tuple(plan.column_params) + tuple(plan.where_params),
    )


def render_union(plans: list[SelectPlan], order_by: list[str], limit: int) -> SqlQuery:
    """Render ``plans`` joined by ``UNION ALL`` under one ordering and LIMIT.

    Every plan must select the same columns in the same order. Per-plan
    ordering and paging are ignored.
    """
    inner = "\nUNION ALL\n".join("\n".join(_body(plan)) for plan in plans)
    lines = [f"SELECT * FROM (\n{inner}\n)"]
    if order_by:
        lines.append("ORDER BY " + ", ".join(order_by))
    lines.append(f"LIMIT {clamp_limit(limit)}")
    params: list[Any] = []
    for plan in plans:
        params.extend(plan.column_params)
        params.extend(plan.where_params)
    return SqlQuery(sql="\n".join(lines), params=tuple(params))
