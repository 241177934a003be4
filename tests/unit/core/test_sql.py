"""Tests for twmt_search.core.sql."""
from __future__ import annotations

from twmt_search.core.sql import SelectPlan, clamp_limit, clamp_offset, render, render_count, render_union


class TestClamp:
    def test_limit(self):
        assert clamp_limit(5000) == 1000
        assert clamp_limit(0) == 1
        assert clamp_limit(-3) == 1
        assert clamp_limit(42) == 42

    def test_offset(self):
        assert clamp_offset(-1) == 0
        assert clamp_offset(10) == 10


class TestRender:
    def _plan(self) -> SelectPlan:
        plan = SelectPlan(columns=["a", "CASE WHEN b = ? THEN 1 END AS c"], source="t", order_by=["a DESC"])
        plan.column_params.append("col")
        plan.add_where("a = ?", 1)
        plan.add_where("b IN (?, ?)", 2, 3)
        plan.page(10, 20)
        return plan

    def test_params_follow_placeholder_order(self):
        query = render(self._plan())
        assert query.params == ("col", 1, 2, 3)
        assert query.sql.count("?") == 4

    def test_where_and_paging(self):
        sql = render(self._plan()).sql
        assert "WHERE a = ?\n  AND b IN (?, ?)" in sql
        assert "ORDER BY a DESC" in sql
        assert sql.endswith("LIMIT 10 OFFSET 20")

    def test_count_ignores_paging(self):
        query = render_count(self._plan())
        assert query.sql.startswith("SELECT COUNT(*) AS total FROM (")
        assert "LIMIT" not in query.sql
        assert "ORDER BY" not in query.sql
        assert query.params == ("col", 1, 2, 3)


class TestRenderUnion:
    def test_branches_share_outer_order_and_limit(self):
        first = SelectPlan(columns=["a", "b"], source="t1", order_by=["a"])
        first.add_where("a = ?", 1)
        first.page(5)
        second = SelectPlan(columns=["a", "b"], source="t2")
        second.column_params.append("x")
        second.add_where("b = ?", 2)

        query = render_union([first, second], order_by=["a ASC"], limit=7)
        assert query.sql.startswith("SELECT * FROM (")
        assert "\nUNION ALL\n" in query.sql
        assert query.sql.count("ORDER BY") == 1
        assert query.sql.endswith("ORDER BY a ASC\nLIMIT 7")
        assert query.params == (1, "x", 2)

    def test_limit_clamped(self):
        plan = SelectPlan(columns=["a"], source="t")
        assert render_union([plan, plan], order_by=[], limit=5000).sql.endswith("LIMIT 1000")
