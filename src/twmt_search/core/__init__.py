"""Query sanitization, SQL building and snippet helpers."""
from twmt_search.core.query_parser import QueryParser, prepare_fts_query, convert_operators
from twmt_search.core.sanitizer import sanitize, validate_fts_query, contains_injection
from twmt_search.core.sql import SelectPlan, SqlQuery, render, render_count

__all__ = [
    "QueryParser",
    "prepare_fts_query",
    "convert_operators",
    "sanitize",
    "validate_fts_query",
    "contains_injection",
    "SelectPlan",
    "SqlQuery",
    "render",
    "render_count",
]
