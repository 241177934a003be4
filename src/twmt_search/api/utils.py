"""Helpers shared by the API routers."""
from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException

from twmt_search.models import Outcome, SearchError


T = TypeVar("T")

ERROR_STATUS: dict[str, int] = {
    "empty_query": 400,
    "invalid_syntax": 400,
    "invalid_pattern": 400,
    "injection_rejected": 400,
    "invalid_input": 400,
    "not_found": 404,
    "duplicate_name": 409,
    "storage_failure": 500,
}


def http_error(error: SearchError) -> HTTPException:
    """Map a search failure onto the HTTP status for its kind."""
    status = ERROR_STATUS.get(error.kind, 500)
    return HTTPException(status_code=status, detail={"error": error.kind, "message": str(error)})


def unwrap_or_raise(outcome: Outcome[T]) -> T:
    """Return the outcome's value or raise the matching ``HTTPException``."""
    if outcome.error is not None:
        raise http_error(outcome.error) from outcome.error
    return outcome.value  # type: ignore[return-value]


def split_csv(value: str | None) -> list[str] | None:
    """Turn ``a,b , c`` into ``["a", "b", "c"]``; blank input means no filter."""
    if value is None:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None
