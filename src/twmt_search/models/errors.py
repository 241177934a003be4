"""Typed failures raised by the search layer.

Each error carries a stable ``kind`` string so that callers (the service
facade, the API, the CLI) can branch on the failure without parsing messages.
"""
from __future__ import annotations


class SearchError(RuntimeError):
    """Base class for every search-layer failure."""

    kind = "search_error"


class EmptyQueryError(SearchError):
    kind = "empty_query"

    def __init__(self, message: str = "Search query cannot be empty") -> None:
        super().__init__(message)


class InvalidSyntaxError(SearchError):
    kind = "invalid_syntax"


class InvalidPatternError(SearchError):
    kind = "invalid_pattern"

    def __init__(self, message: str, *, pattern: str | None = None) -> None:
        super().__init__(message)
        self.pattern = pattern


class InjectionRejectedError(SearchError):
    """Input matched a blocked SQL signature.

    The message is deliberately generic; the matched signature is kept on
    ``signature`` for logging only.
    """

    kind = "injection_rejected"

    def __init__(self, signature: str | None = None) -> None:
        super().__init__("Invalid search query")
        self.signature = signature


class StorageError(SearchError):
    kind = "storage_failure"

    def __init__(self, operation: str, message: str | None = None) -> None:
        super().__init__(message or f"Database error during {operation}")
        self.operation = operation


class NotFoundError(SearchError):
    kind = "not_found"


class DuplicateNameError(SearchError):
    kind = "duplicate_name"

    def __init__(self, name: str) -> None:
        super().__init__(f"A saved search named '{name}' already exists")
        self.name = name


class InvalidInputError(SearchError):
    """A non-query argument (saved-search name, page number) was rejected."""

    kind = "invalid_input"
