"""Sanitization and syntax validation for free-text search input.

Two independent checks guard every FTS search:

* ``sanitize`` rejects SQL injection signatures and reduces the text to a
  safe character set before it is used to build a MATCH expression.
* ``validate_fts_query`` rejects malformed FTS operator syntax (unbalanced
  quotes or parentheses, dangling operators) before any SQL is built.
"""
from __future__ import annotations

import logging
import re

from twmt_search.models.errors import (
    EmptyQueryError,
    InjectionRejectedError,
    InvalidSyntaxError,
)


logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 500

_QUOTE = r"[\"']?"

_INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(DROP|DELETE|UPDATE|INSERT|ALTER|CREATE|EXEC|EXECUTE)\b", re.IGNORECASE),
    re.compile(r"--"),
    re.compile(r"/\*"),
    re.compile(r"\*/"),
    re.compile(r";"),
    re.compile(rf"\bOR\s+{_QUOTE}1{_QUOTE}\s*=\s*{_QUOTE}1{_QUOTE}", re.IGNORECASE),
    re.compile(rf"\bAND\s+{_QUOTE}1{_QUOTE}\s*=\s*{_QUOTE}1{_QUOTE}", re.IGNORECASE),
    re.compile(r"\bUNION\b", re.IGNORECASE),
    re.compile(r"\x00"),
    re.compile(r"\bLOAD_FILE\b", re.IGNORECASE),
    re.compile(r"\bINTO\s+OUTFILE\b", re.IGNORECASE),
    re.compile(r"\bINTO\s+DUMPFILE\b", re.IGNORECASE),
)

# Anything outside letters, digits, whitespace, hyphen, underscore, period
# and quote marks.
_DISALLOWED_RUN = re.compile(r"[^\w\s\-_.\"']+")

_MALFORMED_OPERATOR_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bAND\s+AND\b", re.IGNORECASE), "Repeated AND operator"),
    (re.compile(r"\bOR\s+OR\b", re.IGNORECASE), "Repeated OR operator"),
    (re.compile(r"\bNOT\s+NOT\b", re.IGNORECASE), "Repeated NOT operator"),
    (re.compile(r"^\s*AND\b", re.IGNORECASE), "Query cannot start with AND"),
    (re.compile(r"^\s*OR\b", re.IGNORECASE), "Query cannot start with OR"),
    (re.compile(r"^\s*NOT\b"), "Query cannot start with NOT"),
    (re.compile(r"\bAND\s*$", re.IGNORECASE), "Query cannot end with AND"),
    (re.compile(r"\bOR\s*$", re.IGNORECASE), "Query cannot end with OR"),
)


def find_injection_signature(text: str) -> str | None:
    """Return the first blocked SQL signature found in ``text``, if any."""
    for pattern in _INJECTION_PATTERNS:
        if pattern.search(text):
            return pattern.pattern
    return None


def contains_injection(text: str) -> bool:
    return find_injection_signature(text) is not None


def sanitize(raw_query: str) -> str:
    """
    Validate free-text search input and reduce it to a MATCH-safe form.

    Args:
        raw_query: Text exactly as typed by the user

    Returns:
        Trimmed text with quotes doubled and disallowed character runs
        replaced by a single space

    Raises:
        EmptyQueryError: If the input is blank
        InjectionRejectedError: If the input matches a blocked SQL signature
        InvalidSyntaxError: If the input is longer than 500 characters
    """
    trimmed = (raw_query or "").strip()
    if not trimmed:
        raise EmptyQueryError()

    signature = find_injection_signature(trimmed)
    if signature is not None:
        logger.warning("Rejected search input matching blocked signature %r", signature)
        raise InjectionRejectedError(signature)

    if len(trimmed) > MAX_QUERY_LENGTH:
        raise InvalidSyntaxError(
            f"Search query too long (max {MAX_QUERY_LENGTH} characters)"
        )

    escaped = trimmed.replace('"', '""').replace("'", "''")
    return _DISALLOWED_RUN.sub(" ", escaped).strip()


def validate_fts_query(query: str) -> None:
    """
    Reject obviously malformed FTS operator syntax.

    Args:
        query: Raw query text

    Raises:
        EmptyQueryError: If the query is blank
        InvalidSyntaxError: On unbalanced quotes or parentheses, or dangling
            and repeated boolean operators
    """
    if not query or not query.strip():
        raise EmptyQueryError()

    if query.count('"') % 2 != 0:
        raise InvalidSyntaxError("Unbalanced quotes in query")

    depth = 0
    for char in query:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise InvalidSyntaxError("Unbalanced parentheses in query")
    if depth != 0:
        raise InvalidSyntaxError("Unbalanced parentheses in query")

    for pattern, message in _MALFORMED_OPERATOR_PATTERNS:
        if pattern.search(query):
            raise InvalidSyntaxError(message)
