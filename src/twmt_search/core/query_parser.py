"""Turn sanitized search text into an FTS5 MATCH expression."""
from __future__ import annotations

import re

from twmt_search.core.sanitizer import sanitize, validate_fts_query
from twmt_search.models import EmptyQueryError, InvalidSyntaxError, ParsedQuery, SearchOperator


FTS_OPERATORS = frozenset({"AND", "OR", "NOT"})

# FTS5 barewords: letters, digits, underscore and non-ASCII characters.
_BAREWORD = re.compile(r"^\w+$")
_HAS_WORD_CHAR = re.compile(r"\w")

_PLUS = re.compile(r"\s*\+\s*")
_PIPE = re.compile(r"\s*\|\s*")
_MINUS = re.compile(r"(^|\s)-\s*(\w+)")


def convert_operators(text: str) -> str:
    """Rewrite shorthand operators: ``+`` to AND, ``|`` to OR, ``-word`` to NOT word."""
    converted = _PLUS.sub(" AND ", text)
    converted = _PIPE.sub(" OR ", converted)
    converted = _MINUS.sub(r"\1NOT \2", converted)
    return " ".join(converted.split())


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


class QueryParser:
    def parse(
        self,
        sanitized: str,
        operator: SearchOperator = SearchOperator.AND,
        *,
        phrase: bool = False,
        prefix: bool = False,
    ) -> ParsedQuery:
        items = self._tokenize(sanitized)
        if items and items[0] == ("op", "NOT"):
            # FTS5 NOT needs a left operand.
            raise InvalidSyntaxError("Query cannot start with NOT")
        result = ParsedQuery(original=sanitized, expression="")

        operands: list[tuple[str, str]] = []
        for kind, value in items:
            if kind == "phrase":
                result.phrases.append(value)
            elif kind == "term":
                result.terms.append(value)
            else:
                result.operators.append(value)
            operands.append((kind, value))

        if phrase:
            words = [value for kind, value in operands if kind != "op"]
            if not words:
                raise EmptyQueryError("Search query has no searchable terms")
            expression = _quote(" ".join(words))
            result.expression = expression + "*" if prefix else expression
            return result

        rendered = self._render(operands, operator, prefix=prefix)
        if not rendered:
            raise EmptyQueryError("Search query has no searchable terms")
        result.expression = rendered
        return result

    def _tokenize(self, sanitized: str) -> list[tuple[str, str]]:
        """Split sanitized text into ("phrase" | "term" | "op", value) items.

        The sanitizer doubles quotes, so a ``""`` pair marks where the user
        typed a double quote and ``''`` stands for a literal apostrophe.
        """
        items: list[tuple[str, str]] = []
        pos = 0
        length = len(sanitized)
        while pos < length:
            if sanitized[pos].isspace():
                pos += 1
                continue

            if sanitized.startswith('""', pos):
                end = sanitized.find('""', pos + 2)
                if end == -1:
                    end = length
                body = sanitized[pos + 2:end].replace("''", "'")
                body = " ".join(body.split())
                if _HAS_WORD_CHAR.search(body):
                    items.append(("phrase", body))
                pos = end + 2
                continue

            end = pos
            while end < length and not sanitized[end].isspace() and not sanitized.startswith('""', end):
                end += 1
            word = sanitized[pos:end].replace("''", "'")
            pos = end

            if word in FTS_OPERATORS:
                items.append(("op", word))
            elif _HAS_WORD_CHAR.search(word):
                items.append(("term", word))
        return items

    def _render(
        self,
        operands: list[tuple[str, str]],
        operator: SearchOperator,
        *,
        prefix: bool,
    ) -> str:
        joiner = None if operator is SearchOperator.AND else operator.fts_operator
        parts: list[str] = []
        pending_op: str | None = None

        last_operand_index = max(
            (i for i, (kind, _) in enumerate(operands) if kind != "op"),
            default=-1,
        )

        for index, (kind, value) in enumerate(operands):
            if kind == "op":
                # Operators only bind between two operands; a leading AND/OR
                # or a run of them keeps the first.
                if parts and pending_op is None:
                    pending_op = value
                continue

            if kind == "phrase":
                token = _quote(value)
            elif _BAREWORD.match(value) and value.upper() != "NEAR":
                token = value
            else:
                token = _quote(value)

            if prefix and index == last_operand_index:
                token += "*"

            if parts:
                op = pending_op or joiner
                if op:
                    parts.append(op)
            parts.append(token)
            pending_op = None

        return " ".join(parts)


def prepare_fts_query(
    raw_query: str,
    operator: SearchOperator = SearchOperator.AND,
    *,
    phrase: bool = False,
    prefix: bool = False,
) -> ParsedQuery:
    """
    Run both input checks on ``raw_query`` and build its MATCH expression.

    Args:
        raw_query: Text as typed by the user
        operator: Operator joining plain terms
        phrase: Treat the whole input as one phrase
        prefix: Prefix-match the last term

    Returns:
        Parsed query whose ``expression`` is safe to pass to MATCH

    Raises:
        EmptyQueryError: Blank input, or nothing searchable left after sanitizing
        InvalidSyntaxError: Malformed operator syntax or over-long input
        InjectionRejectedError: Input matched a blocked SQL signature
    """
    converted = convert_operators(raw_query or "")
    sanitized = sanitize(converted)
    validate_fts_query(converted)
    return QueryParser().parse(sanitized, operator, phrase=phrase, prefix=prefix)
