"""Context windows and ``<mark>`` highlighting for search results."""
from __future__ import annotations

import html
import re


DEFAULT_CONTEXT_LENGTH = 50
ELLIPSIS = "..."
MARK_START = "<mark>"
MARK_END = "</mark>"


def extract_context(text: str | None, query: str, context_length: int = DEFAULT_CONTEXT_LENGTH) -> str:
    """
    Cut a window of text around the first case-insensitive occurrence of ``query``.

    Args:
        text: Text to excerpt
        query: Substring to center the window on
        context_length: Characters of surrounding text, split evenly before and after

    Returns:
        The excerpt with ``...`` on each truncated side, or the first
        ``context_length`` characters when ``query`` does not occur verbatim
    """
    if not text:
        return ""
    needle = query.strip().lower()
    index = text.lower().find(needle) if needle else -1
    if index == -1:
        if len(text) <= context_length:
            return text
        return text[:context_length] + ELLIPSIS

    half = context_length // 2
    start = max(0, index - half)
    end = min(len(text), index + len(needle) + half)
    excerpt = text[start:end]
    if start > 0:
        excerpt = ELLIPSIS + excerpt
    if end < len(text):
        excerpt = excerpt + ELLIPSIS
    return excerpt


def best_context(text: str | None, needles: list[str], context_length: int = DEFAULT_CONTEXT_LENGTH) -> str:
    """``extract_context`` for the first needle that occurs in ``text``."""
    if not text:
        return ""
    lowered = text.lower()
    for needle in needles:
        if needle and needle.lower() in lowered:
            return extract_context(text, needle, context_length)
    return extract_context(text, needles[0] if needles else "", context_length)


def highlight(text: str | None, needles: list[str]) -> str:
    """Wrap case-insensitive occurrences of each needle in ``<mark>`` tags.

    The text is HTML-escaped first so only the marks are markup.
    """
    if not text:
        return ""
    escaped = html.escape(text, quote=False)
    terms = sorted({html.escape(n.strip(), quote=False) for n in needles if n and n.strip()}, key=len, reverse=True)
    if not terms:
        return escaped
    pattern = re.compile("|".join(re.escape(t) for t in terms), re.IGNORECASE)
    return pattern.sub(lambda m: f"{MARK_START}{m.group(0)}{MARK_END}", escaped)


def pattern_context(text: str | None, pattern: re.Pattern[str], context_length: int = DEFAULT_CONTEXT_LENGTH) -> str:
    """``extract_context`` centered on the first match of a compiled regex."""
    if not text:
        return ""
    match = pattern.search(text)
    return extract_context(text, match.group(0) if match else "", context_length)


def highlight_pattern(text: str | None, pattern: re.Pattern[str]) -> str:
    """Mark every non-empty match of ``pattern``, escaping the text around it."""
    if not text:
        return ""
    pieces: list[str] = []
    cursor = 0
    for match in pattern.finditer(text):
        if match.end() == match.start():
            continue
        pieces.append(html.escape(text[cursor:match.start()], quote=False))
        pieces.append(f"{MARK_START}{html.escape(match.group(0), quote=False)}{MARK_END}")
        cursor = match.end()
    pieces.append(html.escape(text[cursor:], quote=False))
    return "".join(pieces)
