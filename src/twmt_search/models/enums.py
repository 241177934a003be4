"""Enumerations for twmt_search."""
from __future__ import annotations

from enum import Enum


class SearchScope(Enum):
    """Which part of the translation data a query targets."""
    SOURCE = "source"
    TARGET = "target"
    BOTH = "both"
    KEY = "key"
    ALL = "all"

    @property
    def display_name(self) -> str:
        return _SCOPE_DISPLAY_NAMES[self]


_SCOPE_DISPLAY_NAMES = {
    SearchScope.SOURCE: "Source text",
    SearchScope.TARGET: "Translated text",
    SearchScope.BOTH: "Source and translation",
    SearchScope.KEY: "Unit key",
    SearchScope.ALL: "Everything",
}


class SearchOperator(Enum):
    """How plain search terms are combined."""
    AND = "and"
    OR = "or"
    NOT = "not"

    @property
    def fts_operator(self) -> str:
        return self.value.upper()


class SearchResultType(Enum):
    """Kind of entity a search result points at."""
    TRANSLATION_UNIT = "translation_unit"
    TRANSLATION_VERSION = "translation_version"
    TRANSLATION_MEMORY = "translation_memory"
    GLOSSARY_ENTRY = "glossary_entry"


class RegexTarget(Enum):
    """Columns covered by a regex search."""
    SOURCE = "source"
    TARGET = "target"
    BOTH = "both"

    @classmethod
    def from_scope(cls, scope: SearchScope) -> "RegexTarget":
        if scope in (SearchScope.SOURCE, SearchScope.KEY):
            return cls.SOURCE
        if scope is SearchScope.TARGET:
            return cls.TARGET
        return cls.BOTH
