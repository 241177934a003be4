"""Pytest configuration and fixtures for twmt_search tests."""

from __future__ import annotations

import pytest

from twmt_search.services import SearchExecutor, SearchHistoryManager, SearchService
from twmt_search.storage import SearchStore


BASE_TS = 1_700_000_000_000
DAY_MS = 86_400_000


# ============================================================================
# SEED DATA
# ============================================================================

PROJECTS = [
    ("p1", "Warhammer Units"),
    ("p2", "Rome Campaign"),
]

LANGUAGES = [
    ("fr", "fr", "French"),
    ("de", "de", "German"),
]

# id, project_id, key, source_text, file_name, is_obsolete, age_days
UNITS = [
    ("u1", "p1", "unit_spearmen_name", "Iron Spearmen", "units.loc", 0, 0),
    ("u2", "p1", "unit_shield_desc", "Heavy shield infantry that holds the line against cavalry", "units.loc", 0, 1),
    ("u3", "p2", "event_harvest_title", "A bountiful harvest", "events.loc", 0, 2),
    ("u4", "p1", "unit_old_shield", "Obsolete shield bearers", "units.loc", 1, 3),
    ("u5", "p2", "tech_iron_working", "Iron working improves weapons", "tech.loc", 0, 4),
    ("u6", "p1", "emperor_title", "The Emperor commands the legions", "lords.loc", 0, 5),
]

# id, unit_id, language_code, translated_text, status
VERSIONS = [
    ("v1", "u1", "fr", "Lanciers de fer", "translated"),
    ("v2", "u2", "fr", "Infanterie lourde au bouclier", "reviewed"),
    ("v3", "u2", "de", "Schwere Schildinfanterie", "pending"),
    ("v4", "u3", "fr", "Une récolte abondante", "translated"),
    ("v5", "u5", "fr", "Le travail du fer améliore les armes", "translated"),
]

# id, source_text, translated_text, source_language, target_language
MEMORY = [
    ("tm1", "Iron Spearmen", "Lanciers de fer", "en", "fr"),
    ("tm2", "Heavy shield", "Bouclier lourd", "en", "fr"),
    ("tm3", "Iron shield", "Eiserner Schild", "en", "de"),
]

# id, glossary_id, term, translation, category, notes
GLOSSARY = [
    ("g1", "main", "Shield", "Bouclier", "military", "Use for every shield item"),
    ("g2", "main", "Spearmen", "Lanciers", "units", None),
    ("g3", "main", "50_50 chance", "Une chance sur deux", "misc", None),
    ("g4", "main", "5050 odds", "Cote égale", "misc", None),
]


def seed_store(store: SearchStore) -> None:
    """Fill a store that already has its schema with the fixture rows."""
    with store.transaction() as conn:
        conn.executemany(
            "INSERT INTO projects (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            [(pid, name, BASE_TS, BASE_TS) for pid, name in PROJECTS],
        )
        conn.executemany("INSERT INTO languages (id, code, name) VALUES (?, ?, ?)", LANGUAGES)
        conn.executemany(
            """
            INSERT INTO translation_units
                (id, project_id, key, source_text, file_name, is_obsolete, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (uid, pid, key, text, file_name, obsolete, BASE_TS - age * DAY_MS, BASE_TS - age * DAY_MS)
                for uid, pid, key, text, file_name, obsolete, age in UNITS
            ],
        )
        conn.executemany(
            """
            INSERT INTO translation_versions
                (id, unit_id, language_code, translated_text, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [(vid, uid, lang, text, status, BASE_TS, BASE_TS) for vid, uid, lang, text, status in VERSIONS],
        )
        conn.executemany(
            """
            INSERT INTO translation_memory
                (id, source_text, translated_text, source_language, target_language,
                 usage_count, created_at, last_used_at, updated_at)
            VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?)
            """,
            [(tid, src, tgt, sl, tl, BASE_TS, BASE_TS, BASE_TS) for tid, src, tgt, sl, tl in MEMORY],
        )
        conn.executemany(
            """
            INSERT INTO glossary_entries
                (id, glossary_id, term, translation, category, notes, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [(gid, glid, term, tr, cat, notes, BASE_TS, BASE_TS) for gid, glid, term, tr, cat, notes in GLOSSARY],
        )


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def store():
    """Empty in-memory store with the full schema."""
    s = SearchStore()
    s.ensure_schema()
    yield s
    s.close()


@pytest.fixture
def seeded_store(store):
    """In-memory store populated with the fixture translation data."""
    seed_store(store)
    return store


@pytest.fixture
def history(store) -> SearchHistoryManager:
    return SearchHistoryManager(store)


@pytest.fixture
def executor(seeded_store, history) -> SearchExecutor:
    return SearchExecutor(seeded_store, history, timeout=5.0)


@pytest.fixture
def service(executor, history) -> SearchService:
    return SearchService(executor, history)
