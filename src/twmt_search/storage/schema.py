"""SQLite schema for the searchable translation tables and search bookkeeping.

Every FTS5 table stores an explicit back-reference column (``unit_id``,
``version_id``, ``tm_id``) pointing at the text primary key of its backing
table; queries join on that column, never on ``rowid``. Triggers keep the FTS
tables in step with their backing tables.
"""
from __future__ import annotations


FTS_TOKENIZER = "unicode61 remove_diacritics 2"

CONTENT_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at INTEGER NOT NULL DEFAULT 0,
    updated_at INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS languages (
    id TEXT PRIMARY KEY,
    code TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS translation_units (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    key TEXT NOT NULL,
    source_text TEXT NOT NULL,
    context TEXT,
    notes TEXT,
    file_name TEXT,
    is_obsolete INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_translation_units_project ON translation_units(project_id);

CREATE TABLE IF NOT EXISTS translation_versions (
    id TEXT PRIMARY KEY,
    unit_id TEXT NOT NULL,
    language_code TEXT NOT NULL,
    translated_text TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_translation_versions_unit ON translation_versions(unit_id);

CREATE TABLE IF NOT EXISTS translation_memory (
    id TEXT PRIMARY KEY,
    source_text TEXT NOT NULL,
    translated_text TEXT NOT NULL,
    source_language TEXT NOT NULL,
    target_language TEXT NOT NULL,
    usage_count INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    last_used_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS glossary_entries (
    id TEXT PRIMARY KEY,
    glossary_id TEXT,
    term TEXT NOT NULL,
    translation TEXT NOT NULL,
    category TEXT,
    notes TEXT,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE VIRTUAL TABLE IF NOT EXISTS translation_units_fts USING fts5(
    key,
    source_text,
    unit_id UNINDEXED,
    tokenize = '{FTS_TOKENIZER}'
);

CREATE VIRTUAL TABLE IF NOT EXISTS translation_versions_fts USING fts5(
    translated_text,
    version_id UNINDEXED,
    tokenize = '{FTS_TOKENIZER}'
);

CREATE VIRTUAL TABLE IF NOT EXISTS translation_memory_fts USING fts5(
    source_text,
    translated_text,
    tm_id UNINDEXED,
    tokenize = '{FTS_TOKENIZER}'
);

CREATE TRIGGER IF NOT EXISTS trg_translation_units_fts_insert
AFTER INSERT ON translation_units BEGIN
    INSERT INTO translation_units_fts(key, source_text, unit_id)
    VALUES (new.key, new.source_text, new.id);
END;

CREATE TRIGGER IF NOT EXISTS trg_translation_units_fts_delete
AFTER DELETE ON translation_units BEGIN
    DELETE FROM translation_units_fts WHERE unit_id = old.id;
END;

CREATE TRIGGER IF NOT EXISTS trg_translation_units_fts_update
AFTER UPDATE OF key, source_text ON translation_units BEGIN
    DELETE FROM translation_units_fts WHERE unit_id = old.id;
    INSERT INTO translation_units_fts(key, source_text, unit_id)
    VALUES (new.key, new.source_text, new.id);
END;

CREATE TRIGGER IF NOT EXISTS trg_translation_versions_fts_insert
AFTER INSERT ON translation_versions WHEN new.translated_text IS NOT NULL BEGIN
    INSERT INTO translation_versions_fts(translated_text, version_id)
    VALUES (new.translated_text, new.id);
END;

CREATE TRIGGER IF NOT EXISTS trg_translation_versions_fts_delete
AFTER DELETE ON translation_versions BEGIN
    DELETE FROM translation_versions_fts WHERE version_id = old.id;
END;

CREATE TRIGGER IF NOT EXISTS trg_translation_versions_fts_update
AFTER UPDATE OF translated_text ON translation_versions BEGIN
    DELETE FROM translation_versions_fts WHERE version_id = old.id;
    INSERT INTO translation_versions_fts(translated_text, version_id)
    SELECT new.translated_text, new.id WHERE new.translated_text IS NOT NULL;
END;

CREATE TRIGGER IF NOT EXISTS trg_translation_memory_fts_insert
AFTER INSERT ON translation_memory BEGIN
    INSERT INTO translation_memory_fts(source_text, translated_text, tm_id)
    VALUES (new.source_text, new.translated_text, new.id);
END;

CREATE TRIGGER IF NOT EXISTS trg_translation_memory_fts_delete
AFTER DELETE ON translation_memory BEGIN
    DELETE FROM translation_memory_fts WHERE tm_id = old.id;
END;

CREATE TRIGGER IF NOT EXISTS trg_translation_memory_fts_update
AFTER UPDATE OF source_text, translated_text ON translation_memory BEGIN
    DELETE FROM translation_memory_fts WHERE tm_id = old.id;
    INSERT INTO translation_memory_fts(source_text, translated_text, tm_id)
    VALUES (new.source_text, new.translated_text, new.id);
END;
"""

HISTORY_SCHEMA = """
CREATE TABLE IF NOT EXISTS search_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    query TEXT NOT NULL,
    result_count INTEGER NOT NULL DEFAULT 0,
    searched_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_search_history_searched_at ON search_history(searched_at);

CREATE TABLE IF NOT EXISTS saved_searches (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    query TEXT NOT NULL,
    filter_json TEXT,
    usage_count INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    last_used_at INTEGER
);
"""
