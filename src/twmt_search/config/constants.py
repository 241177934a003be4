"""
Constants and default values for twmt-search.

Centralizes magic numbers and strings to improve maintainability.
"""

from pathlib import Path

# ============================================================================
# Application Metadata
# ============================================================================

APP_VERSION = "0.1.0"
CONFIG_DIR_NAME = ".twmt-search"

# ============================================================================
# Path Defaults
# ============================================================================

DEFAULT_DATA_DIR = Path.home() / CONFIG_DIR_NAME
DEFAULT_CONFIG_SUBDIR = "config"
DEFAULT_DATABASE_FILE = "twmt.db"

# Config file names
SETTINGS_FILE = "settings.toml"
DEFAULT_SETTINGS_FILE = "settings.default.toml"
ENV_FILE = ".env"

# ============================================================================
# Web Server Defaults
# ============================================================================

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765
DEFAULT_CORS_ORIGINS = ("http://localhost", "http://127.0.0.1")

# ============================================================================
# Search Defaults
# ============================================================================

DEFAULT_SEARCH_LIMIT = 100
DEFAULT_REGEX_LIMIT = 100
DEFAULT_QUERY_TIMEOUT_SECONDS = 5.0
DEFAULT_CONTEXT_LENGTH = 50
DEFAULT_SNIPPET_TOKENS = 10
DEFAULT_RESULTS_PER_PAGE = 50

# ============================================================================
# History Defaults
# ============================================================================

# Single authoritative retention cap for search history.
DEFAULT_HISTORY_CAP = 100
DEFAULT_HISTORY_LIST_LIMIT = 50

# ============================================================================
# Environment Variables
# ============================================================================

ENV_DATA_DIR = "TWMT_SEARCH_DATA_DIR"
ENV_DB_PATH = "TWMT_SEARCH_DB_PATH"
ENV_DEFAULT_LIMIT = "TWMT_SEARCH_DEFAULT_LIMIT"
ENV_REGEX_LIMIT = "TWMT_SEARCH_REGEX_LIMIT"
ENV_QUERY_TIMEOUT = "TWMT_SEARCH_QUERY_TIMEOUT"
ENV_CONTEXT_LENGTH = "TWMT_SEARCH_CONTEXT_LENGTH"
ENV_HISTORY_CAP = "TWMT_SEARCH_HISTORY_CAP"
ENV_RECORD_HISTORY = "TWMT_SEARCH_RECORD_HISTORY"
ENV_HOST = "TWMT_SEARCH_HOST"
ENV_PORT = "TWMT_SEARCH_PORT"
ENV_CORS_ORIGINS = "TWMT_SEARCH_CORS_ORIGINS"
ENV_LOG_LEVEL = "TWMT_SEARCH_LOG_LEVEL"

# ============================================================================
# Error Messages
# ============================================================================

ERROR_NO_CONFIG = """
Configuration file not found: {path}

Create {config_dir}/{settings_file} or copy the packaged {default_file}.
"""

ERROR_INVALID_PORT = "Invalid port number: {port}. Must be between 1 and 65535."
