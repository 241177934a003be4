"""
Configuration management with environment variable and .env support.

Configuration precedence (highest to lowest):
1. Environment variables (TWMT_SEARCH_*)
2. User config file (~/.twmt-search/config/settings.toml)
3. Default config file (twmt_search/config/settings.default.toml)
4. Hardcoded constants (constants.py)
"""

from __future__ import annotations

import os
from typing import overload
from dataclasses import dataclass
from pathlib import Path
import tomli
from dotenv import load_dotenv

from ..core.logging_config import LogConfig
from .constants import (
    DEFAULT_DATA_DIR,
    DEFAULT_CONFIG_SUBDIR,
    DEFAULT_DATABASE_FILE,
    SETTINGS_FILE,
    DEFAULT_SETTINGS_FILE,
    ENV_FILE,
    # Defaults
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_REGEX_LIMIT,
    DEFAULT_QUERY_TIMEOUT_SECONDS,
    DEFAULT_CONTEXT_LENGTH,
    DEFAULT_SNIPPET_TOKENS,
    DEFAULT_RESULTS_PER_PAGE,
    DEFAULT_HISTORY_CAP,
    DEFAULT_HISTORY_LIST_LIMIT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_CORS_ORIGINS,
    # Environment variable names
    ENV_DATA_DIR,
    ENV_DB_PATH,
    ENV_DEFAULT_LIMIT,
    ENV_REGEX_LIMIT,
    ENV_QUERY_TIMEOUT,
    ENV_CONTEXT_LENGTH,
    ENV_HISTORY_CAP,
    ENV_RECORD_HISTORY,
    ENV_HOST,
    ENV_PORT,
    ENV_CORS_ORIGINS,
    ENV_LOG_LEVEL,
    ERROR_NO_CONFIG,
)


# Load .env file at module import time
# Search order: ./.env, ~/.twmt-search/.env, ~/.twmt-search/config/.env
def _load_env_files():
    """Load .env files from standard locations."""
    env_locations = [
        Path.cwd() / ENV_FILE,  # Project root
        DEFAULT_DATA_DIR / ENV_FILE,  # Data directory
        DEFAULT_DATA_DIR / DEFAULT_CONFIG_SUBDIR / ENV_FILE,  # Config directory
    ]

    for env_path in env_locations:
        if env_path.exists():
            load_dotenv(env_path, override=False)  # Don't override already-set vars


_load_env_files()


@overload
def _get_env_str(key: str, default: str) -> str: ...


@overload
def _get_env_str(key: str, default: None = None) -> str | None: ...


def _get_env_str(key: str, default: str | None = None) -> str | None:
    """Get string value from environment variable. Empty strings are treated as missing."""
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


def _get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class PathsConfig:
    data_directory: str
    database_path: str

    @classmethod
    def from_dict(cls, data: dict) -> "PathsConfig":
        """Create PathsConfig from dict with environment variable overrides."""
        data_directory = _get_env_str(
            ENV_DATA_DIR,
            data.get("data_directory", str(DEFAULT_DATA_DIR))
        ) or str(DEFAULT_DATA_DIR)
        database_path = _get_env_str(
            ENV_DB_PATH,
            data.get("database_path", "")
        ) or str(Path(data_directory).expanduser() / DEFAULT_DATABASE_FILE)
        return cls(
            data_directory=data_directory,
            database_path=database_path,
        )


@dataclass
class SearchConfig:
    default_limit: int
    regex_limit: int
    query_timeout_seconds: float
    context_length: int
    snippet_tokens: int
    results_per_page: int
    record_history: bool

    @classmethod
    def from_dict(cls, data: dict) -> "SearchConfig":
        """Create SearchConfig from dict with environment variable overrides."""
        return cls(
            default_limit=_get_env_int(
                ENV_DEFAULT_LIMIT,
                data.get("default_limit", DEFAULT_SEARCH_LIMIT)
            ),
            regex_limit=_get_env_int(
                ENV_REGEX_LIMIT,
                data.get("regex_limit", DEFAULT_REGEX_LIMIT)
            ),
            query_timeout_seconds=_get_env_float(
                ENV_QUERY_TIMEOUT,
                data.get("query_timeout_seconds", DEFAULT_QUERY_TIMEOUT_SECONDS)
            ),
            context_length=_get_env_int(
                ENV_CONTEXT_LENGTH,
                data.get("context_length", DEFAULT_CONTEXT_LENGTH)
            ),
            snippet_tokens=data.get("snippet_tokens", DEFAULT_SNIPPET_TOKENS),
            results_per_page=data.get("results_per_page", DEFAULT_RESULTS_PER_PAGE),
            record_history=_get_env_bool(
                ENV_RECORD_HISTORY,
                data.get("record_history", True)
            ),
        )


@dataclass
class HistoryConfig:
    cap: int
    default_list_limit: int

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryConfig":
        """Create HistoryConfig from dict with environment variable overrides."""
        cap = _get_env_int(ENV_HISTORY_CAP, data.get("cap", DEFAULT_HISTORY_CAP))
        if cap < 1:
            raise ValueError(f"history.cap must be at least 1, got {cap}")
        return cls(
            cap=cap,
            default_list_limit=data.get("default_list_limit", DEFAULT_HISTORY_LIST_LIMIT),
        )


@dataclass
class ServerConfig:
    host: str
    port: int
    cors_origins: list[str]

    @classmethod
    def from_dict(cls, data: dict) -> "ServerConfig":
        """Create ServerConfig from dict with environment variable overrides."""
        env_origins = _get_env_str(ENV_CORS_ORIGINS)
        if env_origins:
            origins = [o.strip() for o in env_origins.split(",") if o.strip()]
        else:
            origins = data.get("cors_origins", list(DEFAULT_CORS_ORIGINS))
        return cls(
            host=_get_env_str(ENV_HOST, data.get("host", DEFAULT_HOST)),
            port=_get_env_int(ENV_PORT, data.get("port", DEFAULT_PORT)),
            cors_origins=origins,
        )


def _log_config_from_dict(data: dict) -> LogConfig:
    values = dict(data)
    values["level"] = _get_env_str(ENV_LOG_LEVEL, values.get("level", "INFO"))
    return LogConfig(**values)


@dataclass
class Config:
    paths: PathsConfig
    search: SearchConfig
    history: HistoryConfig
    server: ServerConfig
    logging: LogConfig

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """
        Load configuration with proper precedence.

        Precedence (highest to lowest):
        1. Environment variables (TWMT_SEARCH_*)
        2. User config (~/.twmt-search/config/settings.toml)
        3. Default config (twmt_search/config/settings.default.toml)
        4. Hardcoded constants

        Args:
            config_path: Optional explicit config file path

        Returns:
            Loaded Config object

        Raises:
            FileNotFoundError: If an explicit config path does not exist
        """
        # Determine config file locations
        if config_path is not None:
            # Explicit path provided
            config_files = [config_path]
        else:
            # Standard search order
            base_data_dir = Path(os.getenv(ENV_DATA_DIR, str(DEFAULT_DATA_DIR))).expanduser()
            user_config = base_data_dir / DEFAULT_CONFIG_SUBDIR / SETTINGS_FILE
            default_config = Path(__file__).parent / DEFAULT_SETTINGS_FILE
            config_files = [user_config, default_config]

        # Try to load from config files in order
        data = None

        for config_file in config_files:
            if config_file.exists():
                with open(config_file, "rb") as f:
                    data = tomli.load(f)
                break

        # If no config file found, use empty dict (will use constants.py defaults)
        if data is None:
            # Only raise error if an explicit config path was provided
            if config_path is not None:
                raise FileNotFoundError(
                    ERROR_NO_CONFIG.format(
                        path=config_path,
                        config_dir=DEFAULT_DATA_DIR / DEFAULT_CONFIG_SUBDIR,
                        default_file=DEFAULT_SETTINGS_FILE,
                        settings_file=SETTINGS_FILE,
                    )
                )
            data = {}

        # Build config objects with environment variable overrides
        return cls(
            paths=PathsConfig.from_dict(data.get("paths", {})),
            search=SearchConfig.from_dict(data.get("search", {})),
            history=HistoryConfig.from_dict(data.get("history", {})),
            server=ServerConfig.from_dict(data.get("server", {})),
            logging=_log_config_from_dict(data.get("logging", {})),
        )
