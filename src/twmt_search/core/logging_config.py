"""Logging setup for the search server and the terminal client.

Records go to a rotating file and to the console (rich or plain). Single
components can be tuned on their own through ``component_levels``, e.g.
``{"twmt_search.services.search_executor": "DEBUG"}`` shows per-query SQL
timings without making the whole application verbose.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from logging.handlers import RotatingFileHandler

from rich.logging import RichHandler


# Chatty at INFO; held at WARNING unless quiet_third_party is off.
_QUIET_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "multipart",
)

_ACCESS_LOGGER = "uvicorn.access"


def parse_level(name: str) -> int:
    """Map a level name such as ``"debug"`` to its numeric value."""
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "INFO"
    file_enabled: bool = True
    file_path: str = "~/.twmt-search/logs/twmt-search.log"
    file_max_bytes: int = 10 * 1024 * 1024
    file_backup_count: int = 5
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    use_rich_console: bool = True
    quiet_third_party: bool = True
    component_levels: dict[str, str] = field(default_factory=dict)
    polling_paths: list[str] = field(default_factory=lambda: ["/api/status"])

    def __post_init__(self) -> None:
        parse_level(self.level)
        for name in self.component_levels.values():
            parse_level(name)


class _PollingFilter(logging.Filter):
    """Drop uvicorn access records for endpoints that clients poll."""

    def __init__(self, paths: list[str]) -> None:
        super().__init__()
        self._paths = frozenset(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        return _request_path(record) not in self._paths


def _request_path(record: logging.LogRecord) -> str:
    # uvicorn passes (client, method, path, http_version, status) as args.
    args = record.args
    if isinstance(args, tuple) and len(args) >= 3:
        target = str(args[2])
    else:
        quoted = record.getMessage().split('"')
        request = quoted[1].split() if len(quoted) > 1 else []
        target = request[1] if len(request) > 1 else ""
    return target.split("?", 1)[0]


def _console_handler(config: LogConfig) -> logging.Handler:
    if config.use_rich_console:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(config.format))
    return handler


def setup_logging(config: LogConfig) -> None:
    """
    Replace the root handlers with file and console output built from ``config``.

    Safe to call more than once; the access-log filter is installed only once.

    Args:
        config: Logging configuration
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(parse_level(config.level))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    if config.file_enabled:
        log_path = Path(config.file_path).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        root_logger.addHandler(file_handler)

    root_logger.addHandler(_console_handler(config))

    if config.quiet_third_party:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    for name, level in config.component_levels.items():
        logging.getLogger(name).setLevel(parse_level(level))

    access_logger = logging.getLogger(_ACCESS_LOGGER)
    for existing in [f for f in access_logger.filters if isinstance(f, _PollingFilter)]:
        access_logger.removeFilter(existing)
    if config.polling_paths:
        access_logger.addFilter(_PollingFilter(config.polling_paths))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
