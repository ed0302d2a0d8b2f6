"""
tts-gateway Structured Logging.

Every log call names an event (``cache``, ``capacity_reached``,
``synthesis_failed``) and attaches fields as keyword arguments. The
current request id is added automatically so all lines of one HTTP call
can be grepped together.

Log Levels:
    1 = MINIMAL  - Startup, shutdown, failures
    2 = NORMAL   - One line per request plus cache hit/miss (default)
    3 = VERBOSE  - Provider and disk timings
    4 = DEBUG    - Full keys and request text

Configuration:
    export TTS_GATEWAY_LOG_LEVEL=3   # VERBOSE
    export TTS_GATEWAY_NO_COLOR=1    # Disable colors

    In settings.yaml:
        logging:
          level: 2
          log_dir: logs
          jsonl_file: tts-gateway.jsonl

Usage:
    from tts_gateway.core.logging import get_logger, info, warn

    log = get_logger("tts-gateway.service")

    info(log, "cache", key="5a2b8c1d", cache="hit")
    warn(log, "capacity_reached", entries=100, max_files=100)
    verbose(log, "stage", event="synth", seconds=0.84)
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from .levels import LogLevel, LEVEL_MAP, LEVEL_NAMES, coerce_level
from .colors import Colors, supports_color, paint, get_tag_color
from .context import (
    get_request_id,
    set_request_id,
    get_level,
    set_level,
    get_level_name,
    is_configured,
    set_configured,
    get_log_config,
    set_log_config,
    read_logging_config,
)
from .formatters import JsonlFormatter, ColoredConsoleFormatter

# Server loggers whose output should go through our handlers
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

DEFAULT_JSONL_FILE = "tts-gateway.jsonl"
DEFAULT_ROTATE_BYTES = 10 * 1024 * 1024
DEFAULT_ROTATE_BACKUPS = 5


def _console_handler(python_level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(python_level)
    handler.setFormatter(ColoredConsoleFormatter())
    return handler


def _jsonl_handler(log_config: Dict[str, Any]) -> Optional[logging.Handler]:
    """Rotating JSONL file handler, or None when no ``log_dir`` is set."""
    log_dir = log_config.get("log_dir")
    if not log_dir:
        return None

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        Path(log_dir) / str(log_config.get("jsonl_file", DEFAULT_JSONL_FILE)),
        maxBytes=int(log_config.get("rotate_max_bytes", DEFAULT_ROTATE_BYTES)),
        backupCount=int(log_config.get("rotate_backup_count", DEFAULT_ROTATE_BACKUPS)),
        encoding="utf-8",
        delay=True,
    )
    # The file keeps everything the numeric level lets through
    handler.setLevel(logging.DEBUG - 10)
    handler.setFormatter(JsonlFormatter())
    return handler


def configure_logging(level: Optional[int | str | LogLevel] = None, force: bool = False) -> None:
    """
    Install the console handler (and the JSONL file handler when
    configured) on the root logger.

    Safe to call repeatedly; only the first call (or one with
    ``force=True``) does anything.
    """
    from . import colors

    if is_configured() and not force:
        return

    colors.USE_COLORS = supports_color()

    log_config = read_logging_config()
    set_log_config(log_config)

    current_level = coerce_level(level or log_config.get("level", LogLevel.NORMAL))
    set_level(current_level)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG - 10)
    root.handlers = [_console_handler(LEVEL_MAP.get(current_level, logging.INFO))]

    file_handler = _jsonl_handler(log_config)
    if file_handler is not None:
        root.addHandler(file_handler)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True

    set_configured(True)


def _log(
    logger: logging.Logger,
    level: int,
    tag: str,
    msg: str,
    numeric_level: int = 2,
    **fields: Any
) -> None:
    if numeric_level > get_level():
        return

    event = fields.pop("event", None)
    seconds = fields.pop("seconds", None)
    logger.log(
        level,
        msg,
        extra={
            "tag": tag,
            "request_id": get_request_id(),
            "event": event,
            "seconds": seconds,
            "extra_data": fields or None,
            "numeric_level": numeric_level,
        },
    )


def get_logger(name: str = "tts-gateway") -> logging.Logger:
    """Get a logger instance, configuring logging if needed."""
    configure_logging()
    return logging.getLogger(name)


def info(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log an info message (level 2 = NORMAL)."""
    _log(logger, logging.INFO, "INFO", msg, numeric_level=2, **fields)


def warn(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a warning message (level 2 = NORMAL)."""
    _log(logger, logging.WARNING, "WARN", msg, numeric_level=2, **fields)


def error(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log an error message (level 1 = MINIMAL)."""
    _log(logger, logging.ERROR, "ERROR", msg, numeric_level=1, **fields)


def success(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a success message (level 2 = NORMAL)."""
    _log(logger, logging.INFO, "SUCCESS", msg, numeric_level=2, **fields)


def fail(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a failure message (level 1 = MINIMAL)."""
    _log(logger, logging.ERROR, "FAIL", msg, numeric_level=1, **fields)


def verbose(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a verbose message (level 3 = VERBOSE)."""
    _log(logger, logging.DEBUG, "INFO", msg, numeric_level=3, **fields)


def debug(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a debug message (level 4 = DEBUG)."""
    _log(logger, logging.DEBUG, "DEBUG", msg, numeric_level=4, **fields)


__all__ = [
    "LogLevel",
    "LEVEL_MAP",
    "LEVEL_NAMES",
    "coerce_level",
    "Colors",
    "supports_color",
    "paint",
    "get_tag_color",
    "get_request_id",
    "set_request_id",
    "get_level",
    "set_level",
    "get_level_name",
    "get_log_config",
    "JsonlFormatter",
    "ColoredConsoleFormatter",
    "configure_logging",
    "get_logger",
    "info",
    "warn",
    "error",
    "success",
    "fail",
    "verbose",
    "debug",
]
