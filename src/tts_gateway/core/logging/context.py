"""
Request Context and Configuration State for Logging.

The request id lives in a ContextVar so it follows a request through
FastAPI's threadpool and any code it calls. Level and file settings are
module-level state shared by the whole process.

Environment Variables:
    - TTS_GATEWAY_LOG_LEVEL: Override log level (1-4 or name)
    - TTS_GATEWAY_LOG_DIR: Directory for the JSONL log file
    - TTS_GATEWAY_JSONL_FILE: JSONL filename
    - TTS_GATEWAY_LOG_ROTATE_BYTES: Max file size before rotation
    - TTS_GATEWAY_LOG_ROTATE_BACKUP: Number of rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

# "-" marks log lines emitted outside any request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Return the request id of the current context, or "-"."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind a request id to the current context for log correlation."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _int_env(name: str, cfg: Dict[str, Any], key: str) -> None:
    value = os.getenv(name)
    if not value:
        return
    try:
        cfg[key] = int(value)
    except ValueError:
        pass  # keep the settings-file value


def read_logging_config() -> Dict[str, Any]:
    """
    Read logging configuration from the settings file and environment.

    Environment variables take precedence over the ``logging`` section of
    settings.yaml. A missing or unreadable settings file leaves defaults.

    Returns:
        Dictionary with resolved logging configuration.
    """
    cfg: Dict[str, Any] = {}

    import yaml

    from tts_gateway.core.config import load_settings, settings_path

    try:
        settings = load_settings(settings_path())
        cfg.update(settings.raw.get("logging", {}) or {})
    except (OSError, yaml.YAMLError):
        # Logging must come up even without a settings file
        pass

    if os.getenv("TTS_GATEWAY_LOG_LEVEL"):
        cfg["level"] = os.environ["TTS_GATEWAY_LOG_LEVEL"]
    if os.getenv("TTS_GATEWAY_LOG_DIR"):
        cfg["log_dir"] = os.environ["TTS_GATEWAY_LOG_DIR"]
    if os.getenv("TTS_GATEWAY_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TTS_GATEWAY_JSONL_FILE"]
    _int_env("TTS_GATEWAY_LOG_ROTATE_BYTES", cfg, "rotate_max_bytes")
    _int_env("TTS_GATEWAY_LOG_ROTATE_BACKUP", cfg, "rotate_backup_count")

    return cfg
