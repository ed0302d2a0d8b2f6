"""
Configuration Management for tts-gateway.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (SPEECH_KEY, SPEECH_REGION, TTS_GATEWAY_*)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    storage:
      output_dir: output
      file_extension: .mp3
      max_files: 100

    speech:
      provider: azure
      region: westeurope
      output_format: Audio16Khz32KBitRateMonoMp3

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    All default values are defined here to ensure consistency across
    the codebase. These values are used when no override is provided
    via YAML config or environment variables.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Storage Settings (audio file cache directory)
    # ─────────────────────────────────────────────────────────────────────────
    STORAGE_OUTPUT_DIR = "output"        # Flat directory of rendered files
    STORAGE_FILE_EXTENSION = ".mp3"      # Extension appended to each key
    STORAGE_MEDIA_TYPE = "audio/mpeg"    # Content type served on fetch
    STORAGE_MAX_FILES = 100              # Capacity guard ceiling

    # ─────────────────────────────────────────────────────────────────────────
    # Speech Provider
    # ─────────────────────────────────────────────────────────────────────────
    SPEECH_PROVIDER = "azure"
    SPEECH_OUTPUT_FORMAT = "Audio16Khz32KBitRateMonoMp3"
    SPEECH_TIMEOUT_S = 30.0              # Max wait for one provider call

    # ─────────────────────────────────────────────────────────────────────────
    # Request Limits
    # ─────────────────────────────────────────────────────────────────────────
    LIMITS_MAX_TEXT_CHARS = 100
    LIMITS_MAX_VOICE_CHARS = 50

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 40     # Characters to show in text preview
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG

    # ─────────────────────────────────────────────────────────────────────────
    # HTTP Server
    # ─────────────────────────────────────────────────────────────────────────
    SERVER_CORS_ORIGINS = ("*",)        # Browser origins allowed to call the API


@dataclass
class StorageConfig:
    """
    Audio file cache configuration.

    Every rendered file lives directly in output_dir as
    ``<fingerprint><file_extension>``.
    """
    output_dir: str = Defaults.STORAGE_OUTPUT_DIR
    file_extension: str = Defaults.STORAGE_FILE_EXTENSION
    media_type: str = Defaults.STORAGE_MEDIA_TYPE
    max_files: int = Defaults.STORAGE_MAX_FILES


@dataclass
class SpeechConfig:
    """
    Speech provider configuration.

    Credentials are normally supplied through SPEECH_KEY / SPEECH_REGION
    rather than written into settings.yaml.
    """
    provider: str = Defaults.SPEECH_PROVIDER
    key: Optional[str] = None
    region: Optional[str] = None
    output_format: str = Defaults.SPEECH_OUTPUT_FORMAT
    timeout_s: float = Defaults.SPEECH_TIMEOUT_S


@dataclass
class LimitsConfig:
    """Input size limits applied by the validators."""
    max_text_chars: int = Defaults.LIMITS_MAX_TEXT_CHARS
    max_voice_chars: int = Defaults.LIMITS_MAX_VOICE_CHARS


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle, cache status (default)
        3 = VERBOSE: Per-stage timing, detailed flow
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ServerConfig:
    """
    HTTP server configuration.

    ``cors_origins`` lists the browser origins allowed to call the API;
    ``["*"]`` admits any origin.
    """
    cors_origins: List[str] = field(default_factory=lambda: list(Defaults.SERVER_CORS_ORIGINS))


@dataclass
class ServiceConfig:
    """
    Validated configuration for Text2SpeechService.

    This is the main configuration object created from Settings and
    handed to the service at construction.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.storage.max_files)  # Typed access
    """
    storage: StorageConfig = field(default_factory=StorageConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Create ServiceConfig from Settings with validation.

        Reads raw configuration dictionary, applies defaults for missing
        values, validates constraints, and returns typed configuration.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Storage configuration
        # ─────────────────────────────────────────────────────────────────────
        storage_raw = raw.get("storage", {}) or {}
        storage = StorageConfig(
            output_dir=str(storage_raw.get("output_dir", Defaults.STORAGE_OUTPUT_DIR)),
            file_extension=str(storage_raw.get("file_extension", Defaults.STORAGE_FILE_EXTENSION)),
            media_type=str(storage_raw.get("media_type", Defaults.STORAGE_MEDIA_TYPE)),
            max_files=cls._as_int("storage.max_files", storage_raw.get("max_files", Defaults.STORAGE_MAX_FILES)),
        )
        cls._validate_positive("storage.max_files", storage.max_files)
        if not storage.file_extension.startswith(".") or len(storage.file_extension) < 2:
            raise ConfigValidationError(
                f"storage.file_extension must look like '.mp3', got {storage.file_extension!r}"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Speech provider configuration
        # ─────────────────────────────────────────────────────────────────────
        speech_raw = raw.get("speech", {}) or {}
        speech = SpeechConfig(
            provider=str(speech_raw.get("provider", Defaults.SPEECH_PROVIDER)).strip().lower(),
            key=speech_raw.get("key") or None,
            region=speech_raw.get("region") or None,
            output_format=str(speech_raw.get("output_format", Defaults.SPEECH_OUTPUT_FORMAT)),
            timeout_s=cls._as_float("speech.timeout_s", speech_raw.get("timeout_s", Defaults.SPEECH_TIMEOUT_S)),
        )
        cls._validate_positive("speech.timeout_s", speech.timeout_s)

        # ─────────────────────────────────────────────────────────────────────
        # Request limits
        # ─────────────────────────────────────────────────────────────────────
        limits_raw = raw.get("limits", {}) or {}
        limits = LimitsConfig(
            max_text_chars=cls._as_int(
                "limits.max_text_chars", limits_raw.get("max_text_chars", Defaults.LIMITS_MAX_TEXT_CHARS)
            ),
            max_voice_chars=cls._as_int(
                "limits.max_voice_chars", limits_raw.get("max_voice_chars", Defaults.LIMITS_MAX_VOICE_CHARS)
            ),
        )
        cls._validate_positive("limits.max_text_chars", limits.max_text_chars)
        cls._validate_positive("limits.max_voice_chars", limits.max_voice_chars)

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = cls._as_int("logging.level", log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=cls._as_int(
                "logging.text_preview_chars",
                logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS),
            ),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        # ─────────────────────────────────────────────────────────────────────
        # HTTP server
        # ─────────────────────────────────────────────────────────────────────
        server_raw = raw.get("server", {}) or {}
        server = ServerConfig(
            cors_origins=cls._as_origins(server_raw.get("cors_origins", list(Defaults.SERVER_CORS_ORIGINS))),
        )

        return cls(
            storage=storage,
            speech=speech,
            limits=limits,
            logging=logging_cfg,
            server=server,
        )

    @staticmethod
    def _as_int(name: str, value: Any) -> int:
        """Convert a YAML value to int, raising ConfigValidationError instead of ValueError."""
        if isinstance(value, bool):
            raise ConfigValidationError(f"{name} must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigValidationError(f"{name} must be an integer, got {value!r}")

    @staticmethod
    def _as_float(name: str, value: Any) -> float:
        if isinstance(value, bool):
            raise ConfigValidationError(f"{name} must be a number, got {value!r}")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigValidationError(f"{name} must be a number, got {value!r}")

    @staticmethod
    def _as_origins(value: Any) -> List[str]:
        """Accept a list of origins or one comma-separated string."""
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            raise ConfigValidationError(f"server.cors_origins must be a list of origins, got {value!r}")
        return [str(origin).strip() for origin in value if str(origin).strip()]

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() to get validated ServiceConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    @property
    def provider(self) -> str:
        """Get the speech provider name."""
        return str(self.raw.get("speech", {}).get("provider", Defaults.SPEECH_PROVIDER))

    @property
    def output_dir(self) -> str:
        """Get the audio output directory."""
        return str(self.raw.get("storage", {}).get("output_dir", Defaults.STORAGE_OUTPUT_DIR))

    def get_service_config(self) -> ServiceConfig:
        """
        Get validated ServiceConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return ServiceConfig.from_settings(self)


def settings_path() -> str:
    """Resolve the settings file path (TTS_GATEWAY_SETTINGS or the default)."""
    return os.getenv("TTS_GATEWAY_SETTINGS", "config/settings.yaml")


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - SPEECH_KEY: speech.key
        - SPEECH_REGION: speech.region
        - TTS_GATEWAY_OUTPUT_DIR: storage.output_dir
        - TTS_GATEWAY_MAX_FILES: storage.max_files
        - TTS_GATEWAY_CORS_ORIGINS: server.cors_origins (comma-separated)

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    apply_env_overrides(raw)
    return Settings(raw=raw)


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to a raw settings dict in place."""
    key = os.getenv("SPEECH_KEY")
    if key:
        raw.setdefault("speech", {})["key"] = key
    region = os.getenv("SPEECH_REGION")
    if region:
        raw.setdefault("speech", {})["region"] = region

    output_dir = os.getenv("TTS_GATEWAY_OUTPUT_DIR")
    if output_dir:
        raw.setdefault("storage", {})["output_dir"] = output_dir
    max_files = os.getenv("TTS_GATEWAY_MAX_FILES")
    if max_files:
        try:
            raw.setdefault("storage", {})["max_files"] = int(max_files)
        except ValueError:
            raise ConfigValidationError(f"TTS_GATEWAY_MAX_FILES must be an integer, got {max_files!r}")
    cors_origins = os.getenv("TTS_GATEWAY_CORS_ORIGINS")
    if cors_origins:
        raw.setdefault("server", {})["cors_origins"] = cors_origins

    return raw
