"""
Text2SpeechService - Cached Speech Synthesis.

This module provides the Text2SpeechService class, the single place where
requests, the file cache and the speech provider meet. The HTTP routes and
the CLI both go through it.

Architecture:
    Request → Validate → Fingerprint → Cache Check → Capacity Check
            → Synthesize → Store → fileKey

Key Components:
    - Speech gateway: The provider call (Azure Speech)
    - File cache store: One audio file per fingerprint on local disk
    - KeyedLockTable: Serializes work on the same fingerprint
    - CapacityGate: Refuses new files once the configured maximum is reached

Create State Machine:
    1. Validate text/voice; every violation is reported (INVALID_INPUT)
    2. Fingerprint the request
    3. Existing file → return its key, no provider call
    4. Capacity check → CAPACITY_EXCEEDED when the cache is full
    5. Synthesize (blocking, no retry)
    6. Write the file atomically → return the key
    7. Provider failure → SYNTHESIS_FAILED, nothing written

    Steps 3-6 run under the fingerprint's lock, so concurrent identical
    requests trigger a single provider call and the rest see a cache hit.

Error Handling:
    TTSGatewayError is the base exception. Each subclass carries an
    ErrorCode the API maps to an HTTP status:
        - InvalidInputError (INVALID_INPUT)
        - NotFoundError (NOT_FOUND)
        - CapacityExceededError (CAPACITY_EXCEEDED)
        - SynthesisError (SYNTHESIS_FAILED)
        - ProviderError (PROVIDER_FAILED)
        - StorageError (STORAGE_ERROR)

Example:
    from tts_gateway.core.config import Settings
    from tts_gateway.services import get_service

    service = get_service(Settings(raw={}))
    key = service.create("Hello", voice="en-US-AvaMultilingualNeural")
    audio = service.fetch(key)
"""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from tts_gateway.core.config import ServiceConfig, Settings
from tts_gateway.core.logging import debug, error, fail, get_logger, info, success, verbose, warn
from tts_gateway.core.metrics import metrics
from tts_gateway.services.validators import (
    ValidationError,
    validate_create_request,
    validate_file_key,
    validate_voice_filters,
)
from tts_gateway.tts.concurrency import CapacityGate, CapacityReached, KeyedLockTable
from tts_gateway.tts.fingerprint import SynthesisRequest, fingerprint
from tts_gateway.tts.gateway import BaseSpeechGateway, GatewayError, create_gateway
from tts_gateway.tts.storage import AudioStore, EntryNotFound, FileCacheStore, StorageIOError
from tts_gateway.utils.timeit import timeit

_LOG = get_logger("tts-gateway.service")


# =============================================================================
# Error Codes and Exceptions
# =============================================================================

class ErrorCode:
    """
    Standardized error codes for API responses.

    Returned as the "error" field of every error body.
    """
    INVALID_INPUT = "INVALID_INPUT"           # Bad request data
    NOT_FOUND = "NOT_FOUND"                   # No file under that key
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"   # File limit reached
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"     # Provider could not render audio
    PROVIDER_FAILED = "PROVIDER_FAILED"       # Provider catalogue lookup failed
    STORAGE_ERROR = "STORAGE_ERROR"           # Disk operation failed
    INTERNAL_ERROR = "INTERNAL_ERROR"         # Unexpected error


SYNTHESIS_FAILED_MESSAGE = "Failed to generate text to speech."
VOICES_FAILED_MESSAGE = "Failed to retrieve voices."
CAPACITY_MESSAGE = "File storage limit has been reached. Please delete some files and try again."
DELETED_MESSAGE = "File successfully deleted."


class TTSGatewayError(Exception):
    """
    Base exception for service errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode class.
        details: Optional dictionary with additional context.
    """
    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to standardized error response dict for API."""
        result = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidInputError(TTSGatewayError):
    """Raised when request data fails validation. details["errors"] lists every violation."""
    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, ErrorCode.INVALID_INPUT, {"errors": errors} if errors else None)

    @classmethod
    def from_validation(cls, errors: List[ValidationError]) -> "InvalidInputError":
        return cls("Invalid request", [e.to_dict() for e in errors])


class NotFoundError(TTSGatewayError):
    """Raised when no file is stored under a well-formed key."""
    def __init__(self, key: str):
        super().__init__(
            "No file exists for the given key",
            ErrorCode.NOT_FOUND,
            {"errors": [{
                "field": "fileKey",
                "location": "path",
                "code": "KEY_NOT_FOUND",
                "message": "No file exists for the given key",
            }]},
        )
        self.key = key


class CapacityExceededError(TTSGatewayError):
    """Raised when a new file would exceed the configured maximum."""
    def __init__(self, max_files: int):
        super().__init__(CAPACITY_MESSAGE, ErrorCode.CAPACITY_EXCEEDED, {"max_files": max_files})


class SynthesisError(TTSGatewayError):
    """Raised when the provider fails to render audio. Provider detail is logged, not returned."""
    def __init__(self, message: str = SYNTHESIS_FAILED_MESSAGE, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.SYNTHESIS_FAILED, details)


class ProviderError(TTSGatewayError):
    """Raised when the voice catalogue cannot be retrieved."""
    def __init__(self, message: str = VOICES_FAILED_MESSAGE, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.PROVIDER_FAILED, details)


class StorageError(TTSGatewayError):
    """Raised when the cache directory cannot be read or written."""
    def __init__(self, message: str = "Storage operation failed", details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.STORAGE_ERROR, details)


# =============================================================================
# Main Service Class
# =============================================================================

class Text2SpeechService:
    """
    Cached text-to-speech service.

    Holds the only references to the store, the gateway and the
    coordination primitives. Safe to call from many threads at once.

    Usage:
        config = ServiceConfig()
        service = Text2SpeechService(config, create_gateway(config.speech))
        service.startup()

        key = service.create("Hello")
        audio = service.fetch(key)
        service.delete(key)
    """

    def __init__(
        self,
        config: ServiceConfig,
        gateway: BaseSpeechGateway,
        store: Optional[AudioStore] = None,
    ):
        """
        Args:
            config: Validated service configuration.
            gateway: Speech provider binding.
            store: Audio store. Defaults to a FileCacheStore on
                config.storage.output_dir.
        """
        self._config = config
        self._gateway = gateway
        self._store = store or FileCacheStore(
            config.storage.output_dir,
            extension=config.storage.file_extension,
        )
        self._locks = KeyedLockTable()
        self._gate = CapacityGate(max_entries=config.storage.max_files)
        self._text_preview_chars = config.logging.text_preview_chars

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def gateway(self) -> BaseSpeechGateway:
        return self._gateway

    @property
    def store(self) -> AudioStore:
        return self._store

    @property
    def gate(self) -> CapacityGate:
        return self._gate

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def startup(self) -> None:
        """
        Prepare the service for traffic.

        Creates the output directory and loads the provider client. A
        provider that cannot be loaded (missing credentials, SDK not
        installed) is logged and retried on the first request rather than
        stopping the server.
        """
        self._store.ensure_dir()
        try:
            count = self._store.count()
        except StorageIOError as e:
            raise StorageError("Cannot read the audio directory", {"error": str(e)}) from e
        metrics.set_cache_entries(count)

        try:
            self._gateway.ensure_loaded()
        except GatewayError as e:
            warn(_LOG, "gateway_not_ready", provider=self._gateway.name, reason=e.reason)

        info(_LOG, "service_ready", provider=self._gateway.name,
             output_dir=self._config.storage.output_dir,
             entries=count, max_files=self._config.storage.max_files)

    # =========================================================================
    # Create
    # =========================================================================

    def create(self, text: Any, voice: Any = None) -> str:
        """
        Return the file key for text + voice, synthesizing on a cache miss.

        Args:
            text: Text to speak (1..max_text_chars characters, whitespace included).
            voice: Optional provider voice short name.

        Returns:
            32-character file key.

        Raises:
            InvalidInputError: If text or voice are invalid.
            CapacityExceededError: If the cache is full and the key is new.
            SynthesisError: If the provider fails.
            StorageError: If the audio cannot be written.
        """
        errors, text, voice = validate_create_request(
            text,
            voice,
            max_text_chars=self._config.limits.max_text_chars,
            max_voice_chars=self._config.limits.max_voice_chars,
        )
        if errors:
            raise InvalidInputError.from_validation(errors)

        request = SynthesisRequest(text=text, voice=voice)
        key = fingerprint(request)

        preview = text[:self._text_preview_chars] if self._text_preview_chars > 0 else ""
        info(_LOG, "request", chars=len(text), voice=voice or "default", text_preview=preview)
        debug(_LOG, "resolved", key=key, text=text)

        with timeit("create_total") as total_t:
            with self._locks.hold(key):
                if self._store.exists(key):
                    metrics.record_cache("hit")
                    info(_LOG, "cache", key=key[:8], cache="hit")
                    return key

                metrics.record_cache("miss")
                info(_LOG, "cache", key=key[:8], cache="miss")
                self._synthesize_and_store(key, request)

        success(_LOG, "done", key=key[:8], seconds=total_t.rounded)
        return key

    def _synthesize_and_store(self, key: str, request: SynthesisRequest) -> None:
        """Steps 4-6 of the create path. Caller holds the key's lock."""
        max_files = self._config.storage.max_files
        try:
            with self._gate.reserve(self._store.count):
                result = self._synthesize(request)
                try:
                    self._store.write(key, result.audio_bytes)
                except StorageIOError as e:
                    error(_LOG, "write_failed", key=key[:8], error=str(e))
                    raise StorageError("Failed to store generated audio") from e
        except CapacityReached as e:
            metrics.record_capacity_rejection()
            warn(_LOG, "capacity_reached", entries=e.current,
                 reserved=e.reserved, max_files=max_files)
            raise CapacityExceededError(max_files) from e
        except StorageIOError as e:
            # raised by count() while reserving
            error(_LOG, "count_failed", error=str(e))
            raise StorageError("Cannot read the audio directory") from e

        self._refresh_entries_gauge()

    def _synthesize(self, request: SynthesisRequest):
        provider = self._gateway.name
        try:
            with timeit("synth") as t_synth:
                result = self._gateway.synthesize(request.text, request.voice)
        except GatewayError as e:
            fail(_LOG, "synthesis_failed", provider=provider, reason=e.reason)
            raise SynthesisError() from e

        if not result.audio_bytes:
            fail(_LOG, "synthesis_failed", provider=provider, reason="empty audio")
            raise SynthesisError()

        metrics.record_synthesis(provider, t_synth.seconds, audio_bytes=len(result.audio_bytes))
        verbose(_LOG, "stage", event="synth", seconds=t_synth.rounded,
                bytes=len(result.audio_bytes))
        return result

    # =========================================================================
    # Fetch / Delete / List
    # =========================================================================

    def _checked_key(self, key: Any) -> str:
        try:
            return validate_file_key(key)
        except ValidationError as e:
            raise InvalidInputError.from_validation([e])

    def fetch(self, key: Any) -> bytes:
        """
        Return the stored audio for key.

        Raises:
            InvalidInputError: If key is malformed.
            NotFoundError: If nothing is stored under key.
            StorageError: If the file cannot be read.
        """
        key = self._checked_key(key)
        try:
            data = self._store.read(key)
        except EntryNotFound:
            raise NotFoundError(key)
        except StorageIOError as e:
            raise StorageError("Failed to read audio file") from e

        info(_LOG, "fetched", key=key[:8], bytes=len(data))
        return data

    def delete(self, key: Any) -> str:
        """
        Delete the file stored under key.

        Runs under the key's lock so it cannot interleave with a create
        for the same key.

        Returns:
            Confirmation message.

        Raises:
            InvalidInputError: If key is malformed.
            NotFoundError: If nothing is stored under key.
            StorageError: If the file cannot be removed.
        """
        key = self._checked_key(key)
        with self._locks.hold(key):
            try:
                self._store.delete(key)
            except EntryNotFound:
                raise NotFoundError(key)
            except StorageIOError as e:
                raise StorageError("Failed to delete audio file") from e

        self._refresh_entries_gauge()
        return DELETED_MESSAGE

    def list_keys(self) -> List[str]:
        """All stored file keys, order unspecified."""
        try:
            keys = self._store.list_keys()
        except StorageIOError as e:
            raise StorageError("Cannot read the audio directory") from e
        verbose(_LOG, "listed", count=len(keys))
        return keys

    # =========================================================================
    # Voices
    # =========================================================================

    def list_voices(self, locale: Optional[str] = None, gender: Optional[str] = None) -> List[str]:
        """
        Voice short names offered by the provider.

        The locale filter is applied by the provider, the gender filter
        here.

        Raises:
            InvalidInputError: If a filter is malformed.
            ProviderError: If the catalogue cannot be retrieved.
        """
        errors, locale, gender = validate_voice_filters(locale, gender)
        if errors:
            raise InvalidInputError.from_validation(errors)

        try:
            voices = self._gateway.list_voices(locale)
        except GatewayError as e:
            fail(_LOG, "voices_failed", provider=self._gateway.name, reason=e.reason)
            raise ProviderError() from e

        if gender is not None:
            voices = [v for v in voices if v.gender == gender]

        info(_LOG, "voices", locale=locale or "*", gender=gender or "*", count=len(voices))
        return [v.short_name for v in voices]

    # =========================================================================
    # Health Check
    # =========================================================================

    def _refresh_entries_gauge(self) -> None:
        try:
            metrics.set_cache_entries(self._store.count())
        except StorageIOError as e:
            warn(_LOG, "count_failed", error=str(e))

    def get_health_info(self) -> Dict[str, Any]:
        """
        Status for the /health endpoint.

        Returns a dictionary with:
            - status: "ok", or "degraded" when the directory is unreadable
            - provider: provider name and whether its client is loaded
            - storage: entries, max_entries, total_bytes, reserved slots
        """
        gate = self._gate.stats()
        storage: Dict[str, Any] = {
            "max_entries": gate.max_entries,
            "reserved": gate.reserved,
        }
        status = "ok"
        try:
            store_info = self._store.info()
            storage["entries"] = store_info.get("entries", 0)
            storage["total_bytes"] = store_info.get("total_bytes", 0)
            metrics.set_cache_entries(storage["entries"])
        except StorageIOError as e:
            warn(_LOG, "health_storage_error", error=str(e))
            status = "degraded"
            storage["entries"] = None
            storage["total_bytes"] = None

        return {
            "status": status,
            "provider": {
                "name": self._gateway.name,
                "loaded": self._gateway.is_loaded(),
            },
            "storage": storage,
        }


# =============================================================================
# Global Service Singleton
# =============================================================================

_service: Optional[Text2SpeechService] = None
_service_lock = threading.Lock()


def build_service(settings: Settings) -> Text2SpeechService:
    """Create a service from settings (config validation, gateway, file store)."""
    config = settings.get_service_config()
    return Text2SpeechService(config, create_gateway(config.speech))


def get_service(settings: Settings) -> Text2SpeechService:
    """
    Get or create the global Text2SpeechService instance.

    Thread-safe lazy singleton. The service is created on first call
    and reused for subsequent calls.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = build_service(settings)
    return _service


def reset_service() -> None:
    """
    Reset the global service instance.

    Used primarily for testing to ensure clean state between tests.
    """
    global _service
    with _service_lock:
        if _service is not None:
            _service.gateway.close()
        _service = None
