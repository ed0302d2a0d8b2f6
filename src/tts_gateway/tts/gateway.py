"""
Speech Gateway Base Class and Factory.

This module provides:
    - BaseSpeechGateway: Abstract base class for speech providers
    - SynthResult: Synthesis result container
    - VoiceInfo: One entry of a provider's voice catalogue
    - GatewayError: Raised for every provider-side failure
    - create_gateway(): Factory selecting the provider by name

The gateway is a black box to the rest of the service: text and an
optional voice go in, audio bytes (or a GatewayError) come out. It knows
nothing about caching, fingerprints or HTTP.

Provider Selection:
    ``speech.provider`` in settings.yaml. Supported providers:
        - azure: Azure Speech (azure-cognitiveservices-speech)

Implementing a New Provider:
    1. Create gateways/<name>_gateway.py
    2. Inherit from BaseSpeechGateway
    3. Implement load(), synthesize() and list_voices()
    4. Register in _create_gateway()
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TypeVar

from tts_gateway.core.config import SpeechConfig
from tts_gateway.core.logging import get_logger, warn

T = TypeVar("T")


class GatewayError(RuntimeError):
    """
    A provider call failed.

    Attributes:
        reason: Provider-side detail. Logged, never sent to clients.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


@dataclass
class SynthResult:
    """
    Result of a synthesis call.

    Attributes:
        audio_bytes: Encoded audio in the configured output format.
        timings_s: Per-stage timing breakdown in seconds.
    """
    audio_bytes: bytes
    timings_s: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class VoiceInfo:
    """A voice offered by the provider."""
    short_name: str
    gender: str
    locale: str = ""
    name: str = ""


class BaseSpeechGateway:
    """
    Abstract base class for speech providers.

    Subclasses implement:
        - load(): Validate credentials and import the provider SDK
        - synthesize(): text + voice -> SynthResult
        - list_voices(): locale -> list of VoiceInfo

    Provider calls are blocking. When ``timeout_s`` is set, _call() runs
    each on its own worker thread and gives up waiting after that many
    seconds; the abandoned call is left to finish on its own.

    Attributes:
        name: Provider identifier (e.g. "azure").
        config: Speech configuration.
    """
    name: str = "base"

    def __init__(self, config: SpeechConfig):
        self.config = config
        self.logger = get_logger(f"tts-gateway.gateway.{self.name}")
        self._loaded = False

    def load(self) -> None:
        """
        Prepare the provider client.

        Raises:
            GatewayError: If the provider cannot be used (missing SDK or
                credentials).
        """
        raise NotImplementedError

    def is_loaded(self) -> bool:
        return bool(self._loaded)

    def ensure_loaded(self) -> None:
        if not self.is_loaded():
            self.load()

    def synthesize(self, text: str, voice: Optional[str] = None) -> SynthResult:
        """
        Render text to audio.

        Args:
            text: Text to speak.
            voice: Provider voice short name; None selects the provider default.

        Raises:
            GatewayError: On any provider failure, timeout or empty result.
        """
        raise NotImplementedError

    def list_voices(self, locale: Optional[str] = None) -> List[VoiceInfo]:
        """
        List available voices, optionally restricted to one locale.

        Raises:
            GatewayError: If the catalogue cannot be retrieved.
        """
        raise NotImplementedError

    def _call(self, op: str, fn: Callable[[], T]) -> T:
        """Run a blocking provider call, bounded by config.timeout_s when set."""
        timeout = self.config.timeout_s
        if not timeout:
            return fn()

        # One worker per call: the wait covers the provider call only,
        # never time spent queued behind other requests.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"gateway-{self.name}")
        try:
            future = executor.submit(fn)
            try:
                return future.result(timeout=timeout)
            except FutureTimeout:
                future.cancel()
                warn(self.logger, "provider_timeout", op=op, timeout_s=timeout)
                raise GatewayError(f"{op} timed out after {timeout}s")
        finally:
            executor.shutdown(wait=False)

    def close(self) -> None:
        """Release provider resources. Calls hold no pooled threads."""


def _create_gateway(provider: str, config: SpeechConfig) -> BaseSpeechGateway:
    """
    Create a gateway instance.

    Provider modules are imported lazily so unused SDKs are never loaded.

    Raises:
        ValueError: If provider is unknown.
    """
    if provider == "azure":
        from tts_gateway.tts.gateways.azure_gateway import AzureSpeechGateway
        return AzureSpeechGateway(config)

    raise ValueError(f"Unknown speech provider: {provider}")


def create_gateway(config: SpeechConfig) -> BaseSpeechGateway:
    """Build the gateway named by config.provider."""
    return _create_gateway(config.provider.strip().lower(), config)
