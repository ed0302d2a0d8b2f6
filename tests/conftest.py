"""Shared fixtures: a scripted speech gateway and services on temp directories."""
from __future__ import annotations

import threading
import time
from typing import List, Optional

import pytest

from tts_gateway.core.config import ServiceConfig, Settings
from tts_gateway.services.text2speech_service import Text2SpeechService, reset_service
from tts_gateway.tts.gateway import BaseSpeechGateway, GatewayError, SynthResult, VoiceInfo
from tts_gateway.tts.storage import FileCacheStore


class StubGateway(BaseSpeechGateway):
    """In-memory gateway recording every call."""

    name = "stub"

    def __init__(self, config=None, audio: bytes = b"ID3fake-mp3", delay: float = 0.0):
        super().__init__(config or ServiceConfig().speech)
        self.audio = audio
        self.delay = delay
        self.fail_with: Optional[str] = None
        self.voices_fail_with: Optional[str] = None
        self.calls: List[tuple] = []
        self.voice_calls: List[Optional[str]] = []
        self.voices = [
            VoiceInfo("en-US-AvaMultilingualNeural", "Female", "en-US", "Ava"),
            VoiceInfo("en-US-AndrewMultilingualNeural", "Male", "en-US", "Andrew"),
            VoiceInfo("en-US-EchoTurboMultilingualNeural", "Neutral", "en-US", "Echo"),
            VoiceInfo("en-US-EmmaNeural", "Female", "en-US", "Emma"),
        ]
        self._calls_lock = threading.Lock()

    def load(self) -> None:
        self._loaded = True

    def synthesize(self, text: str, voice: Optional[str] = None) -> SynthResult:
        with self._calls_lock:
            self.calls.append((text, voice))
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with:
            raise GatewayError(self.fail_with)
        return SynthResult(audio_bytes=self.audio + text.encode("utf-8"))

    def list_voices(self, locale: Optional[str] = None) -> List[VoiceInfo]:
        self.voice_calls.append(locale)
        if self.voices_fail_with:
            raise GatewayError(self.voices_fail_with)
        if locale:
            return [v for v in self.voices if v.locale == locale]
        return list(self.voices)


def make_config(output_dir, max_files: int = 100, **speech) -> ServiceConfig:
    raw = {
        "storage": {"output_dir": str(output_dir), "max_files": max_files},
        "speech": {"key": "test-key", "region": "westeurope", **speech},
        "logging": {"level": 1},
    }
    return Settings(raw=raw).get_service_config()


@pytest.fixture(autouse=True)
def _reset_singleton():
    reset_service()
    yield
    reset_service()


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "output"


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def service(output_dir, gateway):
    return Text2SpeechService(make_config(output_dir), gateway)


@pytest.fixture
def small_service(output_dir, gateway):
    """Service limited to two stored files."""
    return Text2SpeechService(make_config(output_dir, max_files=2), gateway)


@pytest.fixture
def store(tmp_path):
    s = FileCacheStore(str(tmp_path / "cache"), extension=".mp3")
    s.ensure_dir()
    return s


def make_client(service, settings=None):
    """TestClient for a fresh app whose routes use the given service."""
    from fastapi.testclient import TestClient

    from tts_gateway.api.dependencies import get_text2speech_service
    from tts_gateway.main import create_app

    app = create_app(settings)
    app.dependency_overrides[get_text2speech_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def client(service):
    with make_client(service) as c:
        yield c
