"""
Tests for Text2SpeechService.

Tests cover:
- create() happy path, cache hits, voice handling
- Validation errors listing every violation
- Capacity limit (new keys refused, existing keys still served)
- fetch()/delete()/list_keys() and their error cases
- list_voices() filtering and provider failures
- Concurrent creates (one synthesis per key, limit never exceeded)
- get_health_info() structure
- get_service()/reset_service() singleton
"""
from __future__ import annotations

import threading

import pytest

from conftest import StubGateway, make_config
from tts_gateway.core.config import Settings
from tts_gateway.services.text2speech_service import (
    DELETED_MESSAGE,
    CapacityExceededError,
    ErrorCode,
    InvalidInputError,
    NotFoundError,
    ProviderError,
    SynthesisError,
    Text2SpeechService,
    get_service,
    reset_service,
)
from tts_gateway.tts.fingerprint import SynthesisRequest, fingerprint
from tts_gateway.tts.gateway import SynthResult
from tts_gateway.tts.storage import FileCacheStore


class TestCreate:

    def test_returns_fingerprint(self, service):
        key = service.create("Hello")
        assert key == fingerprint(SynthesisRequest(text="Hello"))

    def test_file_written(self, service, output_dir):
        key = service.create("Hello")
        path = output_dir / f"{key}.mp3"
        assert path.is_file()
        assert path.read_bytes() == b"ID3fake-mp3Hello"

    def test_second_create_is_cache_hit(self, service, gateway):
        first = service.create("Hello")
        second = service.create("Hello")

        assert first == second
        assert gateway.calls == [("Hello", None)]

    def test_voice_passed_and_keyed(self, service, gateway):
        a = service.create("Hello", "en-US-EmmaNeural")
        b = service.create("Hello", "en-US-AvaMultilingualNeural")

        assert a != b
        assert gateway.calls == [
            ("Hello", "en-US-EmmaNeural"),
            ("Hello", "en-US-AvaMultilingualNeural"),
        ]

    def test_empty_voice_is_default(self, service, gateway):
        assert service.create("Hello", "") == service.create("Hello")
        assert gateway.calls == [("Hello", None)]

    def test_text_sent_unchanged(self, service, gateway):
        service.create("  Hello  ")
        assert gateway.calls == [("  Hello  ", None)]

    def test_text_too_long(self, service, gateway):
        with pytest.raises(InvalidInputError) as exc_info:
            service.create("a" * 101)

        err = exc_info.value
        assert err.code == ErrorCode.INVALID_INPUT
        assert err.details["errors"][0]["code"] == "TEXT_TOO_LONG"
        assert gateway.calls == []

    def test_every_violation_reported(self, service):
        with pytest.raises(InvalidInputError) as exc_info:
            service.create("", "v" * 51)
        codes = [e["code"] for e in exc_info.value.details["errors"]]
        assert codes == ["TEXT_REQUIRED", "VOICE_TOO_LONG"]

    def test_synthesis_failure_writes_nothing(self, service, gateway, output_dir):
        gateway.fail_with = "401 Unauthorized"

        with pytest.raises(SynthesisError) as exc_info:
            service.create("Hello")

        assert exc_info.value.message == "Failed to generate text to speech."
        assert "401" not in str(exc_info.value.to_dict())
        assert service.list_keys() == []
        assert service.gate.reserved == 0

    def test_empty_audio_is_failure(self, service, gateway):
        gateway.synthesize = lambda text, voice=None: SynthResult(audio_bytes=b"")
        with pytest.raises(SynthesisError):
            service.create("Hello")
        assert service.list_keys() == []

    def test_recreate_after_delete_synthesizes_again(self, service, gateway):
        key = service.create("Hello")
        service.delete(key)
        assert service.create("Hello") == key
        assert len(gateway.calls) == 2


class TestCapacity:

    def test_new_key_refused_when_full(self, small_service, gateway):
        small_service.create("one")
        small_service.create("two")

        with pytest.raises(CapacityExceededError) as exc_info:
            small_service.create("three")

        assert exc_info.value.code == ErrorCode.CAPACITY_EXCEEDED
        assert "limit has been reached" in exc_info.value.message
        assert len(gateway.calls) == 2
        assert len(small_service.list_keys()) == 2

    def test_existing_key_served_when_full(self, small_service, gateway):
        key = small_service.create("one")
        small_service.create("two")

        assert small_service.create("one") == key
        assert len(gateway.calls) == 2

    def test_delete_frees_a_slot(self, small_service):
        key = small_service.create("one")
        small_service.create("two")
        small_service.delete(key)

        small_service.create("three")
        assert len(small_service.list_keys()) == 2

    def test_foreign_files_do_not_count(self, small_service, output_dir):
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / "readme.txt").write_text("not audio")
        (output_dir / ".gitkeep").write_text("")

        small_service.create("one")
        small_service.create("two")
        assert len(small_service.list_keys()) == 2


class TestFetchDeleteList:

    def test_fetch(self, service):
        key = service.create("Hello")
        assert service.fetch(key) == b"ID3fake-mp3Hello"

    def test_fetch_unknown_key(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.fetch("0" * 32)
        assert exc_info.value.code == ErrorCode.NOT_FOUND

    @pytest.mark.parametrize("key", ["nope", "0" * 31, "Z" * 32, "../secret"])
    def test_fetch_malformed_key(self, service, key):
        with pytest.raises(InvalidInputError) as exc_info:
            service.fetch(key)
        assert exc_info.value.details["errors"][0]["code"] == "KEY_INVALID_FORMAT"

    def test_delete(self, service, output_dir):
        key = service.create("Hello")
        assert service.delete(key) == DELETED_MESSAGE
        assert not (output_dir / f"{key}.mp3").exists()

    def test_delete_twice(self, service):
        key = service.create("Hello")
        service.delete(key)
        with pytest.raises(NotFoundError):
            service.delete(key)

    def test_delete_malformed(self, service):
        with pytest.raises(InvalidInputError):
            service.delete("not-a-key")

    def test_list_keys(self, service):
        keys = {service.create("one"), service.create("two")}
        assert set(service.list_keys()) == keys

    def test_list_empty_before_startup(self, service):
        assert service.list_keys() == []


class TestVoices:

    def test_all_voices(self, service):
        assert len(service.list_voices()) == 4

    def test_gender_filter(self, service):
        assert service.list_voices(gender="Female") == [
            "en-US-AvaMultilingualNeural",
            "en-US-EmmaNeural",
        ]

    def test_locale_passed_to_provider(self, service, gateway):
        assert service.list_voices(locale="de-DE") == []
        assert gateway.voice_calls == ["de-DE"]

    def test_invalid_filters(self, service, gateway):
        with pytest.raises(InvalidInputError) as exc_info:
            service.list_voices(locale="en_US", gender="Robot")
        assert len(exc_info.value.details["errors"]) == 2
        assert gateway.voice_calls == []

    def test_provider_failure(self, service, gateway):
        gateway.voices_fail_with = "network down"
        with pytest.raises(ProviderError) as exc_info:
            service.list_voices()
        assert exc_info.value.message == "Failed to retrieve voices."


class TestConcurrency:

    def test_duplicate_creates_synthesize_once(self, output_dir):
        gateway = StubGateway(delay=0.05)
        svc = Text2SpeechService(make_config(output_dir), gateway)
        keys = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            keys.append(svc.create("Hello"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(keys)) == 1
        assert len(keys) == 8
        assert len(gateway.calls) == 1

    def test_limit_holds_under_concurrency(self, output_dir):
        gateway = StubGateway(delay=0.02)
        svc = Text2SpeechService(make_config(output_dir, max_files=3), gateway)
        created, refused = [], []
        barrier = threading.Barrier(6)

        def worker(i):
            barrier.wait()
            try:
                created.append(svc.create(f"text {i}"))
            except CapacityExceededError:
                refused.append(i)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(created) == 3
        assert len(refused) == 3
        assert len(svc.list_keys()) == 3


class TestLifecycleAndHealth:

    def test_startup_creates_directory(self, service, output_dir):
        assert not output_dir.exists()
        service.startup()
        assert output_dir.is_dir()
        assert service.gateway.is_loaded()

    def test_startup_tolerates_gateway_failure(self, output_dir):
        class Broken(StubGateway):
            def load(self):
                from tts_gateway.tts.gateway import GatewayError
                raise GatewayError("no credentials")

        svc = Text2SpeechService(make_config(output_dir), Broken())
        svc.startup()
        assert output_dir.is_dir()

    def test_health_info(self, service):
        service.startup()
        service.create("Hello")

        health = service.get_health_info()

        assert health["status"] == "ok"
        assert health["provider"] == {"name": "stub", "loaded": True}
        assert health["storage"]["entries"] == 1
        assert health["storage"]["max_entries"] == 100
        assert health["storage"]["total_bytes"] == len(b"ID3fake-mp3Hello")
        assert health["storage"]["reserved"] == 0

    def test_custom_store(self, output_dir, gateway, tmp_path):
        store = FileCacheStore(str(tmp_path / "elsewhere"))
        svc = Text2SpeechService(make_config(output_dir), gateway, store=store)
        key = svc.create("Hello")
        assert store.exists(key)
        assert not output_dir.exists()


class TestSingleton:

    def test_get_service_is_singleton(self, tmp_path):
        settings = Settings(raw={"storage": {"output_dir": str(tmp_path)}})
        a = get_service(settings)
        b = get_service(settings)
        assert a is b
        assert a.gateway.name == "azure"

    def test_reset_service(self, tmp_path):
        settings = Settings(raw={"storage": {"output_dir": str(tmp_path)}})
        a = get_service(settings)
        reset_service()
        assert get_service(settings) is not a
