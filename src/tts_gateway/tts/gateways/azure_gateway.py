"""
Azure Speech Gateway.

Binds the gateway contract to the Azure Speech SDK
(azure-cognitiveservices-speech).

Features:
    - Synthesis straight to memory (no audio device, no temp file)
    - Configurable output format (default Audio16Khz32KBitRateMonoMp3)
    - Voice catalogue lookup, optionally restricted to one locale

A fresh SpeechConfig is built for every call, so the voice chosen for
one request never leaks into the next.

Configuration:
    settings.yaml:
        speech:
          provider: azure
          output_format: Audio16Khz32KBitRateMonoMp3
          timeout_s: 30

    Credentials come from the environment:
        SPEECH_KEY=<subscription key>
        SPEECH_REGION=westeurope

Installation:
    pip install azure-cognitiveservices-speech
"""
from __future__ import annotations

from typing import Any, List, Optional

from tts_gateway.core.config import SpeechConfig
from tts_gateway.core.logging import debug, info, verbose
from tts_gateway.tts.gateway import BaseSpeechGateway, GatewayError, SynthResult, VoiceInfo
from tts_gateway.utils.timeit import timeit


class AzureSpeechGateway(BaseSpeechGateway):
    """
    Azure Speech provider.

    Args:
        config: Speech configuration (key, region, output format, timeout).
        sdk: Pre-imported SDK module. Defaults to
            ``azure.cognitiveservices.speech``, imported on load().
    """

    name = "azure"

    def __init__(self, config: SpeechConfig, sdk: Any = None):
        super().__init__(config)
        self._sdk = sdk
        self._output_format = None

    def load(self) -> None:
        if self._loaded:
            return

        if not self.config.key or not self.config.region:
            raise GatewayError("Azure Speech credentials missing (set SPEECH_KEY and SPEECH_REGION)")

        if self._sdk is None:
            try:
                import azure.cognitiveservices.speech as speechsdk
            except ImportError as e:
                raise GatewayError(
                    "azure-cognitiveservices-speech is not installed"
                ) from e
            self._sdk = speechsdk

        try:
            self._output_format = self._sdk.SpeechSynthesisOutputFormat[self.config.output_format]
        except KeyError:
            raise GatewayError(f"Unknown Azure output format: {self.config.output_format}")

        self._loaded = True
        info(self.logger, "gateway_loaded", provider=self.name,
             region=self.config.region, output_format=self.config.output_format)

    def _speech_config(self, voice: Optional[str] = None) -> Any:
        cfg = self._sdk.SpeechConfig(subscription=self.config.key, region=self.config.region)
        cfg.set_speech_synthesis_output_format(self._output_format)
        if voice:
            cfg.speech_synthesis_voice_name = voice
        return cfg

    def _synthesizer(self, voice: Optional[str] = None) -> Any:
        # audio_config=None keeps the audio in memory instead of playing it
        return self._sdk.SpeechSynthesizer(speech_config=self._speech_config(voice), audio_config=None)

    @staticmethod
    def _cancel_reason(result: Any) -> str:
        details = getattr(result, "cancellation_details", None)
        if details is None:
            return "canceled"
        reason = f"canceled: {getattr(details, 'reason', 'unknown')}"
        error_details = getattr(details, "error_details", None)
        if error_details:
            reason = f"{reason} ({error_details})"
        return reason

    def synthesize(self, text: str, voice: Optional[str] = None) -> SynthResult:
        self.ensure_loaded()
        sdk = self._sdk

        debug(self.logger, "synthesize_start", voice=voice or "default", chars=len(text))
        try:
            with timeit("provider_synthesize") as t:
                result = self._call(
                    "synthesize",
                    lambda: self._synthesizer(voice).speak_text_async(text).get(),
                )
        except GatewayError:
            raise
        except Exception as e:
            raise GatewayError(f"Azure synthesis call failed: {e}") from e

        if result.reason == sdk.ResultReason.SynthesizingAudioCompleted:
            audio = bytes(result.audio_data or b"")
            if not audio:
                raise GatewayError("Azure returned an empty audio payload")
            verbose(self.logger, "synthesize_done", bytes=len(audio), seconds=t.rounded)
            return SynthResult(audio_bytes=audio, timings_s={"provider": t.seconds})

        if result.reason == sdk.ResultReason.Canceled:
            raise GatewayError(self._cancel_reason(result))

        raise GatewayError(f"Unexpected synthesis result: {result.reason}")

    def list_voices(self, locale: Optional[str] = None) -> List[VoiceInfo]:
        self.ensure_loaded()
        sdk = self._sdk

        try:
            result = self._call(
                "list_voices",
                lambda: self._synthesizer().get_voices_async(locale or "").get(),
            )
        except GatewayError:
            raise
        except Exception as e:
            raise GatewayError(f"Azure voice listing failed: {e}") from e

        if result.reason != sdk.ResultReason.VoicesListRetrieved:
            detail = getattr(result, "error_details", None) or str(result.reason)
            raise GatewayError(f"Voice list not retrieved: {detail}")

        voices = [
            VoiceInfo(
                short_name=v.short_name,
                gender=getattr(v.gender, "name", str(v.gender)),
                locale=getattr(v, "locale", "") or "",
                name=getattr(v, "name", "") or "",
            )
            for v in result.voices
        ]
        verbose(self.logger, "voices_listed", locale=locale or "*", count=len(voices))
        return voices
