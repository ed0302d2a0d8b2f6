"""
Command-Line Interface for tts-gateway.

Drives the same Text2SpeechService as the HTTP API, without running the
server. Files land in the configured output directory, so keys created
here are served by the API and vice versa.

Usage Examples:
    # Synthesize (or reuse) audio, print the file key
    tts-gateway --text "Hello" --voice en-US-AvaMultilingualNeural

    # Positional text, also copy the audio somewhere
    tts-gateway "Hello" --out hello.mp3

    # Dry-run mode (validate and print the key, no provider call)
    tts-gateway --text "Hello" --dry-run --json

    # Cache management
    tts-gateway --list
    tts-gateway --delete 4fb17d8895bee64a574ff14bf44ad1fb

    # Voice catalogue
    tts-gateway --voices --locale en-US --gender Female

Environment Variables:
    SPEECH_KEY / SPEECH_REGION: Azure Speech credentials
    TTS_GATEWAY_SETTINGS: Settings file (default config/settings.yaml)
    TTS_GATEWAY_OUTPUT_DIR: Output directory override
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, List, Optional
from uuid import uuid4

from tts_gateway.core.config import (
    ConfigValidationError,
    Settings,
    apply_env_overrides,
    load_settings,
    settings_path,
)
from tts_gateway.core.logging import configure_logging, get_logger, info, set_request_id, warn
from tts_gateway.services.text2speech_service import InvalidInputError, TTSGatewayError, build_service
from tts_gateway.services.validators import validate_create_request
from tts_gateway.tts.fingerprint import SynthesisRequest, fingerprint


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments (defaults to sys.argv)."""
    parser = argparse.ArgumentParser(description="tts-gateway CLI (cached text to speech)")

    # Input
    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")
    parser.add_argument("--voice", help="Voice short name (provider default if omitted)")

    # Output
    parser.add_argument("--out", help="Also copy the audio to this path")

    # Cache management
    parser.add_argument("--list", action="store_true", help="List stored file keys")
    parser.add_argument("--delete", metavar="KEY", help="Delete the file stored under KEY")

    # Voices
    parser.add_argument("--voices", action="store_true", help="List provider voices")
    parser.add_argument("--locale", help="Locale filter for --voices (e.g. en-US)")
    parser.add_argument("--gender", help="Gender filter for --voices (Female, Male, Neutral)")

    # Execution modes
    parser.add_argument("--settings", help="Settings file path")
    parser.add_argument("--dry-run", action="store_true",
                        help="Validate and print the file key without synthesis")
    parser.add_argument("--json", action="store_true", help="Print JSON output")

    return parser.parse_args(argv)


def _load_cli_settings(path: Optional[str], log) -> Settings:
    """Load settings; fall back to defaults (plus env overrides) when the file is missing."""
    path = path or settings_path()
    try:
        return load_settings(path)
    except FileNotFoundError:
        warn(log, "settings_missing", path=path, using="defaults")
        return Settings(raw=apply_env_overrides({}))


def _emit(payload: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)


def _dry_run(text: Any, voice: Any, settings: Settings) -> dict:
    """Validate a request and compute its key without touching the provider."""
    limits = settings.get_service_config().limits
    errors, text, voice = validate_create_request(
        text, voice,
        max_text_chars=limits.max_text_chars,
        max_voice_chars=limits.max_voice_chars,
    )
    if errors:
        raise InvalidInputError.from_validation(errors)

    key = fingerprint(SynthesisRequest(text=text, voice=voice))
    return {"fileKey": key, "text_len": len(text), "voice": voice}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for request or configuration errors).
    """
    args = _parse_args(argv)

    configure_logging()
    log = get_logger("tts-gateway.cli")
    set_request_id(str(uuid4())[:12])

    text = args.text or args.text_pos

    try:
        settings = _load_cli_settings(args.settings, log)
        if args.dry_run:
            if text is None:
                raise SystemExit("Provide --text or a positional text.")
            item = _dry_run(text, args.voice, settings)
            info(log, "dry_run", key=item["fileKey"][:8])
            _emit({"ok": True, "dry_run": True, **item}, args.json)
            print("DRY_RUN_OK")
            return 0

        service = build_service(settings)
        service.startup()

        if args.list:
            _emit({"ok": True, "keys": service.list_keys()}, args.json)
            return 0

        if args.delete:
            message = service.delete(args.delete)
            _emit({"ok": True, "message": message}, args.json)
            return 0

        if args.voices:
            voices = service.list_voices(args.locale, args.gender)
            _emit({"ok": True, "voices": voices}, args.json)
            return 0

        if text is None:
            raise SystemExit("Provide --text, a positional text, --list, --delete or --voices.")

        key = service.create(text, args.voice)
        result = {"ok": True, "fileKey": key}
        if args.out:
            out_path = Path(args.out)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            data = service.fetch(key)
            out_path.write_bytes(data)
            result.update({"out": str(out_path), "bytes": len(data)})
        _emit(result, args.json)
        print("CLI_OK")
        return 0

    except TTSGatewayError as e:
        _emit(e.to_dict(), args.json)
        return 1
    except ConfigValidationError as e:
        warn(log, "invalid_config", error=str(e))
        _emit({"ok": False, "error": "INVALID_CONFIG", "message": str(e)}, args.json)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
