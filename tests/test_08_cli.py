"""
Tests for the command-line interface.

Tests cover:
- Dry-run output (key, JSON payload, marker line)
- Validation failures returning exit code 1
- --list, --delete, --voices and create with --out against a stub provider
"""
from __future__ import annotations

import json

import pytest

from conftest import StubGateway, make_config
from tts_gateway import cli
from tts_gateway.services.text2speech_service import Text2SpeechService
from tts_gateway.tts.fingerprint import SynthesisRequest, fingerprint


def _json_lines(out: str) -> list:
    return [json.loads(line) for line in out.splitlines() if line.startswith("{")]


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "storage:\n"
        f"  output_dir: {tmp_path / 'cli-output'}\n"
        "limits:\n"
        "  max_text_chars: 20\n"
        "logging:\n"
        "  level: 1\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def stub_service(output_dir, monkeypatch):
    """Route the CLI to a service backed by a stub provider."""
    gateway = StubGateway()
    svc = Text2SpeechService(make_config(output_dir), gateway)
    monkeypatch.setattr(cli, "build_service", lambda settings: svc)
    return svc


class TestDryRun:

    def test_prints_key(self, settings_file, capsys):
        code = cli.main(["--text", "Hello", "--dry-run", "--json", "--settings", settings_file])

        out = capsys.readouterr().out
        assert code == 0
        assert "DRY_RUN_OK" in out
        payload = _json_lines(out)[0]
        assert payload["fileKey"] == fingerprint(SynthesisRequest(text="Hello"))
        assert payload["dry_run"] is True

    def test_voice_changes_key(self, settings_file, capsys):
        cli.main(["Hello", "--voice", "en-US-EmmaNeural", "--dry-run", "--json",
                  "--settings", settings_file])

        payload = _json_lines(capsys.readouterr().out)[0]
        assert payload["fileKey"] == fingerprint(
            SynthesisRequest(text="Hello", voice="en-US-EmmaNeural")
        )

    def test_limit_from_settings(self, settings_file, capsys):
        code = cli.main(["--text", "x" * 21, "--dry-run", "--json", "--settings", settings_file])

        payload = _json_lines(capsys.readouterr().out)[0]
        assert code == 1
        assert payload["error"] == "INVALID_INPUT"
        assert payload["details"]["errors"][0]["code"] == "TEXT_TOO_LONG"

    def test_missing_text(self, settings_file):
        with pytest.raises(SystemExit):
            cli.main(["--dry-run", "--settings", settings_file])

    def test_missing_settings_file(self, tmp_path, capsys):
        code = cli.main(["--text", "Hello", "--dry-run",
                         "--settings", str(tmp_path / "absent.yaml")])
        assert code == 0
        assert "DRY_RUN_OK" in capsys.readouterr().out

    @pytest.mark.parametrize("section,line", [
        ("storage", "  max_files: lots"),
        ("speech", "  timeout_s: soon"),
        ("limits", "  max_text_chars: -5"),
    ])
    def test_invalid_settings_exit_1(self, tmp_path, capsys, section, line):
        path = tmp_path / "settings.yaml"
        path.write_text(f"{section}:\n{line}\n", encoding="utf-8")

        code = cli.main(["--text", "Hello", "--dry-run", "--json", "--settings", str(path)])

        out = capsys.readouterr().out
        assert code == 1
        assert "DRY_RUN_OK" not in out
        errors = [p for p in _json_lines(out) if p.get("error") == "INVALID_CONFIG"]
        assert errors and errors[0]["ok"] is False

    def test_invalid_settings_before_provider(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "settings.yaml"
        path.write_text("storage:\n  max_files: lots\n", encoding="utf-8")
        monkeypatch.setattr(cli, "build_service", lambda settings: settings.get_service_config())

        assert cli.main(["--list", "--json", "--settings", str(path)]) == 1


class TestCommands:

    def test_create_and_out(self, stub_service, settings_file, tmp_path, capsys):
        out_file = tmp_path / "copies" / "hello.mp3"

        code = cli.main(["--text", "Hello", "--out", str(out_file), "--json",
                         "--settings", settings_file])

        out = capsys.readouterr().out
        assert code == 0
        assert "CLI_OK" in out
        payload = _json_lines(out)[0]
        assert payload["fileKey"] == fingerprint(SynthesisRequest(text="Hello"))
        assert out_file.read_bytes() == b"ID3fake-mp3Hello"
        assert payload["bytes"] == len(b"ID3fake-mp3Hello")

    def test_list(self, stub_service, settings_file, capsys):
        key = stub_service.create("Hello")

        code = cli.main(["--list", "--json", "--settings", settings_file])

        assert code == 0
        assert _json_lines(capsys.readouterr().out)[0]["keys"] == [key]

    def test_delete(self, stub_service, settings_file, capsys):
        key = stub_service.create("Hello")

        code = cli.main(["--delete", key, "--json", "--settings", settings_file])

        assert code == 0
        assert _json_lines(capsys.readouterr().out)[0]["message"] == "File successfully deleted."
        assert stub_service.list_keys() == []

    def test_delete_unknown(self, stub_service, settings_file, capsys):
        code = cli.main(["--delete", "0" * 32, "--json", "--settings", settings_file])

        assert code == 1
        assert _json_lines(capsys.readouterr().out)[0]["error"] == "NOT_FOUND"

    def test_voices(self, stub_service, settings_file, capsys):
        code = cli.main(["--voices", "--gender", "Male", "--json", "--settings", settings_file])

        assert code == 0
        assert _json_lines(capsys.readouterr().out)[0]["voices"] == [
            "en-US-AndrewMultilingualNeural"
        ]

    def test_synthesis_failure(self, stub_service, settings_file, capsys):
        stub_service.gateway.fail_with = "boom"

        code = cli.main(["--text", "Hello", "--json", "--settings", settings_file])

        assert code == 1
        assert _json_lines(capsys.readouterr().out)[0]["error"] == "SYNTHESIS_FAILED"
