"""Tests for the logging level system and formatters."""
from __future__ import annotations

import json
import logging

import pytest


class TestLogLevelEnum:
    """Test LogLevel enum values."""

    def test_level_enum_values(self):
        from tts_gateway.core.logging import LogLevel

        assert LogLevel.MINIMAL == 1
        assert LogLevel.NORMAL == 2
        assert LogLevel.VERBOSE == 3
        assert LogLevel.DEBUG == 4

    def test_level_map(self):
        from tts_gateway.core.logging import LEVEL_MAP, LogLevel

        assert LEVEL_MAP[LogLevel.MINIMAL] == logging.WARNING
        assert LEVEL_MAP[LogLevel.NORMAL] == logging.INFO
        assert LEVEL_MAP[LogLevel.VERBOSE] == logging.DEBUG


class TestLevelCoercion:
    """Test level coercion from various input types."""

    @pytest.mark.parametrize("value, expected", [
        (1, 1), (2, 2), (3, 3), (4, 4),
        ("MINIMAL", 1), ("normal", 2), ("Verbose", 3), ("TRACE", 4),
        ("INFO", 2), ("WARNING", 1), ("3", 3),
        (logging.WARNING, 1), (logging.INFO, 2),
    ])
    def test_coerce(self, value, expected):
        from tts_gateway.core.logging import coerce_level

        assert coerce_level(value) == expected

    def test_unknown_falls_back_to_normal(self):
        from tts_gateway.core.logging import LogLevel, coerce_level

        assert coerce_level("chatty") == LogLevel.NORMAL
        assert coerce_level(None) == LogLevel.NORMAL
        assert coerce_level(True) == LogLevel.NORMAL


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=1)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    """Attach a recording handler to a test logger and restore the level afterwards."""
    from tts_gateway.core.logging import get_level, get_logger, set_level

    logger = get_logger("tts-gateway.test-levels")
    handler = _ListHandler()
    logger.addHandler(handler)
    previous = get_level()
    yield logger, handler
    logger.removeHandler(handler)
    set_level(previous)


class TestHelpers:

    def test_verbose_hidden_at_normal(self, captured):
        from tts_gateway.core.logging import LogLevel, info, set_level, verbose

        logger, handler = captured
        set_level(LogLevel.NORMAL)

        info(logger, "shown")
        verbose(logger, "hidden")

        assert [r.getMessage() for r in handler.records] == ["shown"]

    def test_debug_shown_at_debug(self, captured):
        from tts_gateway.core.logging import LogLevel, debug, set_level

        logger, handler = captured
        set_level(LogLevel.DEBUG)
        debug(logger, "internal", key="abc")

        record = handler.records[0]
        assert record.tag == "DEBUG"
        assert record.extra_data == {"key": "abc"}

    def test_minimal_keeps_errors(self, captured):
        from tts_gateway.core.logging import LogLevel, error, fail, info, set_level

        logger, handler = captured
        set_level(LogLevel.MINIMAL)
        info(logger, "dropped")
        error(logger, "kept")
        fail(logger, "kept too")

        assert [r.getMessage() for r in handler.records] == ["kept", "kept too"]

    def test_request_id_attached(self, captured):
        from tts_gateway.core.logging import LogLevel, info, set_level, set_request_id

        logger, handler = captured
        set_level(LogLevel.NORMAL)
        set_request_id("abc123def456")
        info(logger, "request")
        set_request_id("-")

        assert handler.records[0].request_id == "abc123def456"

    def test_event_and_seconds_lifted(self, captured):
        from tts_gateway.core.logging import LogLevel, info, set_level

        logger, handler = captured
        set_level(LogLevel.NORMAL)
        info(logger, "stage", event="synth", seconds=0.25, bytes=10)

        record = handler.records[0]
        assert record.event == "synth"
        assert record.seconds == 0.25
        assert record.extra_data == {"bytes": 10}


def _record(**extra):
    record = logging.LogRecord("tts-gateway", logging.INFO, __file__, 1, "cache", None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestFormatters:

    def test_jsonl(self):
        from tts_gateway.core.logging import JsonlFormatter

        line = JsonlFormatter().format(_record(
            tag="INFO", request_id="rid000000001", numeric_level=2,
            event=None, seconds=0.5, extra_data={"key": "5a2b8c1d", "cache": "hit"},
        ))
        payload = json.loads(line)

        assert payload["message"] == "cache"
        assert payload["request_id"] == "rid000000001"
        assert payload["level"] == 2
        assert payload["seconds"] == 0.5
        assert payload["extra"] == {"key": "5a2b8c1d", "cache": "hit"}
        assert "event" not in payload

    def test_console_plain(self, monkeypatch):
        from tts_gateway.core.logging import ColoredConsoleFormatter, colors

        monkeypatch.setattr(colors, "USE_COLORS", False)
        line = ColoredConsoleFormatter().format(_record(
            tag="INFO", request_id="rid000000001", seconds=0.012,
            extra_data={"cache": "miss", "key": "5a2b8c1d"},
        ))

        assert "[ INFO  ]" in line
        assert "(rid000000001)" in line
        assert "cache=miss" in line
        assert "0.012s" in line
        assert "\033[" not in line

    def test_no_color_env(self, monkeypatch):
        from tts_gateway.core.logging import supports_color

        monkeypatch.setenv("NO_COLOR", "1")
        assert supports_color() is False
