"""
Log Formatters for JSON and Console Output.

    JsonlFormatter: one JSON object per line, for the rotating log file.
    ColoredConsoleFormatter: human-readable line for the terminal.

Output Examples:
    JSONL:
        {"ts":"2026-10-19T14:30:05+02:00","level":2,"tag":"INFO","message":"cache_hit","request_id":"3f2a9c1be0d4","extra":{"key":"5a2b8c1d"}}

    Console:
        14:30:05 [ INFO  ] (3f2a9c1be0d4) cache_hit key=5a2b8c1d 0.001s
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

# colors.paint reads USE_COLORS at call time; configure_logging() may flip it
from . import colors
from .colors import Colors, duration_color, field_color, get_tag_color


class JsonlFormatter(logging.Formatter):
    """
    Format log records as JSON Lines.

    Keys: ts, level, tag, message, request_id, and when present
    event, seconds and extra.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).astimezone().isoformat()

        payload: Dict[str, Any] = {
            "ts": ts,
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Format log records as ``HH:MM:SS [ TAG ] (rid) message key=value 0.123s``.

    Durations are green under 0.1s, yellow under 1s, red above. Cache
    status fields are green on hit and yellow on miss, HTTP-ish status
    codes red from 500 up.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [
            colors.paint(ts, Colors.DIM),
            colors.paint(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if rid != "-":
            parts.append(colors.paint(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(colors.paint(f"event={event}", Colors.BLUE))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            parts.append(colors.paint(f"{seconds:.3f}s", duration_color(seconds)))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for k, v in extra_data.items():
                parts.append(colors.paint(f"{k}={v}", field_color(k, v)))

        return " ".join(parts)
