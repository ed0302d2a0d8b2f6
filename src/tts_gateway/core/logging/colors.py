"""
Console Colors for Gateway Log Lines.

Tags, durations and a few well-known fields (cache status, HTTP status,
storage counters) get their own colors. Colors are off when stdout is
not a TTY, when NO_COLOR is set (https://no-color.org/), or when
TTS_GATEWAY_NO_COLOR=1.
"""
from __future__ import annotations

import os
import sys
from typing import Any


class Colors:
    """ANSI escape codes used by the console formatter."""
    RESET = "\033[0m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    GRAY = "\033[90m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"


TAG_COLORS = {
    "SUCCESS": Colors.BRIGHT_GREEN,
    "FAIL": Colors.BRIGHT_RED,
    "ERROR": Colors.BRIGHT_RED,
    "WARN": Colors.BRIGHT_YELLOW,
    "INFO": Colors.BRIGHT_CYAN,
    "DEBUG": Colors.GRAY,
}

# Fields describing how full the audio directory is
STORAGE_FIELDS = ("entries", "max_files", "reserved")


def supports_color() -> bool:
    if os.getenv("TTS_GATEWAY_NO_COLOR", "0") == "1" or os.getenv("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


# Re-checked by configure_logging()
USE_COLORS = supports_color()


def paint(text: str, color: str) -> str:
    """Wrap text in a color code when colors are enabled."""
    if not USE_COLORS:
        return text
    return f"{color}{text}{Colors.RESET}"


def get_tag_color(tag: str) -> str:
    return TAG_COLORS.get(tag.upper(), Colors.WHITE)


def duration_color(seconds: float) -> str:
    """Green under 0.1s, yellow under 1s, red above (provider calls usually land in red)."""
    if seconds < 0.1:
        return Colors.GREEN
    if seconds < 1.0:
        return Colors.YELLOW
    return Colors.RED


def field_color(key: str, value: Any) -> str:
    """Color for a ``key=value`` field of a log line."""
    if key == "cache":
        return Colors.GREEN if value == "hit" else Colors.YELLOW
    if key == "status" and isinstance(value, int):
        if value >= 500:
            return Colors.RED
        if value >= 400:
            return Colors.YELLOW
        return Colors.GREEN
    if key in STORAGE_FIELDS:
        return Colors.MAGENTA
    return Colors.DIM
