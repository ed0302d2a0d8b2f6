"""
Request Fingerprinting.

A fingerprint is the cache key of a synthesis request and doubles as the
opaque ``fileKey`` handed back to clients. It is the MD5 hex digest of the
request's canonical JSON form:

    {"text": "Hello", "voice": "en-US-AvaMultilingualNeural"}

serialized with sorted keys and compact separators. ``voice`` is left out
entirely when the request has none, so ``{"text": "Hello"}`` and
``{"text": "Hello", "voice": "en-US-AvaMultilingualNeural"}`` map to
different files.

MD5 is used for its fixed 32-character shape and collision resistance on
non-adversarial input, not for security.
"""
from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

# 32 lowercase hex characters
FINGERPRINT_PATTERN = re.compile(r"[0-9a-f]{32}")
FINGERPRINT_LENGTH = 32


@dataclass(frozen=True)
class SynthesisRequest:
    """
    A validated synthesis request.

    Attributes:
        text: Text to render (1..100 characters once validated).
        voice: Provider voice short name, or None for the provider default.
    """
    text: str
    voice: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Canonical dict form; absent fields are omitted."""
        data: Dict[str, Any] = {"text": self.text}
        if self.voice is not None:
            data["voice"] = self.voice
        return data


def canonical_json(request: SynthesisRequest) -> str:
    """Serialize a request with a stable field order."""
    return json.dumps(request.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def fingerprint(request: SynthesisRequest) -> str:
    """
    Compute the cache key for a request.

    Args:
        request: Validated synthesis request.

    Returns:
        32-character lowercase hex string.

    Example:
        key = fingerprint(SynthesisRequest(text="Hello"))
        assert is_fingerprint(key)
    """
    payload = canonical_json(request).encode("utf-8")
    return hashlib.md5(payload, usedforsecurity=False).hexdigest()


def is_fingerprint(value: Any) -> bool:
    """Check whether value has the shape of a fingerprint."""
    return isinstance(value, str) and FINGERPRINT_PATTERN.fullmatch(value) is not None
