"""
Input Validation for the Text2Speech Service.

Validation happens before anything touches the cache or the provider:
    - Reject invalid requests before paying for synthesis
    - Provide clear, actionable error messages
    - Keep oversized input away from the provider

Validation Rules:
    - Text: Required, non-empty (whitespace counts), max 100 characters
    - Voice: Optional string, max 50 characters
    - File key: 32 lowercase hex characters
    - Locale filter: letters, digits and hyphens, max 15 characters
    - Gender filter: Female, Male or Neutral

Text is validated but never rewritten: the fingerprint is computed over
exactly what the client sent.

Error Handling:
    All validation functions raise ValidationError with:
        - message: Human-readable error description
        - code: Machine-readable error code (e.g., "TEXT_TOO_LONG")
        - field / location: Where the offending value came from

    Error codes follow a consistent naming pattern:
        - {FIELD}_REQUIRED: Missing required field
        - {FIELD}_TOO_LONG: Exceeds max length
        - {FIELD}_INVALID_{REASON}: Format/content invalid

    validate_create_request() collects every violation instead of
    stopping at the first one.

Usage:
    from tts_gateway.services.validators import validate_create_request

    errors, text, voice = validate_create_request(body.text, body.voice)
    if errors:
        raise InvalidInputError("Invalid request", errors)

See Also:
    - api/schemas.py: Pydantic request models
    - text2speech_service.py: Uses validators before synthesis
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple

from tts_gateway.core.config import Defaults
from tts_gateway.core.logging import debug, get_logger
from tts_gateway.tts.fingerprint import is_fingerprint

# Module-level logger
_LOG = get_logger("tts-gateway.validators")

LOCALE_PATTERN = re.compile(r"[a-zA-Z0-9-]+")
MAX_LOCALE_LENGTH = 15
GENDERS = ("Female", "Male", "Neutral")


class ValidationError(Exception):
    """
    Exception raised when input validation fails.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for programmatic handling.
        field: Name of the offending input.
        location: "body", "path" or "query".
    """

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        field: Optional[str] = None,
        location: str = "body",
    ):
        self.message = message
        self.code = code
        self.field = field
        self.location = location
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "location": self.location,
            "code": self.code,
            "message": self.message,
        }


def validate_text(text: Any, max_length: int = Defaults.LIMITS_MAX_TEXT_CHARS) -> str:
    """
    Validate text input.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        The text, unchanged

    Raises:
        ValidationError: If validation fails
    """
    if text is None:
        raise ValidationError("Text is required", "TEXT_REQUIRED", "text")

    if not isinstance(text, str):
        raise ValidationError("Text must be a string", "TEXT_INVALID_TYPE", "text")

    if not text:
        raise ValidationError("Text must not be empty", "TEXT_REQUIRED", "text")

    if len(text) > max_length:
        raise ValidationError(
            f"Text exceeds maximum length ({len(text)} > {max_length})",
            "TEXT_TOO_LONG",
            "text",
        )

    return text


def validate_voice(voice: Any, max_length: int = Defaults.LIMITS_MAX_VOICE_CHARS) -> Optional[str]:
    """
    Validate voice identifier.

    An empty string is treated the same as no voice.

    Returns:
        Validated voice or None

    Raises:
        ValidationError: If validation fails
    """
    if voice is None or voice == "":
        return None

    if not isinstance(voice, str):
        raise ValidationError("Voice must be a string", "VOICE_INVALID_TYPE", "voice")

    if len(voice) > max_length:
        raise ValidationError(
            f"Voice exceeds maximum length ({len(voice)} > {max_length})",
            "VOICE_TOO_LONG",
            "voice",
        )

    return voice


def validate_file_key(key: Any) -> str:
    """
    Validate the shape of a file key.

    Existence is checked by the service, not here.

    Raises:
        ValidationError: If key is not 32 lowercase hex characters
    """
    if not is_fingerprint(key):
        raise ValidationError(
            "Invalid file key format",
            "KEY_INVALID_FORMAT",
            "fileKey",
            "path",
        )
    return key


def validate_locale(locale: Optional[str]) -> Optional[str]:
    """Validate the optional locale filter of the voices listing."""
    if locale is None or locale == "":
        return None

    if len(locale) > MAX_LOCALE_LENGTH:
        raise ValidationError(
            f"Locale exceeds maximum length ({len(locale)} > {MAX_LOCALE_LENGTH})",
            "LOCALE_TOO_LONG",
            "locale",
            "query",
        )

    if LOCALE_PATTERN.fullmatch(locale) is None:
        raise ValidationError(
            "Locale may only contain letters, digits and hyphens",
            "LOCALE_INVALID_FORMAT",
            "locale",
            "query",
        )

    return locale


def validate_gender(gender: Optional[str]) -> Optional[str]:
    """Validate the optional gender filter of the voices listing."""
    if gender is None or gender == "":
        return None

    if gender not in GENDERS:
        raise ValidationError(
            f"Gender must be one of {', '.join(GENDERS)}",
            "GENDER_INVALID_VALUE",
            "gender",
            "query",
        )

    return gender


def validate_create_request(
    text: Any,
    voice: Any,
    max_text_chars: int = Defaults.LIMITS_MAX_TEXT_CHARS,
    max_voice_chars: int = Defaults.LIMITS_MAX_VOICE_CHARS,
) -> Tuple[List[ValidationError], Optional[str], Optional[str]]:
    """
    Validate a create request, collecting every violation.

    Returns:
        (errors, text, voice). When errors is non-empty the other two
        values must not be used.
    """
    errors: List[ValidationError] = []
    valid_text: Optional[str] = None
    valid_voice: Optional[str] = None

    try:
        valid_text = validate_text(text, max_text_chars)
    except ValidationError as e:
        errors.append(e)

    try:
        valid_voice = validate_voice(voice, max_voice_chars)
    except ValidationError as e:
        errors.append(e)

    if errors:
        debug(_LOG, "create_request_invalid", codes=",".join(e.code for e in errors))

    return errors, valid_text, valid_voice


def validate_voice_filters(
    locale: Optional[str],
    gender: Optional[str],
) -> Tuple[List[ValidationError], Optional[str], Optional[str]]:
    """Validate both voices-listing filters, collecting every violation."""
    errors: List[ValidationError] = []
    valid_locale: Optional[str] = None
    valid_gender: Optional[str] = None

    try:
        valid_locale = validate_locale(locale)
    except ValidationError as e:
        errors.append(e)

    try:
        valid_gender = validate_gender(gender)
    except ValidationError as e:
        errors.append(e)

    return errors, valid_locale, valid_gender
