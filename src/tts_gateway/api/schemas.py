"""
API Request/Response Schemas.

Pydantic models for the text2speech endpoints. They handle JSON parsing,
type checking and OpenAPI documentation; the content rules (length
limits, empty text, key shape) live in services/validators.py so the
HTTP API and the CLI share them.

Models:
    CreateSpeechRequest: Body of POST /text2speech
    FileKeyResponse: Result of a successful create
    MessageResponse: Result of a successful delete
    ErrorResponse: Body of every error response

Example Request:
    {
        "text": "Hello",
        "voice": "en-US-AvaMultilingualNeural"
    }
"""
from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class CreateSpeechRequest(BaseModel):
    """
    Body of POST /text2speech.

    Attributes:
        text: Text to speak, 1-100 characters.
        voice: Provider voice short name (e.g. "en-US-AvaMultilingualNeural").
            Omitted or empty selects the provider default.

    Example:
        CreateSpeechRequest(text="Hello", voice="en-US-AvaMultilingualNeural")
    """
    text: str | None = Field(
        default=None,
        description="Text to synthesize (1-100 characters)",
        examples=["Hello"],
    )
    voice: str | None = Field(
        default=None,
        description="Voice short name, None for the provider default",
        examples=["en-US-AvaMultilingualNeural"],
    )


class FileKeyResponse(BaseModel):
    """Key of the generated (or already cached) audio file."""
    fileKey: str = Field(..., description="32-character file key",
                         examples=["4fb17d8895bee64a574ff14bf44ad1fb"])


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """
    Error body shared by all endpoints.

    Example Response:
        {
            "ok": false,
            "error": "CAPACITY_EXCEEDED",
            "message": "File storage limit has been reached. ...",
            "details": {"max_files": 100}
        }
    """
    ok: bool = False
    error: str
    message: str
    details: Dict[str, Any] | None = None
