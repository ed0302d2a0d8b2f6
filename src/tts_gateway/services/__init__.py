"""
tts-gateway Services Layer.

This package provides the business logic that sits between the API layer
and the provider/storage layer.

Components:
    - text2speech_service.py: Text2SpeechService (create/fetch/delete/list/voices)
    - validators.py: Input validation functions

The Text2SpeechService class handles:
    - Request validation and fingerprinting
    - The on-disk audio cache and its capacity limit
    - Per-key serialization of concurrent requests
    - Error handling and reporting
"""
from .text2speech_service import (
    CapacityExceededError,
    ErrorCode,
    InvalidInputError,
    NotFoundError,
    ProviderError,
    StorageError,
    SynthesisError,
    Text2SpeechService,
    TTSGatewayError,
    get_service,
    reset_service,
)

__all__ = [
    "Text2SpeechService",
    "TTSGatewayError",
    "InvalidInputError",
    "NotFoundError",
    "CapacityExceededError",
    "SynthesisError",
    "ProviderError",
    "StorageError",
    "ErrorCode",
    "get_service",
    "reset_service",
]
