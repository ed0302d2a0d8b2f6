"""
Speech Provider Implementations.

Each provider is a subclass of BaseSpeechGateway. Provider modules are
imported lazily by tts.gateway.create_gateway() so an unused SDK is never
loaded.

Available Providers:
    - AzureSpeechGateway: Azure Speech via azure-cognitiveservices-speech
"""
from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = ["AzureSpeechGateway"]

if TYPE_CHECKING:
    from .azure_gateway import AzureSpeechGateway


def __getattr__(name: str):
    if name == "AzureSpeechGateway":
        from .azure_gateway import AzureSpeechGateway
        return AzureSpeechGateway
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
