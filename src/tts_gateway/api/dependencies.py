"""
FastAPI Dependency Injection Providers.

Shared resources for the route handlers, injected with Depends().

Architecture:
    1. get_settings() - Loads and caches application configuration
    2. get_text2speech_service() - Creates/returns the singleton service

Tests replace the service with app.dependency_overrides:

    app.dependency_overrides[get_text2speech_service] = lambda: service

Lifecycle:
    1. Application startup (main.py lifespan)
       └── service.startup() creates the output directory
    2. Request handling
       └── Route handler receives Text2SpeechService via Depends()
           └── Same instance for all requests, so the per-key locks and
               the capacity reservations are shared
"""
from __future__ import annotations

from functools import lru_cache

from tts_gateway.core.config import Settings, load_settings, settings_path
from tts_gateway.services.text2speech_service import Text2SpeechService, get_service


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The path is config/settings.yaml unless TTS_GATEWAY_SETTINGS points
    elsewhere. Settings are immutable once loaded; restart to change them.
    """
    return load_settings(settings_path())


def get_text2speech_service() -> Text2SpeechService:
    """Get the singleton Text2SpeechService instance."""
    return get_service(get_settings())
