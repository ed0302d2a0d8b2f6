"""
FastAPI REST API Layer for tts-gateway.

This package defines all HTTP endpoints:
    - routes.py: /text2speech, /voices, /health, /metrics
    - schemas.py: Request/response Pydantic models
    - dependencies.py: FastAPI dependency injection
"""
