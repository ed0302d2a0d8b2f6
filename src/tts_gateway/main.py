"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance for
tts-gateway. It sets up routing, logging, CORS, request validation errors and
the startup hook that prepares the audio directory.

Usage:
    # Run with uvicorn
    uvicorn tts_gateway.main:app --host 0.0.0.0 --port 3000

    # Or use the module directly
    python -m uvicorn tts_gateway.main:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tts_gateway import __version__
from tts_gateway.api.dependencies import get_settings, get_text2speech_service
from tts_gateway.api.routes import new_request_id, router
from tts_gateway.core.config import Settings, apply_env_overrides
from tts_gateway.core.logging import configure_logging, get_logger, info, warn
from tts_gateway.core.metrics import metrics
from tts_gateway.services.text2speech_service import ErrorCode

_LOG = get_logger("tts-gateway.main")


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into the field/location/code/message shape."""
    out = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        location = loc[0] if loc else "body"
        field = loc[-1] if len(loc) > 1 else None
        out.append({
            "field": field,
            "location": location,
            "code": str(err.get("type", "invalid")).upper(),
            "message": err.get("msg", "Invalid value"),
        })
    return out


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map body/query schema errors to the standard 400 INVALID_INPUT response."""
    rid = new_request_id()
    errors = _validation_errors(exc)
    warn(_LOG, "invalid_request", path=request.url.path, errors=len(errors))
    metrics.record_request("validation", ErrorCode.INVALID_INPUT)
    return JSONResponse(
        status_code=400,
        content={
            "ok": False,
            "error": ErrorCode.INVALID_INPUT,
            "message": "Invalid request",
            "details": {"errors": errors},
        },
        headers={"X-Request-Id": rid},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the output directory and load the provider before serving."""
    provider = app.dependency_overrides.get(get_text2speech_service, get_text2speech_service)
    service = provider()
    service.startup()
    yield
    info(_LOG, "shutdown")


def _app_settings() -> Settings:
    """Settings for app construction; defaults (plus env overrides) without a settings file."""
    try:
        return get_settings()
    except FileNotFoundError:
        warn(_LOG, "settings_missing", using="defaults")
        return Settings(raw=apply_env_overrides({}))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function:
        1. Configures structured logging based on environment settings
        2. Creates a FastAPI instance with the service title
        3. Enables CORS for the configured origins (all by default)
        4. Registers the text2speech router
        5. Maps request validation errors to 400 responses
        6. Prepares the service on startup (lifespan)

    Args:
        settings: Settings to read the server section from. Defaults to
            the cached application settings.

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    # Initialize structured logging (reads TTS_GATEWAY_LOG_LEVEL env var)
    configure_logging()

    server = (settings or _app_settings()).get_service_config().server

    app = FastAPI(title="tts-gateway", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id", "Content-Disposition"],
    )

    app.include_router(router)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
