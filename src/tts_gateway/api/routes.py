"""
Text2Speech API Routes.

Endpoints:
    POST   /text2speech            - Synthesize (or reuse) audio, returns {"fileKey"}
    GET    /text2speech            - List every stored fileKey
    GET    /text2speech/{fileKey}  - Download the audio file
    DELETE /text2speech/{fileKey}  - Delete the audio file
    GET    /voices                 - Voice short names, filtered by locale/gender
    GET    /health                 - Health check for load balancers and orchestrators
    GET    /metrics                - Prometheus metrics (requires prometheus_client)

Responses of the /text2speech and /voices routes carry an X-Request-Id
header matching the request id in the logs.

Error Handling:
    All errors are returned as JSON with standardized format:
    {
        "ok": false,
        "error": "<ERROR_CODE>",
        "message": "<human readable message>",
        "details": {...}
    }

    HTTP status codes are mapped from error codes:
        - INVALID_INPUT -> 400 Bad Request
        - NOT_FOUND -> 400 Bad Request
        - CAPACITY_EXCEEDED -> 507 Insufficient Storage
        - SYNTHESIS_FAILED -> 500 Internal Server Error
        - PROVIDER_FAILED -> 500 Internal Server Error
        - STORAGE_ERROR -> 500 Internal Server Error

Example Usage:
    curl -X POST http://localhost:3000/text2speech \\
        -H "Content-Type: application/json" \\
        -d '{"text": "Hello"}'
    # {"fileKey": "..."}

    curl http://localhost:3000/text2speech/<fileKey> --output hello.mp3
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from tts_gateway.api.dependencies import get_text2speech_service
from tts_gateway.api.schemas import (
    CreateSpeechRequest,
    ErrorResponse,
    FileKeyResponse,
    MessageResponse,
)
from tts_gateway.core.logging import error, get_logger, set_request_id
from tts_gateway.core.metrics import metrics
from tts_gateway.services.text2speech_service import (
    ErrorCode,
    Text2SpeechService,
    TTSGatewayError,
)

# FastAPI router for the text2speech endpoints
router = APIRouter()

_LOG = get_logger("tts-gateway.api")

STATUS_MAP = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.NOT_FOUND: 400,
    ErrorCode.CAPACITY_EXCEEDED: 507,
    ErrorCode.SYNTHESIS_FAILED: 500,
    ErrorCode.PROVIDER_FAILED: 500,
    ErrorCode.STORAGE_ERROR: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    500: {"model": ErrorResponse, "description": "Internal error"},
}


def new_request_id() -> str:
    """Generate a 12-char request ID and bind it to the logging context."""
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)
    return rid


def _error_response(err: TTSGatewayError, rid: str, operation: str) -> JSONResponse:
    """Create a standardized JSON error response from a TTSGatewayError."""
    metrics.record_request(operation, err.code)
    return JSONResponse(
        status_code=STATUS_MAP.get(err.code, 500),
        content=err.to_dict(),
        headers={"X-Request-Id": rid},
    )


def _internal_error(exc: Exception, rid: str, operation: str) -> JSONResponse:
    """Catch-all: log the detail internally, return a generic body."""
    error(_LOG, "unhandled_error", operation=operation,
          error=str(exc), error_type=type(exc).__name__)
    metrics.record_request(operation, ErrorCode.INTERNAL_ERROR)
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": ErrorCode.INTERNAL_ERROR,
            "message": "Internal server error",
            "request_id": rid,
        },
        headers={"X-Request-Id": rid},
    )


@router.post(
    "/text2speech",
    response_model=FileKeyResponse,
    responses={**_ERROR_RESPONSES, 507: {"model": ErrorResponse, "description": "Storage limit reached"}},
)
def create_speech(
    req: CreateSpeechRequest,
    service: Text2SpeechService = Depends(get_text2speech_service),
):
    """
    Convert text to speech and return the key of the audio file.

    Identical requests (same text and voice) return the same key; only the
    first one calls the speech provider.
    """
    rid = new_request_id()
    try:
        key = service.create(req.text, req.voice)
    except TTSGatewayError as e:
        return _error_response(e, rid, "create")
    except Exception as e:
        return _internal_error(e, rid, "create")

    metrics.record_request("create", "success")
    return JSONResponse(content={"fileKey": key}, headers={"X-Request-Id": rid})


@router.get("/text2speech", response_model=list[str])
def list_speech(service: Text2SpeechService = Depends(get_text2speech_service)):
    """Keys of every stored audio file."""
    rid = new_request_id()
    try:
        keys = service.list_keys()
    except TTSGatewayError as e:
        return _error_response(e, rid, "list")
    except Exception as e:
        return _internal_error(e, rid, "list")

    metrics.record_request("list", "success")
    return JSONResponse(content=keys, headers={"X-Request-Id": rid})


@router.get(
    "/text2speech/{fileKey}",
    response_class=Response,
    responses={200: {"content": {"audio/mpeg": {}}}, **_ERROR_RESPONSES},
)
def get_speech(
    fileKey: str,
    service: Text2SpeechService = Depends(get_text2speech_service),
):
    """Download a previously generated audio file."""
    rid = new_request_id()
    try:
        data = service.fetch(fileKey)
    except TTSGatewayError as e:
        return _error_response(e, rid, "fetch")
    except Exception as e:
        return _internal_error(e, rid, "fetch")

    metrics.record_request("fetch", "success")
    headers = {
        "X-Request-Id": rid,
        "Content-Disposition": f'inline; filename="{fileKey}{service.config.storage.file_extension}"',
    }
    return Response(content=data, media_type=service.config.storage.media_type, headers=headers)


@router.delete("/text2speech/{fileKey}", response_model=MessageResponse, responses=_ERROR_RESPONSES)
def delete_speech(
    fileKey: str,
    service: Text2SpeechService = Depends(get_text2speech_service),
):
    """Delete a previously generated audio file."""
    rid = new_request_id()
    try:
        message = service.delete(fileKey)
    except TTSGatewayError as e:
        return _error_response(e, rid, "delete")
    except Exception as e:
        return _internal_error(e, rid, "delete")

    metrics.record_request("delete", "success")
    return JSONResponse(content={"message": message}, headers={"X-Request-Id": rid})


@router.get("/voices", response_model=list[str], responses=_ERROR_RESPONSES)
def list_voices(
    locale: Optional[str] = Query(default=None, description="Locale, e.g. en-US"),
    gender: Optional[str] = Query(default=None, description="Female, Male or Neutral"),
    service: Text2SpeechService = Depends(get_text2speech_service),
):
    """Short names of the voices the provider offers."""
    rid = new_request_id()
    try:
        voices = service.list_voices(locale, gender)
    except TTSGatewayError as e:
        return _error_response(e, rid, "voices")
    except Exception as e:
        return _internal_error(e, rid, "voices")

    metrics.record_request("voices", "success")
    return JSONResponse(content=voices, headers={"X-Request-Id": rid})


@router.get("/health")
def health(service: Text2SpeechService = Depends(get_text2speech_service)):
    """
    Health check endpoint.

    Returns service status, the provider and cache occupancy:
        {
            "status": "ok",
            "provider": {"name": "azure", "loaded": true},
            "storage": {"entries": 3, "max_entries": 100, "total_bytes": 48213, "reserved": 0}
        }
    """
    return service.get_health_info()


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
