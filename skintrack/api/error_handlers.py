from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from skintrack.api.schemas_timeline import ErrorBody, ErrorResponse
from skintrack.errors import InvalidImagePayload


logger = logging.getLogger(__name__)

_IMAGE_ERROR_STATUS = {
    "unsupported_file_type": 400,
    "payload_too_large": 413,
    "unprocessable_input": 422,
}


def _get_request_id(request: Request) -> Optional[str]:
    """
    Best-effort request_id retrieval.
    - RequestIdMiddleware sets request.state.request_id.
    - Otherwise fall back to inbound header.
    """
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return rid
    return request.headers.get("X-Request-Id")


def _error_payload(code: str, message: str, request_id: Optional[str]) -> Dict[str, Any]:
    return ErrorResponse(error=ErrorBody(code=code, message=message, request_id=request_id)).model_dump()


def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    rid = _get_request_id(request)
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(code=code, message=message, request_id=rid),
        headers={"X-Request-Id": rid} if rid else None,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Normalize HTTPException into the global error schema.
    - detail as dict: {"code": "...", "message": "..."}  (route style)
    - detail as str: "..."                            (FastAPI default style)
    """
    code = "http_error"
    message = "Request failed"

    if isinstance(exc.detail, dict):
        code = str(exc.detail.get("code", code))
        message = str(exc.detail.get("message", message))
    elif isinstance(exc.detail, str):
        message = exc.detail

    return _error_response(request, exc.status_code, code, message)


async def invalid_image_handler(request: Request, exc: InvalidImagePayload) -> JSONResponse:
    return _error_response(request, _IMAGE_ERROR_STATUS.get(exc.code, 400), exc.code, exc.message)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Normalize validation errors (422) into the global error schema,
    with a short "loc: msg; loc: msg" summary.
    """
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", []) if x != "body")
        msg = err.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else str(msg))

    message = "; ".join(parts) if parts else "Validation error"
    return _error_response(request, 422, "validation_error", message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error")
    return _error_response(request, 500, "internal_error", "Internal server error")
