"""
Global exception handlers

Every error leaves the API in the response envelope:
{"success": false, "data": null, "error": {"code", "message", "trace_id"}}
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookkeeping.services.errors import BookkeepingError
from bookkeeping.utils.trace_id import get_trace_id

logger = logging.getLogger(__name__)


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {
        "code": code,
        "message": message,
        "trace_id": get_trace_id(request),
    }
    if details is not None:
        error["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "data": None, "error": error},
    )


async def bookkeeping_exception_handler(request: Request, exc: BookkeepingError) -> JSONResponse:
    """Handle domain exceptions"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}", extra={"error_code": exc.code})
    return error_response(request, exc.status_code, exc.code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions"""
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(request, exc.status_code, f"HTTP_{exc.status_code}", message)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation exceptions"""

    # Convert non-JSON-serializable objects in error details to strings
    def convert_non_serializable(obj):
        if isinstance(obj, (Decimal, Exception)):
            return str(obj)
        elif isinstance(obj, dict):
            return {key: convert_non_serializable(value) for key, value in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [convert_non_serializable(item) for item in obj]
        elif isinstance(obj, type):
            return str(obj)
        return obj

    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "请求参数无效",
        details=convert_non_serializable(exc.errors()),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions"""
    trace_id = get_trace_id(request)

    # Log the actual exception; the client only gets a generic message
    logger.exception("Unhandled exception", exc_info=exc, extra={"trace_id": trace_id})

    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "服务器内部错误",
    )
