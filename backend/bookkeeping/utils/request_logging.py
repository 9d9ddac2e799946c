"""
Access log middleware

One structured line per request. Health and readiness checks log at DEBUG so they do
not drown the access log.
"""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

QUIET_PATHS = ("/health", "/ready")

# Set on request.state by the session dependencies
ACTOR_FIELDS = ("actor_id", "actor_role", "actor_company_id")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status_code and duration_ms, plus the signed-in
    actor (user id, role, company) when the route resolved one.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log_data = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            }
            for field in ACTOR_FIELDS:
                value = getattr(request.state, field, None)
                if value:
                    log_data[field] = str(value)

            if request.url.path in QUIET_PATHS and status_code < 500:
                logger.debug("Health check", extra=log_data)
            elif status_code >= 500:
                logger.error("Request failed", extra=log_data)
            elif status_code >= 400:
                logger.warning("Request rejected", extra=log_data)
            else:
                logger.info("Request completed", extra=log_data)
