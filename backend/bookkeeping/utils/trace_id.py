"""
Per-request trace id

The id is taken from the caller when it sends one (a proxy or the web
client) so one value follows the request through every log line and the
error envelope.
"""

import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from bookkeeping.infrastructure.logging_config import trace_id_context

TRACE_HEADER = "X-Trace-ID"

# Checked in order
INCOMING_HEADERS = (TRACE_HEADER, "X-Request-Id", "X-Correlation-Id")

MAX_TRACE_ID_LENGTH = 128


def generate_trace_id() -> str:
    return str(uuid.uuid4())


def incoming_trace_id(request: Request) -> Optional[str]:
    """First usable trace id sent by the caller (oversized values are ignored)"""
    for header in INCOMING_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if value and len(value) <= MAX_TRACE_ID_LENGTH:
            return value
    return None


class TraceIDMiddleware(BaseHTTPMiddleware):
    """Binds the trace id to request.state and the logging context, echoes it back"""

    async def dispatch(self, request: Request, call_next):
        trace_id = incoming_trace_id(request) or generate_trace_id()
        request.state.trace_id = trace_id
        token = trace_id_context.set(trace_id)
        try:
            response = await call_next(request)
        finally:
            trace_id_context.reset(token)

        response.headers[TRACE_HEADER] = trace_id
        return response


def get_trace_id(request: Request) -> Optional[str]:
    return getattr(request.state, "trace_id", None)
