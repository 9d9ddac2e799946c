"""
FastAPI application entry point
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookkeeping.infrastructure.settings import get_settings
from bookkeeping.infrastructure.logging_config import setup_logging
from bookkeeping.api.exceptions import (
    bookkeeping_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from bookkeeping.api.public.health import router as health_router
from bookkeeping.api.v1 import router as api_router
from bookkeeping.backends.detector import detect_backend
from bookkeeping.services.errors import BookkeepingError
from bookkeeping.utils.trace_id import TraceIDMiddleware
from bookkeeping.utils.request_logging import RequestLoggingMiddleware

# Get settings
settings = get_settings()

# Setup logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Store Ledger API",
    description="Multi-store bookkeeping API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

if settings.CORS_ENABLED:
    cors_origins = settings.cors_allow_origins_list
    cors_methods = settings.cors_allow_methods_list or ["*"]
    cors_headers = settings.cors_allow_headers_list or ["*"]

    if not cors_origins:
        logger.warning(
            "CORS_ENABLED=True but CORS_ALLOW_ORIGINS is empty or not set. "
            "Set CORS_ALLOW_ORIGINS (comma-separated, e.g. 'http://localhost:3000')."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=cors_methods,
        allow_headers=cors_headers,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    )

# Add custom middlewares (order matters - last added is outermost)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(TraceIDMiddleware)

# Register exception handlers
app.add_exception_handler(BookkeepingError, bookkeeping_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(api_router)

logger.info("Application configured", extra={"backend": detect_backend(settings), "env": settings.ENV})


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "name": "Store Ledger API",
        "version": "1.0.0",
        "status": "running",
    }
