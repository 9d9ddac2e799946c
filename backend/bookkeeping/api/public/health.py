"""
Health check endpoints
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bookkeeping.auth.adapters import AuthAdapter
from bookkeeping.auth.dependencies import get_auth_adapter, get_privileged_repository
from bookkeeping.backends.detector import detect_backend
from bookkeeping.repositories.base import Repository
from bookkeeping.schemas.common import HealthResponse, ReadyResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health():
    """Basic health check"""
    return {"status": "ok"}


@router.get("/ready", response_model=ReadyResponse, responses={503: {"model": ReadyResponse}})
def ready(
    repo: Repository = Depends(get_privileged_repository),
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    """
    Readiness check - verifies data store and auth backend connectivity

    Returns:
    - 200 if all services are ready
    - 503 if any service is not ready
    """
    checks = {
        "status": "ok",
        "backend": detect_backend(),
        "database": "connected" if repo.ping() else "disconnected",
        "auth": "connected" if adapter.check_connection() else "disconnected",
    }
    if checks["database"] != "connected" or checks["auth"] != "connected":
        checks["status"] = "not_ready"

    status_code = 200 if checks["status"] == "ok" else 503
    return JSONResponse(status_code=status_code, content=checks)
