"""
Schemas for the health and readiness endpoints
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(..., description="Always ok while the process serves requests")


class ReadyResponse(BaseModel):
    """Connectivity of the active backend"""
    status: str = Field(..., description="ok or not_ready")
    backend: str = Field(..., description="supabase or leancloud")
    database: str = Field(..., description="connected or disconnected")
    auth: str = Field(..., description="connected or disconnected")
