"""
Shared API response schemas for the Forsee AI gateway.
"""
from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the /api/health endpoint."""
    status: str = "ok"
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Uniform error envelope."""
    error: str = Field(..., description="User-facing error message")
    details: str = Field(..., description="Raw error detail")
