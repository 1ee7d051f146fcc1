"""
API Response Schemas.

Centralized Pydantic models for the JSON bodies the relay returns.
"""

from pydantic import BaseModel, Field


class ClassificationResponse(BaseModel):
    """Successful classification."""
    category: str = Field(..., description="Label returned by the remote model, verbatim")


class HealthResponse(BaseModel):
    """Liveness probe body."""
    status: str = "ok"


class ErrorResponse(BaseModel):
    """Body of every error response."""
    error: str
