"""
Health check endpoint.

Provides:
- /health: Liveness probe for devices and load balancers (fast, no external calls)
"""

from fastapi import APIRouter

from api.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health():
    """
    Basic health check endpoint.

    Always answers {"status": "ok"} and has no side effects.
    """
    return {"status": "ok"}
