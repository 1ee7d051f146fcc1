"""
API Routers.
"""

from api.routers.classify import router as classify_router
from api.routers.health import router as health_router

__all__ = ["classify_router", "health_router"]
