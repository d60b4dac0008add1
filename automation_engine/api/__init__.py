"""
API Router Aggregation for the Automation Engine

Combines all API endpoints into a single importable router.
"""

from fastapi import APIRouter

from .health import router as health_router
from .trigger import router as trigger_router
from .workflows import router as workflows_router

router = APIRouter()

# Health check at root level
router.include_router(health_router)

# Everything else under /api
api_router = APIRouter(prefix="/api")
api_router.include_router(trigger_router)
api_router.include_router(workflows_router)
router.include_router(api_router)

__all__ = ["router"]
