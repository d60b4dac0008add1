"""
Health Check Endpoint
"""

import time

from fastapi import APIRouter

from automation_engine.api.models import HealthResponse
from automation_engine.config import get_settings

# Track app start time for uptime
START_TIME = time.time()

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=settings.version,
        uptime_seconds=time.time() - START_TIME,
        service=settings.service_name,
    )
