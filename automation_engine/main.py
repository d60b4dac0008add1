"""
Automation Engine - Main Application

FastAPI service around the execution engine:
- Webhook triggers with per-workflow admission control
- Single-node test runs for the editor
- In-memory workflow registration
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from automation_engine.api import router as api_router
from automation_engine.config import get_settings
from automation_engine.logging_config import setup_logging

settings = get_settings()
setup_logging("automation-engine", log_level=settings.log_level)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Automation Engine",
    description="Sequential workflow execution engine with provider adapters",
    version=settings.version,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("🚀 Automation Engine starting up...")
    logger.info("✅ API endpoints ready")
    logger.info("   - Health: /health")
    logger.info("   - Triggers: /api/trigger/{workflow_id}")
    logger.info("   - Workflows: /api/workflows/*")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    from automation_engine.api.dependencies import get_engine

    logger.info("🛑 Automation Engine shutting down...")
    if get_engine.cache_info().currsize:
        for adapter in get_engine().adapters.values():
            http = getattr(adapter, "http", None)
            if http is not None:
                http.close()
                break
    logger.info("👋 Shutdown complete")


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error(f"🚨 Unhandled exception: {str(exc)}")
    return JSONResponse(
        status_code=500, content={"error": "Internal server error", "detail": str(exc)}
    )


def main():
    """Main entry point"""
    logger.info(f"🚀 Starting Automation Engine on {settings.host}:{settings.port}")
    uvicorn.run(
        "automation_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()


__all__ = ["app", "main"]
