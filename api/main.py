#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Web Server - REST API for the eBook Publishing Engine.

Thin orchestration shell: app creation, middleware, router includes,
exception handlers, startup/shutdown events.

Usage:
    uvicorn api.main:app --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from config.settings import settings
from config.logging_config import setup_logging, get_logger

setup_logging(settings.log_level)
logger = get_logger(__name__)

from api.errors import register_exception_handlers
from api.routes.health import router as health_router
from api.routes.ai import router as ai_router
from api.routes.runs import router as runs_router

# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="eBook Publishing Engine API",
    description="Outline, chapter and cover generation with provider fallback; DOCX/EPUB export",
    version="1.0.0"
)

# CORS middleware: origins from settings (env var) or dev defaults
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

register_exception_handlers(app)

# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(ai_router)
app.include_router(runs_router)

# =============================================================================
# Startup / Shutdown Events
# =============================================================================

@app.on_event("startup")
async def startup_resume_runs():
    """Restore run snapshots and resume generations interrupted by a restart."""
    try:
        from api.services.ebook_service import get_ebook_service
        service = get_ebook_service()
        resumed = await service.restore_sessions()
        if resumed > 0:
            logger.info(f"Startup: Resumed {resumed} interrupted runs")
    except Exception as e:
        logger.error(f"Startup: Failed to restore runs: {e}")


@app.on_event("shutdown")
async def shutdown_runs():
    """Cancel background generation tasks."""
    from api.services.ebook_service import get_ebook_service
    await get_ebook_service().shutdown()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=False)
