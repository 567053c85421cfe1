"""
FastAPI application for the Fablecast API.

Story intake, job status, topic suggestions, health and log inspection.
"""

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from fablecast.config import config
from fablecast.routes.admin import router as admin_router
from fablecast.routes.stories import router as stories_router
from fablecast.routes.topics import router as topics_router
from fablecast.utils.logging import api_logger as logger, configure_logging

configure_logging(config.LOG_LEVEL)

app = FastAPI(
    title="Fablecast API",
    description="Illustrated, narrated children's stories generated section by section",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(stories_router)
app.include_router(topics_router)
app.include_router(admin_router)

# Serve section assets when they are stored on local disk
if config.use_local_assets:
    os.makedirs(config.LOCAL_ASSET_DIR, exist_ok=True)
    app.mount("/assets", StaticFiles(directory=config.LOCAL_ASSET_DIR), name="assets")


@app.get("/api")
async def api_info():
    return {
        "name": "Fablecast API",
        "version": "1.0.0",
        "endpoints": [
            "POST /api/stories",
            "GET /api/stories/{job_id}",
            "POST /api/topics/suggest",
            "GET /api/admin/logs",
            "GET /api/admin/jobs/{job_id}/timeline",
            "GET /health",
        ],
    }


@app.get("/health")
async def health_check():
    """Liveness plus a summary of which backends are configured."""
    health = {
        "status": "healthy",
        "environment": config.ENVIRONMENT,
        "config": {
            "supabase_configured": config.supabase_configured,
            "redis_configured": config.redis_configured,
            "asset_backend": "local" if config.use_local_assets else "supabase",
            "concurrent_section_media": config.CONCURRENT_SECTION_MEDIA,
        },
        "api_keys": {
            "anthropic": bool(config.ANTHROPIC_API_KEY),
            "openai": bool(config.OPENAI_API_KEY),
            "replicate": bool(config.REPLICATE_API_TOKEN),
        },
    }

    if config.supabase_configured:
        from fablecast.database.client import verify_supabase_connection
        health["database"] = {"connected": verify_supabase_connection()}
        if not health["database"]["connected"]:
            health["status"] = "degraded"

    if config.redis_configured:
        from fablecast.queue.connection import redis_health_check
        health["queue"] = redis_health_check()
        if not health["queue"]["connected"]:
            health["status"] = "degraded"
            logger.warning("Health check: Redis unavailable", error=health["queue"].get("error"))

    return health


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fablecast.api.main:app", host=config.API_HOST, port=config.API_PORT)
