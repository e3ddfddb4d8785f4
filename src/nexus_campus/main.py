# src/nexus_campus/main.py
"""Main entry point for the Nexus Campus application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from nexus_campus.api.v1 import (
    ads_router,
    applications_router,
    badges_router,
    connections_router,
    events_router,
    internal_ads_router,
    network_router,
    posts_router,
    projects_router,
    system_router,
    tasks_router,
)
from nexus_campus.core.errors import NexusError
from nexus_campus.core.settings import settings
from nexus_campus.db.session import create_tables

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("nexus_campus")

# Initialize FastAPI app
app = FastAPI(
    title="Nexus Campus API",
    description="Events, projects, badges and sponsored posts for an academic network",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)


@app.exception_handler(NexusError)
async def handle_nexus_error(request: Request, exc: NexusError) -> JSONResponse:
    """Render a typed service failure; internal reasons are logged, not returned."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.category, exc.reason)
    else:
        logger.info(
            "%s %s -> %d %s (%s)",
            request.method,
            request.url.path,
            exc.status_code,
            exc.category,
            exc.reason,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"category": exc.category, "detail": exc.public_detail},
    )


# Include API routers
app.include_router(events_router, prefix="/api/v1")
app.include_router(projects_router, prefix="/api/v1")
app.include_router(applications_router, prefix="/api/v1")
app.include_router(tasks_router, prefix="/api/v1")
app.include_router(badges_router, prefix="/api/v1")
app.include_router(posts_router, prefix="/api/v1")
app.include_router(network_router, prefix="/api/v1")
app.include_router(connections_router, prefix="/api/v1")
app.include_router(ads_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")
app.include_router(internal_ads_router)


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("nexus_campus.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
