"""System endpoints for monitoring the campus service."""

from __future__ import annotations

import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from nexus_campus.core.settings import settings

from ..dependencies import SessionDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "jwt_algorithm": settings.jwt_algorithm,
            "debug": settings.debug,
        },
        "claims": {"retries": settings.claim_retries},
        "signing": {
            "configured": bool(settings.ads_hmac_secret),
            "replay_backend": settings.replay_backend,
        },
        "events": {"required_badges": settings.required_event_badges},
        "projects": {"auto_approve": settings.project_auto_approve},
    }


@router.get("/health")
async def get_system_health(db: SessionDep) -> dict[str, object]:
    """Health check including database connectivity.

    Args:
        db: Database session

    Returns:
        Dictionary with overall status, component health and version
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e}"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {"database": db_status},
        "version": settings.app_version,
    }
