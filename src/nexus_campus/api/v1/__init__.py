# src/nexus_campus/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
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

__all__ = [
    "ads_router",
    "applications_router",
    "badges_router",
    "connections_router",
    "events_router",
    "internal_ads_router",
    "network_router",
    "posts_router",
    "projects_router",
    "system_router",
    "tasks_router",
]
