# src/nexus_campus/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .ads import router as ads_router
from .applications import router as applications_router
from .badges import router as badges_router
from .connections import router as connections_router
from .events import router as events_router
from .internal_ads import router as internal_ads_router
from .network import router as network_router
from .posts import router as posts_router
from .projects import router as projects_router
from .system import router as system_router
from .tasks import router as tasks_router

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
