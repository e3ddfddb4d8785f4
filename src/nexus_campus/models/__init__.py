"""SQLAlchemy models for the Nexus Campus service."""

from .ad import AdClick, AdImpression, AdPost
from .badge import BadgeDefinition, StudentBadge
from .event import Event, EventRegistration
from .network import (
    Connection,
    ConnectionRequest,
    Post,
    PostBookmark,
    PostComment,
    PostLike,
    UserFollow,
)
from .project import (
    Project,
    ProjectApplication,
    ProjectAttachment,
    ProjectComment,
    ProjectTask,
)

__all__ = [
    "AdClick", "AdImpression", "AdPost",
    "BadgeDefinition", "StudentBadge",
    "Connection", "ConnectionRequest", "Post", "PostBookmark", "PostComment", "PostLike", "UserFollow",
    "Event", "EventRegistration",
    "Project", "ProjectApplication", "ProjectAttachment", "ProjectComment", "ProjectTask",
]
