"""SQLAlchemy models for campus events and their registrations."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nexus_campus.db.session import Base
from nexus_campus.db.time import utcnow

EVENT_TYPES = ("WORKSHOP", "SEMINAR", "HACKATHON", "MEETUP")
EVENT_MODES = ("ONLINE", "ONSITE", "HYBRID")

MODERATION_PENDING = "PENDING_REVIEW"
MODERATION_APPROVED = "APPROVED"
MODERATION_REJECTED = "REJECTED"


def _new_id() -> str:
    return str(uuid.uuid4())


class Event(Base):
    """A college-scoped event, optionally capped by ``capacity``."""

    __tablename__ = "event"
    __table_args__ = (Index("ix_event_college_start", "college_id", "start_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    college_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    author_role: Mapped[str] = mapped_column(String(32), nullable=False)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    meeting_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # None means unlimited registrations.
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    visible_to_all_depts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    departments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    moderation_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MODERATION_PENDING
    )
    monitor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    monitor_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    registrations: Mapped[list[EventRegistration]] = relationship(
        "EventRegistration",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def is_visible_to(self, department: str | None) -> bool:
        """Return True if a member of ``department`` may see this event."""
        return self.visible_to_all_depts or (department is not None and department in (self.departments or []))


class EventRegistration(Base):
    """Admission record for an event; one per (event, user)."""

    __tablename__ = "event_registration"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_registration_event_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("event.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    event: Mapped[Event] = relationship("Event", back_populates="registrations")
