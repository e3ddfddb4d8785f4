"""Models for badge definitions and badges awarded to students."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nexus_campus.db.session import Base
from nexus_campus.db.time import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class BadgeDefinition(Base):
    """A badge that faculty and admins can award."""

    __tablename__ = "badge_definition"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class StudentBadge(Base):
    """Award record; a student holds any given badge at most once."""

    __tablename__ = "student_badge"
    __table_args__ = (
        UniqueConstraint("badge_id", "student_id", name="uq_student_badge_badge_student"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    badge_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("badge_definition.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    awarded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    badge: Mapped[BadgeDefinition] = relationship("BadgeDefinition", lazy="joined")
