"""SQLAlchemy models for faculty projects and student collaboration."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nexus_campus.db.session import Base
from nexus_campus.db.time import utcnow

PROJECT_TYPES = ("RESEARCH", "DEVELOPMENT", "INTERNSHIP", "THESIS", "OTHER")

PROGRESS_OPEN = "OPEN"
PROGRESS_IN_PROGRESS = "IN_PROGRESS"
PROGRESS_COMPLETED = "COMPLETED"
PROGRESS_STATUSES = (PROGRESS_OPEN, PROGRESS_IN_PROGRESS, PROGRESS_COMPLETED)

APPLICATION_PENDING = "PENDING"
APPLICATION_ACCEPTED = "ACCEPTED"
APPLICATION_REJECTED = "REJECTED"

TASK_STATUSES = ("TODO", "IN_PROGRESS", "DONE")


def _new_id() -> str:
    return str(uuid.uuid4())


class Project(Base):
    """A faculty-authored project accepting at most ``max_students`` members."""

    __tablename__ = "project"
    __table_args__ = (Index("ix_project_college_created", "college_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    college_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    author_avatar: Mapped[str | None] = mapped_column(Text, nullable=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    project_duration: Mapped[str | None] = mapped_column(Text, nullable=True)
    skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    departments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    visible_to_all_depts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    project_type: Mapped[str] = mapped_column(String(32), nullable=False)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    requirements: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    outcomes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    moderation_status: Mapped[str] = mapped_column(String(16), nullable=False)
    progress_status: Mapped[str] = mapped_column(String(16), nullable=False, default=PROGRESS_OPEN)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    applications: Mapped[list[ProjectApplication]] = relationship(
        "ProjectApplication",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def is_visible_to(self, department: str | None) -> bool:
        """Return True if a student of ``department`` may see this project."""
        return self.visible_to_all_depts or (department is not None and department in (self.departments or []))


class ProjectApplication(Base):
    """A student's application to a project; one per (project, student)."""

    __tablename__ = "project_application"
    __table_args__ = (
        UniqueConstraint("project_id", "student_id", name="uq_project_application_project_student"),
        Index("ix_project_application_project_status", "project_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("project.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[str] = mapped_column(String(64), nullable=False)
    student_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    student_department: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=APPLICATION_PENDING)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    project: Mapped[Project] = relationship("Project", back_populates="applications")


class ProjectTask(Base):
    """Unit of work inside a project, optionally assigned to an accepted member."""

    __tablename__ = "project_task"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    assigned_to_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="TODO")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    project: Mapped[Project] = relationship("Project")


class ProjectComment(Base):
    """Discussion entry on a project, optionally attached to a task."""

    __tablename__ = "project_comment"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("project_task.id", ondelete="SET NULL"), nullable=True
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ProjectAttachment(Base):
    """Link to an externally stored file shared within a project."""

    __tablename__ = "project_attachment"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True
    )
    uploader_id: Mapped[str] = mapped_column(String(64), nullable=False)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
