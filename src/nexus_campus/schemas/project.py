"""Project, application, task and collaboration schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ProjectType = Literal["RESEARCH", "DEVELOPMENT", "INTERNSHIP", "THESIS", "OTHER"]
ProgressStatus = Literal["OPEN", "IN_PROGRESS", "COMPLETED"]
TaskStatus = Literal["TODO", "IN_PROGRESS", "DONE"]


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    project_duration: str | None = None
    skills: list[str] = Field(default_factory=list)
    departments: list[str] = Field(default_factory=list)
    visible_to_all_depts: bool = False
    project_type: ProjectType
    max_students: int = Field(..., gt=0)
    deadline: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    outcomes: list[str] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    title: str | None = Field(None, min_length=1)
    description: str | None = Field(None, min_length=1)
    project_duration: str | None = None
    skills: list[str] | None = None
    departments: list[str] | None = None
    visible_to_all_depts: bool | None = None
    project_type: ProjectType | None = None
    max_students: int | None = Field(None, gt=0)
    deadline: datetime | None = None
    tags: list[str] | None = None
    requirements: list[str] | None = None
    outcomes: list[str] | None = None
    progress_status: ProgressStatus | None = None

    @field_validator(
        "title",
        "description",
        "skills",
        "departments",
        "visible_to_all_depts",
        "project_type",
        "max_students",
        "tags",
        "requirements",
        "outcomes",
        "progress_status",
    )
    @classmethod
    def reject_null(cls, v: object) -> object:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class ProjectModerate(BaseModel):
    action: Literal["APPROVE", "REJECT"]


class ProjectResponse(BaseModel):
    """Schema for project information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    college_id: str
    author_id: str
    author_name: str
    author_avatar: str | None
    title: str
    description: str
    project_duration: str | None
    skills: list[str]
    departments: list[str]
    visible_to_all_depts: bool
    project_type: str
    max_students: int
    deadline: datetime | None
    tags: list[str]
    requirements: list[str]
    outcomes: list[str]
    moderation_status: str
    progress_status: str
    created_at: datetime
    has_applied: bool | None = None
    my_application_status: str | None = None


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    page: int
    total: int


class ApplicationCreate(BaseModel):
    message: str | None = Field(None, max_length=2000)


class ApplicationStatusUpdate(BaseModel):
    status: Literal["ACCEPTED", "REJECTED"]


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    student_id: str
    student_name: str
    student_department: str | None
    status: str
    message: str | None
    applied_at: datetime


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    assigned_to_id: str | None = None


class TaskUpdate(BaseModel):
    title: str | None = Field(None, min_length=1)
    assigned_to_id: str | None = None
    status: TaskStatus | None = None

    @field_validator("title", "status")
    @classmethod
    def reject_null(cls, v: object) -> object:
        """``assigned_to_id`` is the only field that accepts null (unassign)."""
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    title: str
    assigned_to_id: str | None
    status: str
    created_at: datetime


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1)
    task_id: str | None = None


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    task_id: str | None
    author_id: str
    author_name: str
    body: str
    created_at: datetime


class AttachmentCreate(BaseModel):
    file_name: str = Field(..., min_length=1)
    file_url: str = Field(..., min_length=1)
    file_type: str | None = None


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    uploader_id: str
    file_name: str
    file_url: str
    file_type: str | None
    created_at: datetime
