"""Event-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EventType = Literal["WORKSHOP", "SEMINAR", "HACKATHON", "MEETUP"]
EventMode = Literal["ONLINE", "ONSITE", "HYBRID"]
ModerationStatus = Literal["PENDING_REVIEW", "APPROVED", "REJECTED"]


class EventCreate(BaseModel):
    """Schema for creating a new event."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    start_at: datetime
    end_at: datetime
    type: EventType
    mode: EventMode
    location: str | None = None
    meeting_url: str | None = None
    capacity: int | None = Field(None, gt=0, description="Maximum registrations; omit for unlimited")
    visible_to_all_depts: bool = True
    departments: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class EventUpdate(BaseModel):
    """Partial update; only fields that are sent are applied."""

    title: str | None = Field(None, min_length=1)
    description: str | None = Field(None, min_length=1)
    start_at: datetime | None = None
    end_at: datetime | None = None
    type: EventType | None = None
    mode: EventMode | None = None
    location: str | None = None
    meeting_url: str | None = None
    capacity: int | None = Field(None, gt=0)
    visible_to_all_depts: bool | None = None
    departments: list[str] | None = None
    tags: list[str] | None = None

    @field_validator(
        "title",
        "description",
        "start_at",
        "end_at",
        "type",
        "mode",
        "visible_to_all_depts",
        "departments",
        "tags",
    )
    @classmethod
    def reject_null(cls, v: object) -> object:
        """Only location, meeting_url and capacity may be cleared with null."""
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class EventModerate(BaseModel):
    """Moderation decision or monitor assignment."""

    action: Literal["APPROVE", "REJECT", "ASSIGN"]
    monitor_id: str | None = None
    monitor_name: str | None = None


class EventResponse(BaseModel):
    """Schema for event information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    college_id: str
    author_id: str
    author_name: str
    author_role: str
    title: str
    description: str
    start_at: datetime
    end_at: datetime
    type: str
    mode: str
    location: str | None
    meeting_url: str | None
    capacity: int | None
    visible_to_all_depts: bool
    departments: list[str]
    tags: list[str]
    moderation_status: str
    monitor_id: str | None
    monitor_name: str | None
    created_at: datetime
    registration_count: int = 0
    is_registered: bool = False


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    limit: int


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    event_id: str
    user_id: str
    joined_at: datetime


class EligibilityResponse(BaseModel):
    can_create: bool
    missing_badges: list[str]
