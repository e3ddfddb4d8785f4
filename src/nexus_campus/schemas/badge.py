"""Badge-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BadgeDefinitionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str | None = None
    icon: str | None = None


class BadgeDefinitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    icon: str | None
    created_by: str
    created_at: datetime


class BadgeAward(BaseModel):
    """Schema for awarding a badge to a student."""

    user_id: str = Field(..., min_length=1)
    badge_definition_id: str = Field(..., min_length=1)
    reason: str | None = None


class StudentBadgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    badge_id: str
    student_id: str
    awarded_by: str
    reason: str | None
    awarded_at: datetime
    badge: BadgeDefinitionResponse
