"""Schemas for the signed internal ads API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

AdStatus = Literal["ACTIVE", "PAUSED", "ENDED", "EXHAUSTED"]


class AdCreative(BaseModel):
    headline: str = Field(..., min_length=1, max_length=120)
    body: str | None = Field(None, max_length=2000)
    media_id: str | None = None
    click_url: str | None = None


class AdTarget(BaseModel):
    college_ids: list[str] | None = None
    roles: list[str] | None = None


class AdBudget(BaseModel):
    total_impressions: int | None = Field(None, gt=0)
    overall_daily_cap: int | None = Field(None, gt=0)
    per_user_daily_cap: int | None = Field(None, gt=0)
    start_at: datetime | None = None
    end_at: datetime | None = None


class AdCreate(BaseModel):
    """Schema for an ad pushed by the ads component."""

    ad_campaign_id: str
    sponsor_name: str = "Sponsored"
    creative: AdCreative
    target: AdTarget | None = None
    budget: AdBudget | None = None
    status: AdStatus = "ACTIVE"


class AdUpdate(BaseModel):
    status: AdStatus | None = None
    target: dict[str, Any] | None = None
    budget: dict[str, Any] | None = None


class AdStatusResponse(BaseModel):
    id: str
    status: str


class AdStatsResponse(BaseModel):
    impressions: int
    clicks: int
