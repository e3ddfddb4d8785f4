"""Models for sponsored posts pushed in by the ads component."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from nexus_campus.db.session import Base
from nexus_campus.db.time import utcnow

AD_STATUSES = ("ACTIVE", "PAUSED", "ENDED", "EXHAUSTED")
AD_STATUS_ACTIVE = "ACTIVE"


def _new_id() -> str:
    return str(uuid.uuid4())


class AdPost(Base):
    """A sponsored post created through the signed internal API."""

    __tablename__ = "ad_post"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    campaign_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    sponsor_name: Mapped[str] = mapped_column(Text, nullable=False, default="Sponsored")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    creative: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False)
    target: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)
    budget: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=AD_STATUS_ACTIVE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class AdImpression(Base):
    """One view of an ad by a signed-in user."""

    __tablename__ = "ad_impression"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    ad_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ad_post.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class AdClick(Base):
    """One click-through on an ad by a signed-in user."""

    __tablename__ = "ad_click"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    ad_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ad_post.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
