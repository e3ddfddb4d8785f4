"""Sponsored posts created by the ads component and their engagement counters."""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from nexus_campus.core.errors import NotFoundError
from nexus_campus.core.security import CallerContext
from nexus_campus.models import AdClick, AdImpression, AdPost
from nexus_campus.models.ad import AD_STATUS_ACTIVE
from nexus_campus.schemas.ad import AdCreate, AdUpdate

logger = logging.getLogger(__name__)


def _load_ad(db: Session, ad_id: str) -> AdPost:
    ad = db.get(AdPost, ad_id)
    if ad is None:
        raise NotFoundError("Ad not found")
    return ad


def create_ad(db: Session, data: AdCreate) -> AdPost:
    creative = data.creative
    content = creative.headline if not creative.body else f"{creative.headline}\n\n{creative.body}"
    ad = AdPost(
        campaign_id=data.ad_campaign_id,
        sponsor_name=data.sponsor_name,
        content=content,
        creative=creative.model_dump(),
        target=data.target.model_dump() if data.target else None,
        budget=data.budget.model_dump(mode="json") if data.budget else None,
        status=data.status,
    )
    db.add(ad)
    db.commit()
    db.refresh(ad)
    logger.info("Ad %s created for campaign %s", ad.id, ad.campaign_id)
    return ad


def update_ad(db: Session, ad_id: str, data: AdUpdate) -> AdPost:
    ad = _load_ad(db, ad_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(ad, key, value)
    db.commit()
    db.refresh(ad)
    return ad


def ad_stats(db: Session, ad_id: str) -> dict[str, int]:
    _load_ad(db, ad_id)
    impressions = db.scalar(select(func.count()).select_from(AdImpression).where(AdImpression.ad_id == ad_id))
    clicks = db.scalar(select(func.count()).select_from(AdClick).where(AdClick.ad_id == ad_id))
    return {"impressions": int(impressions or 0), "clicks": int(clicks or 0)}


def _load_active(db: Session, ad_id: str) -> AdPost:
    ad = db.get(AdPost, ad_id)
    if ad is None or ad.status != AD_STATUS_ACTIVE:
        raise NotFoundError("Ad not found")
    return ad


def record_impression(db: Session, caller: CallerContext, ad_id: str) -> None:
    ad = _load_active(db, ad_id)
    db.add(AdImpression(ad_id=ad.id, user_id=caller.subject))
    db.commit()


def record_click(db: Session, caller: CallerContext, ad_id: str) -> None:
    ad = _load_active(db, ad_id)
    db.add(AdClick(ad_id=ad.id, user_id=caller.subject))
    db.commit()
