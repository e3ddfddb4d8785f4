"""Badge definitions and awards."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from nexus_campus.core.errors import AlreadyClaimedError, NotFoundError
from nexus_campus.core.security import CallerContext
from nexus_campus.models import BadgeDefinition, StudentBadge
from nexus_campus.schemas.badge import BadgeAward, BadgeDefinitionCreate
from nexus_campus.services.authorization import Action, require
from nexus_campus.services.claims import ClaimRequest, ClaimResult, claim_slot

logger = logging.getLogger(__name__)


def list_definitions(db: Session) -> list[BadgeDefinition]:
    return list(db.scalars(select(BadgeDefinition).order_by(BadgeDefinition.name.asc())))


def create_definition(db: Session, caller: CallerContext, data: BadgeDefinitionCreate) -> BadgeDefinition:
    require(caller, "badge", Action.CREATE)
    definition = BadgeDefinition(
        name=data.name.strip(),
        description=data.description,
        icon=data.icon,
        created_by=caller.subject,
    )
    db.add(definition)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyClaimedError("Badge name already exists", reason="duplicate-name") from exc
    db.refresh(definition)
    return definition


def award_badge(
    db: Session,
    session_factory: sessionmaker[Session],
    caller: CallerContext,
    data: BadgeAward,
) -> ClaimResult:
    """Award a badge; a student holds each badge at most once."""
    require(caller, "badge", Action.AWARD)
    if db.get(BadgeDefinition, data.badge_definition_id) is None:
        raise NotFoundError("Badge definition not found")

    request = ClaimRequest(
        model=StudentBadge,
        resource_field="badge_id",
        requester_field="student_id",
        values={
            "badge_id": data.badge_definition_id,
            "student_id": data.user_id,
            "awarded_by": caller.subject,
            "reason": data.reason,
        },
    )
    result = claim_slot(session_factory, request)
    logger.info(
        "Badge %s for %s awarded by %s: %s",
        data.badge_definition_id,
        data.user_id,
        caller.subject,
        result.outcome.value,
    )
    return result


def user_badges(db: Session, user_id: str) -> list[StudentBadge]:
    return list(
        db.scalars(
            select(StudentBadge)
            .where(StudentBadge.student_id == user_id)
            .order_by(StudentBadge.awarded_at.desc())
        ).unique()
    )
