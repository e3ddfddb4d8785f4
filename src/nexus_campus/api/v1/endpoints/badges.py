"""Badge definition and award endpoints."""

from fastapi import APIRouter, status

from nexus_campus.models import BadgeDefinition
from nexus_campus.schemas.badge import (
    BadgeAward,
    BadgeDefinitionCreate,
    BadgeDefinitionResponse,
    StudentBadgeResponse,
)
from nexus_campus.services import badge_service

from ..dependencies import CallerDep, SessionDep, SessionFactoryDep, raise_for_outcome

router = APIRouter(prefix="/badges", tags=["badges"])


@router.get("/definitions", response_model=list[BadgeDefinitionResponse])
async def list_definitions(caller: CallerDep, db: SessionDep) -> list[BadgeDefinitionResponse]:
    return [BadgeDefinitionResponse.model_validate(item) for item in badge_service.list_definitions(db)]


@router.post(
    "/definitions",
    response_model=BadgeDefinitionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_definition(
    data: BadgeDefinitionCreate, caller: CallerDep, db: SessionDep
) -> BadgeDefinitionResponse:
    return BadgeDefinitionResponse.model_validate(badge_service.create_definition(db, caller, data))


@router.post("/award", response_model=StudentBadgeResponse, status_code=status.HTTP_201_CREATED)
def award_badge(
    data: BadgeAward,
    caller: CallerDep,
    db: SessionDep,
    session_factory: SessionFactoryDep,
) -> StudentBadgeResponse:
    """Award a badge to a student; 409 if they already hold it."""
    result = badge_service.award_badge(db, session_factory, caller, data)
    raise_for_outcome(result, already="Badge already awarded")
    award = result.record
    definition = db.get(BadgeDefinition, award.badge_id)
    return StudentBadgeResponse(
        id=award.id,
        badge_id=award.badge_id,
        student_id=award.student_id,
        awarded_by=award.awarded_by,
        reason=award.reason,
        awarded_at=award.awarded_at,
        badge=BadgeDefinitionResponse.model_validate(definition),
    )


@router.get("/users/{user_id}", response_model=list[StudentBadgeResponse])
async def user_badges(user_id: str, caller: CallerDep, db: SessionDep) -> list[StudentBadgeResponse]:
    return [StudentBadgeResponse.model_validate(award) for award in badge_service.user_badges(db, user_id)]
