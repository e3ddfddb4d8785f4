"""Application endpoints outside a single project's scope."""

from typing import Annotated

from fastapi import APIRouter, Query

from nexus_campus.schemas.project import ApplicationResponse, ApplicationStatusUpdate
from nexus_campus.services import project_service

from ..dependencies import CallerDep, SessionDep, SessionFactoryDep, raise_for_outcome

router = APIRouter(prefix="/applications", tags=["applications"])


@router.get("/mine", response_model=list[ApplicationResponse])
async def my_applications(
    caller: CallerDep,
    db: SessionDep,
    application_status: Annotated[str | None, Query(alias="status")] = None,
) -> list[ApplicationResponse]:
    applications = project_service.my_applications(db, caller, application_status)
    return [ApplicationResponse.model_validate(application) for application in applications]


@router.patch("/{application_id}", response_model=ApplicationResponse)
def decide_application(
    application_id: str,
    data: ApplicationStatusUpdate,
    caller: CallerDep,
    db: SessionDep,
    session_factory: SessionFactoryDep,
) -> ApplicationResponse:
    """Accept or reject a pending application.

    Accepting past the project's ``max_students`` fails with 400.
    """
    result = project_service.decide_application(db, session_factory, caller, application_id, data.status)
    raise_for_outcome(
        result,
        full="Project has reached its student limit",
        invalid="Only pending applications can be updated",
    )
    return ApplicationResponse.model_validate(result.record)
