"""Event endpoints: listing, moderation, registration and export."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from nexus_campus.schemas.event import (
    EligibilityResponse,
    EventCreate,
    EventListResponse,
    EventModerate,
    EventResponse,
    EventUpdate,
    RegistrationResponse,
)
from nexus_campus.services import event_service
from nexus_campus.services.event_service import EventFilters, EventView

from ..dependencies import CallerDep, SessionDep, SessionFactoryDep, raise_for_outcome

router = APIRouter(prefix="/events", tags=["events"])


def _to_response(view: EventView) -> EventResponse:
    response = EventResponse.model_validate(view.event)
    response.registration_count = view.registration_count
    response.is_registered = view.is_registered
    return response


@router.get("/", response_model=EventListResponse)
async def list_events(
    caller: CallerDep,
    db: SessionDep,
    q: str | None = None,
    department: str | None = None,
    type: str | None = None,
    mode: str | None = None,
    moderation_status: Annotated[str | None, Query(alias="status")] = None,
    upcoming_only: bool = False,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> EventListResponse:
    """List events visible to the caller."""
    filters = EventFilters(
        q=q,
        department=department,
        type=type,
        mode=mode,
        status=moderation_status,
        upcoming_only=upcoming_only,
        page=page,
        limit=limit,
    )
    views, total = event_service.list_events(db, caller, filters)
    return EventListResponse(
        events=[_to_response(view) for view in views], total=total, page=page, limit=limit
    )


@router.get("/mine", response_model=list[EventResponse])
async def my_events(caller: CallerDep, db: SessionDep) -> list[EventResponse]:
    """Events the caller authored, monitors or registered for."""
    return [_to_response(view) for view in event_service.my_events(db, caller)]


@router.get("/eligibility", response_model=EligibilityResponse)
async def event_eligibility(caller: CallerDep, db: SessionDep) -> EligibilityResponse:
    """Report whether the caller may propose events and which badges are missing."""
    missing = event_service.missing_required_badges(db, caller)
    return EligibilityResponse(can_create=not missing, missing_badges=missing)


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(data: EventCreate, caller: CallerDep, db: SessionDep) -> EventResponse:
    event = event_service.create_event(db, caller, data)
    return _to_response(EventView(event, 0, False))


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: str, caller: CallerDep, db: SessionDep) -> EventResponse:
    event = event_service.load_visible_event(db, caller, event_id)
    return _to_response(event_service.build_views(db, caller, [event])[0])


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str, data: EventUpdate, caller: CallerDep, db: SessionDep
) -> EventResponse:
    event = event_service.update_event(db, caller, event_id, data)
    return _to_response(event_service.build_views(db, caller, [event])[0])


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: str, caller: CallerDep, db: SessionDep) -> Response:
    event_service.delete_event(db, caller, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/moderate", response_model=EventResponse)
async def moderate_event(
    event_id: str, data: EventModerate, caller: CallerDep, db: SessionDep
) -> EventResponse:
    event = event_service.moderate_event(db, caller, event_id, data)
    return _to_response(event_service.build_views(db, caller, [event])[0])


@router.post(
    "/{event_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_for_event(
    event_id: str,
    caller: CallerDep,
    db: SessionDep,
    session_factory: SessionFactoryDep,
) -> RegistrationResponse:
    """Claim a registration slot; 400 when full, 409 when already registered."""
    result = event_service.register_for_event(db, session_factory, caller, event_id)
    raise_for_outcome(result, full="Event is full", already="Already registered")
    return RegistrationResponse.model_validate(result.record)


@router.delete("/{event_id}/register", status_code=status.HTTP_204_NO_CONTENT)
async def unregister_from_event(event_id: str, caller: CallerDep, db: SessionDep) -> Response:
    event_service.unregister_from_event(db, caller, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/export")
async def export_registrations(event_id: str, caller: CallerDep, db: SessionDep) -> Response:
    """Download the event's registrations as CSV."""
    filename, content = event_service.export_registrations_csv(db, caller, event_id)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
