"""Business logic for events: moderation, visibility and registration claims."""
from __future__ import annotations

import csv
import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from nexus_campus.core.errors import BadRequestError, ForbiddenError, InvalidStateError, NotFoundError
from nexus_campus.core.security import ROLE_DEPT_ADMIN, ROLE_FACULTY, ROLE_HEAD_ADMIN, CallerContext
from nexus_campus.core.settings import settings
from nexus_campus.db.time import as_utc, utcnow
from nexus_campus.models import BadgeDefinition, Event, EventRegistration, StudentBadge
from nexus_campus.models.event import MODERATION_APPROVED, MODERATION_PENDING, MODERATION_REJECTED
from nexus_campus.schemas.event import EventCreate, EventModerate, EventUpdate
from nexus_campus.services.authorization import Action, require
from nexus_campus.services.claims import ClaimRequest, ClaimResult, claim_slot

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ("user_id", "joined_at")


@dataclass(frozen=True)
class EventView:
    """An event together with the caller-specific registration details."""

    event: Event
    registration_count: int
    is_registered: bool


@dataclass(frozen=True)
class EventFilters:
    q: str | None = None
    department: str | None = None
    type: str | None = None
    mode: str | None = None
    status: str | None = None
    upcoming_only: bool = False
    page: int = 1
    limit: int = 20


def missing_required_badges(db: Session, caller: CallerContext) -> list[str]:
    """Return the required badge names the caller does not hold yet.

    Only students are gated; everyone else may always propose events.
    """
    if not caller.is_student:
        return []
    held = {
        name.strip().lower()
        for name in db.scalars(
            select(BadgeDefinition.name)
            .join(StudentBadge, StudentBadge.badge_id == BadgeDefinition.id)
            .where(StudentBadge.student_id == caller.subject)
        )
    }
    return [name for name in settings.required_event_badges if name not in held]


def _registration_counts(db: Session, event_ids: Sequence[str]) -> dict[str, int]:
    if not event_ids:
        return {}
    rows = db.execute(
        select(EventRegistration.event_id, func.count())
        .where(EventRegistration.event_id.in_(event_ids))
        .group_by(EventRegistration.event_id)
    )
    return {event_id: int(count) for event_id, count in rows}


def _registered_ids(db: Session, user_id: str, event_ids: Sequence[str]) -> set[str]:
    if not event_ids:
        return set()
    return set(
        db.scalars(
            select(EventRegistration.event_id).where(
                EventRegistration.user_id == user_id,
                EventRegistration.event_id.in_(event_ids),
            )
        )
    )


def build_views(db: Session, caller: CallerContext, events: Sequence[Event]) -> list[EventView]:
    """Attach registration counts and the caller's registration flag."""
    ids = [event.id for event in events]
    counts = _registration_counts(db, ids)
    mine = _registered_ids(db, caller.subject, ids)
    return [EventView(event, counts.get(event.id, 0), event.id in mine) for event in events]


def load_event(db: Session, caller: CallerContext, event_id: str) -> Event:
    """Return the event if it exists in the caller's college."""
    event = db.scalar(select(Event).where(Event.id == event_id, Event.college_id == caller.college_id))
    if event is None:
        raise NotFoundError()
    return event


def load_visible_event(db: Session, caller: CallerContext, event_id: str) -> Event:
    """Like :func:`load_event`, hiding unapproved or other-department events from students."""
    event = load_event(db, caller, event_id)
    if caller.is_student and not (
        event.moderation_status == MODERATION_APPROVED and event.is_visible_to(caller.department)
    ):
        raise NotFoundError()
    return event


def list_events(db: Session, caller: CallerContext, filters: EventFilters) -> tuple[list[EventView], int]:
    """Return one page of events visible to the caller and the total match count."""
    stmt = select(Event).where(Event.college_id == caller.college_id)
    if caller.is_student:
        stmt = stmt.where(Event.moderation_status == MODERATION_APPROVED)
    elif filters.status:
        stmt = stmt.where(Event.moderation_status == filters.status)
    if filters.q:
        pattern = f"%{filters.q.lower()}%"
        stmt = stmt.where(
            or_(func.lower(Event.title).like(pattern), func.lower(Event.description).like(pattern))
        )
    if filters.type:
        stmt = stmt.where(Event.type == filters.type)
    if filters.mode:
        stmt = stmt.where(Event.mode == filters.mode)
    if filters.upcoming_only:
        stmt = stmt.where(Event.start_at >= utcnow())

    # Department lists are JSON, so visibility is applied in Python.
    events = list(db.scalars(stmt.order_by(Event.start_at.asc())))
    if caller.is_student:
        events = [event for event in events if event.is_visible_to(caller.department)]
    if filters.department:
        events = [event for event in events if event.is_visible_to(filters.department)]

    total = len(events)
    start = (filters.page - 1) * filters.limit
    page = events[start:start + filters.limit]
    return build_views(db, caller, page), total


def my_events(db: Session, caller: CallerContext) -> list[EventView]:
    """Events the caller is involved in, by role."""
    stmt = select(Event).where(Event.college_id == caller.college_id)
    if caller.is_student:
        registered = select(EventRegistration.event_id).where(EventRegistration.user_id == caller.subject)
        stmt = stmt.where(or_(Event.author_id == caller.subject, Event.id.in_(registered)))
    elif caller.has_role(ROLE_FACULTY) and not caller.has_role(ROLE_DEPT_ADMIN, ROLE_HEAD_ADMIN):
        stmt = stmt.where(or_(Event.author_id == caller.subject, Event.monitor_id == caller.subject))
    events = list(db.scalars(stmt.order_by(Event.start_at.desc())))
    return build_views(db, caller, events)


def _validate_schedule(event: Event) -> None:
    if as_utc(event.end_at) <= as_utc(event.start_at):
        raise BadRequestError("end_at must be after start_at")
    if event.mode != "ONSITE" and not event.meeting_url:
        raise BadRequestError("meeting_url is required for ONLINE/HYBRID")
    if event.mode != "ONLINE" and not event.location:
        raise BadRequestError("location is required for ONSITE/HYBRID")


def create_event(db: Session, caller: CallerContext, data: EventCreate) -> Event:
    """Create an event; student proposals need every required badge and start pending."""
    require(caller, "event", Action.CREATE)
    if caller.is_student:
        missing = missing_required_badges(db, caller)
        if missing:
            raise ForbiddenError("Missing required badges: " + ", ".join(missing), reason="badges")

    event = Event(
        college_id=caller.college_id,
        author_id=caller.subject,
        author_name=caller.name or "",
        author_role=caller.primary_role,
        title=data.title,
        description=data.description,
        start_at=as_utc(data.start_at),
        end_at=as_utc(data.end_at),
        type=data.type,
        mode=data.mode,
        location=data.location,
        meeting_url=data.meeting_url,
        capacity=data.capacity,
        visible_to_all_depts=data.visible_to_all_depts,
        departments=[] if data.visible_to_all_depts else list(data.departments),
        tags=list(data.tags),
        moderation_status=MODERATION_PENDING if caller.is_student else MODERATION_APPROVED,
    )
    _validate_schedule(event)
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event %s created by %s (%s)", event.id, caller.subject, event.moderation_status)
    return event


def update_event(db: Session, caller: CallerContext, event_id: str, data: EventUpdate) -> Event:
    event = load_event(db, caller, event_id)
    require(caller, "event", Action.UPDATE, event)

    changes = data.model_dump(exclude_unset=True)
    for key in ("start_at", "end_at"):
        if changes.get(key) is not None:
            changes[key] = as_utc(changes[key])
    if "departments" in changes:
        visible_all = changes.get("visible_to_all_depts", event.visible_to_all_depts)
        changes["departments"] = [] if visible_all else list(changes["departments"] or [])
    for key, value in changes.items():
        setattr(event, key, value)

    _validate_schedule(event)
    db.commit()
    db.refresh(event)
    return event


def delete_event(db: Session, caller: CallerContext, event_id: str) -> None:
    event = load_event(db, caller, event_id)
    require(caller, "event", Action.DELETE, event)
    db.delete(event)
    db.commit()
    logger.info("Event %s deleted by %s", event_id, caller.subject)


def moderate_event(db: Session, caller: CallerContext, event_id: str, data: EventModerate) -> Event:
    require(caller, "event", Action.MODERATE)
    event = load_event(db, caller, event_id)
    if data.action == "APPROVE":
        event.moderation_status = MODERATION_APPROVED
    elif data.action == "REJECT":
        event.moderation_status = MODERATION_REJECTED
    else:
        if not data.monitor_id:
            raise BadRequestError("monitor_id is required for ASSIGN")
        event.monitor_id = data.monitor_id
        event.monitor_name = data.monitor_name
    db.commit()
    db.refresh(event)
    return event


def register_for_event(
    db: Session,
    session_factory: sessionmaker[Session],
    caller: CallerContext,
    event_id: str,
) -> ClaimResult:
    """Claim a registration slot on an approved event.

    Preconditions are read through ``db``; the claim itself runs in its own
    serializable transaction from ``session_factory``.
    """
    event = load_event(db, caller, event_id)
    if caller.is_student and not event.is_visible_to(caller.department):
        raise NotFoundError(reason="not-visible")
    if event.moderation_status != MODERATION_APPROVED:
        raise InvalidStateError("Event not open for registration", reason="not-open")

    request = ClaimRequest(
        model=EventRegistration,
        resource_field="event_id",
        requester_field="user_id",
        values={"event_id": event.id, "user_id": caller.subject},
        capacity=event.capacity,
    )
    result = claim_slot(session_factory, request)
    logger.info("Registration of %s on event %s: %s", caller.subject, event.id, result.outcome.value)
    return result


def unregister_from_event(db: Session, caller: CallerContext, event_id: str) -> None:
    event = load_event(db, caller, event_id)
    registration = db.scalar(
        select(EventRegistration).where(
            EventRegistration.event_id == event.id, EventRegistration.user_id == caller.subject
        )
    )
    if registration is not None:
        db.delete(registration)
        db.commit()


def export_registrations_csv(db: Session, caller: CallerContext, event_id: str) -> tuple[str, str]:
    """Return ``(filename, csv_text)`` listing the event's registrations."""
    event = load_event(db, caller, event_id)
    require(caller, "event", Action.EXPORT, event)
    registrations = db.scalars(
        select(EventRegistration)
        .where(EventRegistration.event_id == event.id)
        .order_by(EventRegistration.joined_at.asc())
    )
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for registration in registrations:
        writer.writerow([registration.user_id, as_utc(registration.joined_at).isoformat()])

    safe_title = "".join(ch if ch.isalnum() or ch == "-" else "_" for ch in event.title)[:50] or "event"
    return f"{safe_title}_registrations.csv", "\ufeff" + buffer.getvalue()
