"""Race-safe claims on capacity-bounded or uniquely scoped resources.

A claim runs its read-check-write sequence inside one serializable
transaction opened from a session factory, so concurrent claimers can never
push the admitted count past the declared capacity. The unique constraint on
(resource, requester) backs up idempotence at the storage layer.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from nexus_campus.core.errors import (
    AlreadyClaimedError,
    CapacityFullError,
    InvalidStateError,
    NotFoundError,
    TransientConflictError,
)
from nexus_campus.core.settings import settings
from nexus_campus.db.session import serializable_options

logger = logging.getLogger(__name__)

_SERIALIZATION_FAILURE = "40001"
_DEADLOCK_DETECTED = "40P01"
_UNIQUE_VIOLATION = "23505"


class ClaimOutcome(enum.Enum):
    """Result category of a claim or status transition."""

    CLAIMED = "claimed"
    ALREADY_CLAIMED = "already_claimed"
    FULL = "full"
    INVALID_STATE = "invalid_state"
    TRANSITIONED = "transitioned"

    @property
    def succeeded(self) -> bool:
        return self in (ClaimOutcome.CLAIMED, ClaimOutcome.TRANSITIONED)


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of a claim plus the written record when it succeeded."""

    outcome: ClaimOutcome
    record: Any = None

    @property
    def succeeded(self) -> bool:
        return self.outcome.succeeded


@dataclass(frozen=True)
class ClaimRequest:
    """Admission of ``requester_id`` onto ``resource_id``.

    ``values`` are the column values of the admission record; they must
    include the resource and requester columns. ``capacity`` of None means
    no numeric cap, only uniqueness.
    """

    model: type
    resource_field: str
    requester_field: str
    values: dict[str, Any]
    capacity: int | None = None

    @property
    def resource_id(self) -> Any:
        return self.values[self.resource_field]

    @property
    def requester_id(self) -> Any:
        return self.values[self.requester_field]


@dataclass(frozen=True)
class StatusTransition:
    """Move a claim out of its single eligible status.

    Entering ``bounded_status`` is limited to ``capacity`` claims per
    resource; any other target status is not counted. A ``capacity`` of None
    leaves the bounded status uncapped. ``on_transition`` runs inside the same
    transaction after the status is set, so its writes commit or roll back
    with the transition.
    """

    model: type
    record_id: Any
    resource_field: str
    from_status: str
    to_status: str
    bounded_status: str
    capacity: int | None = None
    status_field: str = "status"
    extra_filters: Sequence[Any] = field(default_factory=tuple)
    on_transition: Callable[[Session, Any], None] | None = None


def is_unique_violation(exc: IntegrityError) -> bool:
    """Return True when the integrity failure came from a unique constraint."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _UNIQUE_VIOLATION:
        return True
    return "unique constraint failed" in str(orig).lower()


def is_transient_failure(exc: DBAPIError) -> bool:
    """Return True for serialization conflicts that are worth retrying."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in (_SERIALIZATION_FAILURE, _DEADLOCK_DETECTED):
        return True
    # SQLite reports lock contention rather than serialization failures.
    return "database is locked" in str(orig).lower()


def run_claim_transaction(
    session_factory: sessionmaker[Session],
    work: Callable[[Session], ClaimResult],
    *,
    retries: int | None = None,
    label: str = "claim",
) -> ClaimResult:
    """Run ``work`` in a fresh serializable transaction.

    The transaction commits only when ``work`` reports success. A unique
    constraint violation is the expected double-submit path and becomes
    ``ALREADY_CLAIMED``; other integrity failures propagate. Serialization conflicts are retried ``retries``
    times, then surface as :class:`TransientConflictError`.
    """
    attempts = 1 + (settings.claim_retries if retries is None else retries)
    for attempt in range(1, attempts + 1):
        session = session_factory()
        try:
            session.connection(execution_options=serializable_options(session.get_bind()))
            result = work(session)
            if result.succeeded:
                session.commit()
            else:
                session.rollback()
            return result
        except IntegrityError as exc:
            session.rollback()
            if not is_unique_violation(exc):
                raise
            logger.info("%s hit a uniqueness violation; treating as already claimed: %s", label, exc.orig)
            return ClaimResult(ClaimOutcome.ALREADY_CLAIMED)
        except DBAPIError as exc:
            session.rollback()
            if not is_transient_failure(exc):
                raise
            logger.warning(
                "%s serialization conflict (attempt %d/%d): %s", label, attempt, attempts, exc.orig
            )
        finally:
            session.close()
    raise TransientConflictError(reason=f"{label}: serialization conflict after {attempts} attempts")


def _count(session: Session, model: type, *criteria: Any) -> int:
    return int(session.scalar(select(func.count()).select_from(model).where(*criteria)) or 0)


def claim_slot(
    session_factory: sessionmaker[Session],
    request: ClaimRequest,
    *,
    retries: int | None = None,
) -> ClaimResult:
    """Admit the requester onto the resource unless it is full or already claimed."""
    model = request.model
    resource_col = getattr(model, request.resource_field)
    requester_col = getattr(model, request.requester_field)

    def _work(session: Session) -> ClaimResult:
        existing = session.scalar(
            select(model).where(resource_col == request.resource_id, requester_col == request.requester_id)
        )
        if existing is not None:
            return ClaimResult(ClaimOutcome.ALREADY_CLAIMED)

        if request.capacity is not None:
            admitted = _count(session, model, resource_col == request.resource_id)
            if admitted >= request.capacity:
                return ClaimResult(ClaimOutcome.FULL)

        record = model(**request.values)
        session.add(record)
        session.flush()
        return ClaimResult(ClaimOutcome.CLAIMED, record)

    return run_claim_transaction(session_factory, _work, retries=retries, label=model.__tablename__)


def transition_claim(
    session_factory: sessionmaker[Session],
    transition: StatusTransition,
    *,
    retries: int | None = None,
) -> ClaimResult:
    """Apply a status change, enforcing the cap on the bounded status.

    Raises:
        NotFoundError: The claim vanished between the precondition read and
            the transaction.
    """
    model = transition.model
    status_col = getattr(model, transition.status_field)
    resource_col = getattr(model, transition.resource_field)

    def _work(session: Session) -> ClaimResult:
        record = session.get(model, transition.record_id)
        if record is None:
            raise NotFoundError("Claim not found")
        if getattr(record, transition.status_field) != transition.from_status:
            return ClaimResult(ClaimOutcome.INVALID_STATE)

        if transition.capacity is not None and transition.to_status == transition.bounded_status:
            admitted = _count(
                session,
                model,
                resource_col == getattr(record, transition.resource_field),
                status_col == transition.bounded_status,
                *transition.extra_filters,
            )
            if admitted >= transition.capacity:
                return ClaimResult(ClaimOutcome.FULL)

        setattr(record, transition.status_field, transition.to_status)
        if transition.on_transition is not None:
            transition.on_transition(session, record)
        session.flush()
        return ClaimResult(ClaimOutcome.TRANSITIONED, record)

    return run_claim_transaction(
        session_factory, _work, retries=retries, label=f"{model.__tablename__} transition"
    )


def outcome_error(
    result: ClaimResult,
    *,
    full: str | None = None,
    already: str | None = None,
    invalid: str | None = None,
) -> Exception | None:
    """Return the typed error for a non-successful outcome, or None on success."""
    if result.outcome is ClaimOutcome.FULL:
        return CapacityFullError(full)
    if result.outcome is ClaimOutcome.ALREADY_CLAIMED:
        return AlreadyClaimedError(already)
    if result.outcome is ClaimOutcome.INVALID_STATE:
        return InvalidStateError(invalid)
    return None
