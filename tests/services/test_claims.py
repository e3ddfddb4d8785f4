"""Tests for race-safe capacity claims."""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.orm import Session, sessionmaker

from nexus_campus.core.errors import AlreadyClaimedError, CapacityFullError, TransientConflictError
from nexus_campus.models import Event, EventRegistration, Project, ProjectApplication
from nexus_campus.services.claims import (
    ClaimOutcome,
    ClaimRequest,
    ClaimResult,
    StatusTransition,
    claim_slot,
    is_transient_failure,
    is_unique_violation,
    outcome_error,
    run_claim_transaction,
    transition_claim,
)

CLAIMERS = 8


class FakeDriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def _registration(event_id: str, user_id: str, capacity: int | None) -> ClaimRequest:
    return ClaimRequest(
        model=EventRegistration,
        resource_field="event_id",
        requester_field="user_id",
        values={"event_id": event_id, "user_id": user_id},
        capacity=capacity,
    )


def _count_registrations(session_factory: sessionmaker[Session], event_id: str) -> int:
    with session_factory() as session:
        return session.scalar(
            select(func.count()).select_from(EventRegistration).where(EventRegistration.event_id == event_id)
        )


@pytest.mark.parametrize("capacity", [0, 1, 3])
def test_concurrent_claims_never_exceed_capacity(
    session_factory: sessionmaker[Session],
    make_event: Callable[..., Event],
    capacity: int,
) -> None:
    event = make_event(capacity=capacity)

    def claim(i: int) -> ClaimResult:
        return claim_slot(session_factory, _registration(event.id, f"user-{i}", capacity), retries=3)

    with ThreadPoolExecutor(max_workers=CLAIMERS) as pool:
        results = list(pool.map(claim, range(CLAIMERS)))

    outcomes = [result.outcome for result in results]
    assert outcomes.count(ClaimOutcome.CLAIMED) == capacity
    assert outcomes.count(ClaimOutcome.FULL) == CLAIMERS - capacity
    assert _count_registrations(session_factory, event.id) == capacity


def test_uncapped_claims_all_succeed(
    session_factory: sessionmaker[Session], make_event: Callable[..., Event]
) -> None:
    event = make_event()
    for i in range(5):
        assert claim_slot(session_factory, _registration(event.id, f"user-{i}", None)).succeeded
    assert _count_registrations(session_factory, event.id) == 5


def test_concurrent_duplicate_claims_admit_once(
    session_factory: sessionmaker[Session], make_event: Callable[..., Event]
) -> None:
    event = make_event(capacity=10)

    def claim(_: int) -> ClaimResult:
        return claim_slot(session_factory, _registration(event.id, "same-user", 10), retries=3)

    with ThreadPoolExecutor(max_workers=CLAIMERS) as pool:
        results = list(pool.map(claim, range(CLAIMERS)))

    outcomes = [result.outcome for result in results]
    assert outcomes.count(ClaimOutcome.CLAIMED) == 1
    assert outcomes.count(ClaimOutcome.ALREADY_CLAIMED) == CLAIMERS - 1
    assert _count_registrations(session_factory, event.id) == 1


def test_existing_claim_reported_before_capacity(
    session_factory: sessionmaker[Session], make_event: Callable[..., Event]
) -> None:
    event = make_event(capacity=1)
    first = claim_slot(session_factory, _registration(event.id, "user-1", 1))
    again = claim_slot(session_factory, _registration(event.id, "user-1", 1))
    other = claim_slot(session_factory, _registration(event.id, "user-2", 1))

    assert first.outcome is ClaimOutcome.CLAIMED
    assert first.record.user_id == "user-1"
    assert again.outcome is ClaimOutcome.ALREADY_CLAIMED
    assert again.record is None
    assert other.outcome is ClaimOutcome.FULL


def _pending_applications(db_session: Session, project: Project, count: int) -> list[str]:
    applications = [
        ProjectApplication(project_id=project.id, student_id=f"student-{i}", student_name=f"S{i}")
        for i in range(count)
    ]
    db_session.add_all(applications)
    db_session.commit()
    return [application.id for application in applications]


def _accept(project: Project, application_id: str, to_status: str = "ACCEPTED") -> StatusTransition:
    return StatusTransition(
        model=ProjectApplication,
        record_id=application_id,
        resource_field="project_id",
        from_status="PENDING",
        to_status=to_status,
        bounded_status="ACCEPTED",
        capacity=project.max_students,
    )


def test_concurrent_acceptance_respects_max_students(
    session_factory: sessionmaker[Session],
    db_session: Session,
    make_project: Callable[..., Project],
) -> None:
    project = make_project(max_students=2)
    ids = _pending_applications(db_session, project, 3)

    with ThreadPoolExecutor(max_workers=3) as pool:
        results = list(
            pool.map(lambda app_id: transition_claim(session_factory, _accept(project, app_id), retries=3), ids)
        )

    outcomes = [result.outcome for result in results]
    assert outcomes.count(ClaimOutcome.TRANSITIONED) == 2
    assert outcomes.count(ClaimOutcome.FULL) == 1

    with session_factory() as session:
        statuses = sorted(session.scalars(select(ProjectApplication.status)))
    assert statuses == ["ACCEPTED", "ACCEPTED", "PENDING"]


def test_rejection_is_not_counted_against_cap(
    session_factory: sessionmaker[Session],
    db_session: Session,
    make_project: Callable[..., Project],
) -> None:
    project = make_project(max_students=2)
    first, second, third = _pending_applications(db_session, project, 3)

    assert transition_claim(session_factory, _accept(project, first, "REJECTED")).succeeded
    assert transition_claim(session_factory, _accept(project, second)).succeeded
    assert transition_claim(session_factory, _accept(project, third)).succeeded


def test_transition_requires_eligible_status(
    session_factory: sessionmaker[Session],
    db_session: Session,
    make_project: Callable[..., Project],
) -> None:
    project = make_project(max_students=2)
    (application_id,) = _pending_applications(db_session, project, 1)

    assert transition_claim(session_factory, _accept(project, application_id)).succeeded
    again = transition_claim(session_factory, _accept(project, application_id, "REJECTED"))
    assert again.outcome is ClaimOutcome.INVALID_STATE


def test_serialization_failure_is_retried(session_factory: sessionmaker[Session]) -> None:
    calls = []

    def work(session: Session) -> ClaimResult:
        calls.append(session)
        if len(calls) == 1:
            raise OperationalError("INSERT", {}, FakeDriverError("could not serialize", "40001"))
        return ClaimResult(ClaimOutcome.CLAIMED)

    result = run_claim_transaction(session_factory, work, retries=1)
    assert result.outcome is ClaimOutcome.CLAIMED
    assert len(calls) == 2


def test_exhausted_retries_raise_transient_conflict(session_factory: sessionmaker[Session]) -> None:
    def work(session: Session) -> ClaimResult:
        raise OperationalError("INSERT", {}, FakeDriverError("deadlock detected", "40P01"))

    with pytest.raises(TransientConflictError) as exc_info:
        run_claim_transaction(session_factory, work, retries=2)
    assert exc_info.value.status_code == 409


def test_other_database_errors_propagate(session_factory: sessionmaker[Session]) -> None:
    def work(session: Session) -> ClaimResult:
        raise ProgrammingError("SELECT", {}, FakeDriverError("syntax error", "42601"))

    with pytest.raises(ProgrammingError):
        run_claim_transaction(session_factory, work, retries=3)


def test_is_transient_failure_recognizes_sqlite_busy() -> None:
    assert is_transient_failure(OperationalError("BEGIN", {}, FakeDriverError("database is locked")))
    assert not is_transient_failure(OperationalError("BEGIN", {}, FakeDriverError("disk I/O error")))


def test_outcome_error_mapping() -> None:
    assert isinstance(outcome_error(ClaimResult(ClaimOutcome.FULL)), CapacityFullError)
    assert isinstance(outcome_error(ClaimResult(ClaimOutcome.ALREADY_CLAIMED)), AlreadyClaimedError)
    assert outcome_error(ClaimResult(ClaimOutcome.CLAIMED)) is None
    full = outcome_error(ClaimResult(ClaimOutcome.FULL), full="Event is full")
    assert full.status_code == 400
    assert str(full) == "Event is full"


def test_foreign_key_violation_is_not_reported_as_duplicate(
    session_factory: sessionmaker[Session],
) -> None:
    with pytest.raises(IntegrityError):
        claim_slot(session_factory, _registration("no-such-event", "user-1", None))
    assert _count_registrations(session_factory, "no-such-event") == 0


def test_is_unique_violation_matches_only_unique_constraints() -> None:
    assert is_unique_violation(IntegrityError("INSERT", {}, FakeDriverError("duplicate key", "23505")))
    assert is_unique_violation(
        IntegrityError("INSERT", {}, FakeDriverError("UNIQUE constraint failed: event_registration.user_id"))
    )
    assert not is_unique_violation(IntegrityError("INSERT", {}, FakeDriverError("fk", "23503")))
    assert not is_unique_violation(
        IntegrityError("INSERT", {}, FakeDriverError("FOREIGN KEY constraint failed"))
    )


def test_transition_hook_failure_rolls_back_status(
    session_factory: sessionmaker[Session],
    db_session: Session,
    make_project: Callable[..., Project],
) -> None:
    project = make_project(max_students=2)
    (application_id,) = _pending_applications(db_session, project, 1)

    def explode(session: Session, record: ProjectApplication) -> None:
        raise RuntimeError("side effect failed")

    transition = StatusTransition(
        model=ProjectApplication,
        record_id=application_id,
        resource_field="project_id",
        from_status="PENDING",
        to_status="ACCEPTED",
        bounded_status="ACCEPTED",
        on_transition=explode,
    )
    with pytest.raises(RuntimeError):
        transition_claim(session_factory, transition)

    with session_factory() as session:
        assert session.get(ProjectApplication, application_id).status == "PENDING"
