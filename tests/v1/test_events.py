"""Tests for event endpoints."""

from collections.abc import Callable
from datetime import timedelta
from typing import Any

from fastapi import status
from fastapi.testclient import TestClient

from nexus_campus.core.security import ROLE_STUDENT, CallerContext
from nexus_campus.core.settings import settings
from nexus_campus.db.time import utcnow
from nexus_campus.models import Event
from tests.conftest import make_caller

HeadersFor = Callable[[CallerContext], dict[str, str]]


def _event_payload(**overrides: Any) -> dict[str, Any]:
    start = utcnow() + timedelta(days=3)
    payload: dict[str, Any] = {
        "title": "Hack Night",
        "description": "Build something",
        "start_at": start.isoformat(),
        "end_at": (start + timedelta(hours=3)).isoformat(),
        "type": "HACKATHON",
        "mode": "ONSITE",
        "location": "Main hall",
    }
    payload.update(overrides)
    return payload


def test_faculty_creates_approved_event(
    client: TestClient, faculty: CallerContext, headers_for: HeadersFor
) -> None:
    r = client.post("/api/v1/events/", json=_event_payload(capacity=10), headers=headers_for(faculty))
    assert r.status_code == status.HTTP_201_CREATED
    data = r.json()
    assert data["moderation_status"] == "APPROVED"
    assert data["author_role"] == "FACULTY"
    assert data["capacity"] == 10
    assert data["registration_count"] == 0


def test_event_validation_errors(
    client: TestClient, faculty: CallerContext, headers_for: HeadersFor
) -> None:
    start = utcnow() + timedelta(days=1)
    r = client.post(
        "/api/v1/events/",
        json=_event_payload(start_at=start.isoformat(), end_at=(start - timedelta(hours=1)).isoformat()),
        headers=headers_for(faculty),
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json()["detail"] == "end_at must be after start_at"

    r = client.post("/api/v1/events/", json=_event_payload(mode="ONLINE"), headers=headers_for(faculty))
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert "meeting_url" in r.json()["detail"]


def test_student_needs_required_badges(
    client: TestClient,
    student: CallerContext,
    headers_for: HeadersFor,
    grant_badges: Callable[[str, list[str]], None],
) -> None:
    r = client.get("/api/v1/events/eligibility", headers=headers_for(student))
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["can_create"] is False
    assert len(r.json()["missing_badges"]) == len(settings.required_event_badges)

    r = client.post("/api/v1/events/", json=_event_payload(), headers=headers_for(student))
    assert r.status_code == status.HTTP_403_FORBIDDEN
    assert r.json()["detail"].startswith("Missing required badges")

    grant_badges(student.subject, [name.title() for name in settings.required_event_badges])
    r = client.get("/api/v1/events/eligibility", headers=headers_for(student))
    assert r.json() == {"can_create": True, "missing_badges": []}

    r = client.post("/api/v1/events/", json=_event_payload(), headers=headers_for(student))
    assert r.status_code == status.HTTP_201_CREATED
    assert r.json()["moderation_status"] == "PENDING_REVIEW"


def test_registration_scenario_with_capacity_one(
    client: TestClient,
    student: CallerContext,
    other_student: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    event = make_event(capacity=1)
    url = f"/api/v1/events/{event.id}/register"

    r = client.post(url, headers=headers_for(student))
    assert r.status_code == status.HTTP_201_CREATED
    assert r.json()["user_id"] == student.subject

    r = client.post(url, headers=headers_for(student))
    assert r.status_code == status.HTTP_409_CONFLICT
    assert r.json() == {"category": "already_claimed", "detail": "Already registered"}

    r = client.post(url, headers=headers_for(other_student))
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"category": "full", "detail": "Event is full"}

    r = client.get(f"/api/v1/events/{event.id}", headers=headers_for(student))
    assert r.json()["registration_count"] == 1
    assert r.json()["is_registered"] is True


def test_registration_requires_approved_event(
    client: TestClient,
    faculty: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    event = make_event(moderation_status="PENDING_REVIEW")
    r = client.post(f"/api/v1/events/{event.id}/register", headers=headers_for(faculty))
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json()["category"] == "invalid_state"


def test_department_restricted_event_is_hidden(
    client: TestClient,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    event = make_event(visible_to_all_depts=False, departments=["EE"])
    outsider = make_caller("student-9", ROLE_STUDENT, department="CS")

    r = client.get(f"/api/v1/events/{event.id}", headers=headers_for(outsider))
    assert r.status_code == status.HTTP_404_NOT_FOUND
    r = client.post(f"/api/v1/events/{event.id}/register", headers=headers_for(outsider))
    assert r.status_code == status.HTTP_404_NOT_FOUND

    insider = make_caller("student-10", ROLE_STUDENT, department="EE")
    r = client.post(f"/api/v1/events/{event.id}/register", headers=headers_for(insider))
    assert r.status_code == status.HTTP_201_CREATED


def test_other_college_event_is_not_found(
    client: TestClient, headers_for: HeadersFor, make_event: Callable[..., Event]
) -> None:
    event = make_event(college_id="college-2")
    stranger = make_caller("student-1", ROLE_STUDENT, department="CS")
    r = client.post(f"/api/v1/events/{event.id}/register", headers=headers_for(stranger))
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_student_list_shows_only_approved_visible_events(
    client: TestClient,
    student: CallerContext,
    faculty: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    make_event(title="Open")
    make_event(title="Pending", moderation_status="PENDING_REVIEW")
    make_event(title="EE only", visible_to_all_depts=False, departments=["EE"])

    r = client.get("/api/v1/events/", headers=headers_for(student))
    assert r.status_code == status.HTTP_200_OK
    assert [item["title"] for item in r.json()["events"]] == ["Open"]
    assert r.json()["total"] == 1

    r = client.get("/api/v1/events/", headers=headers_for(faculty))
    assert r.json()["total"] == 3

    r = client.get("/api/v1/events/", params={"status": "PENDING_REVIEW"}, headers=headers_for(faculty))
    assert [item["title"] for item in r.json()["events"]] == ["Pending"]


def test_admin_moderates_pending_event(
    client: TestClient,
    admin: CallerContext,
    faculty: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    event = make_event(moderation_status="PENDING_REVIEW")
    url = f"/api/v1/events/{event.id}/moderate"

    r = client.post(url, json={"action": "APPROVE"}, headers=headers_for(faculty))
    assert r.status_code == status.HTTP_403_FORBIDDEN

    r = client.post(url, json={"action": "APPROVE"}, headers=headers_for(admin))
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["moderation_status"] == "APPROVED"

    r = client.post(
        url,
        json={"action": "ASSIGN", "monitor_id": "faculty-1", "monitor_name": "Prof Essor"},
        headers=headers_for(admin),
    )
    assert r.json()["monitor_id"] == "faculty-1"


def test_student_owner_edits_only_while_pending(
    client: TestClient,
    student: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    pending = make_event(author_id=student.subject, author_role=ROLE_STUDENT, moderation_status="PENDING_REVIEW")
    r = client.patch(f"/api/v1/events/{pending.id}", json={"title": "Renamed"}, headers=headers_for(student))
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["title"] == "Renamed"

    approved = make_event(author_id=student.subject, author_role=ROLE_STUDENT)
    r = client.delete(f"/api/v1/events/{approved.id}", headers=headers_for(student))
    assert r.status_code == status.HTTP_403_FORBIDDEN


def test_unregister_frees_the_slot(
    client: TestClient,
    student: CallerContext,
    other_student: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    event = make_event(capacity=1)
    url = f"/api/v1/events/{event.id}/register"
    assert client.post(url, headers=headers_for(student)).status_code == status.HTTP_201_CREATED

    r = client.delete(url, headers=headers_for(student))
    assert r.status_code == status.HTTP_204_NO_CONTENT
    assert client.post(url, headers=headers_for(other_student)).status_code == status.HTTP_201_CREATED


def test_export_registrations_csv(
    client: TestClient,
    student: CallerContext,
    faculty: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    event = make_event(title="Intro to Rust")
    client.post(f"/api/v1/events/{event.id}/register", headers=headers_for(student))

    r = client.get(f"/api/v1/events/{event.id}/export", headers=headers_for(student))
    assert r.status_code == status.HTTP_403_FORBIDDEN

    r = client.get(f"/api/v1/events/{event.id}/export", headers=headers_for(faculty))
    assert r.status_code == status.HTTP_200_OK
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="Intro_to_Rust_registrations.csv"' in r.headers["content-disposition"]
    lines = r.content.decode("utf-8").lstrip("\ufeff").splitlines()
    assert lines[0] == "user_id,joined_at"
    assert lines[1].startswith(f"{student.subject},")


def test_my_events_for_student(
    client: TestClient,
    student: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    joined = make_event(title="Joined")
    make_event(title="Not joined")
    client.post(f"/api/v1/events/{joined.id}/register", headers=headers_for(student))

    r = client.get("/api/v1/events/mine", headers=headers_for(student))
    assert [item["title"] for item in r.json()] == ["Joined"]


def test_missing_token_is_rejected(client: TestClient) -> None:
    r = client.get("/api/v1/events/")
    assert r.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_update_rejects_null_for_required_fields(
    client: TestClient,
    faculty: CallerContext,
    headers_for: HeadersFor,
    make_event: Callable[..., Event],
) -> None:
    event = make_event(mode="ONLINE", meeting_url="https://meet.example/rust", capacity=30)
    url = f"/api/v1/events/{event.id}"
    for field in ("start_at", "title", "tags", "visible_to_all_depts"):
        r = client.patch(url, json={field: None}, headers=headers_for(faculty))
        assert r.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY, field

    r = client.patch(url, json={"location": None, "capacity": None}, headers=headers_for(faculty))
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["location"] is None
    assert r.json()["capacity"] is None
    assert r.json()["title"] == "Intro to Rust"
