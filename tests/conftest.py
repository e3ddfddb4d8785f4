# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Iterator
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest

_TEST_DB_DIR = tempfile.mkdtemp(prefix="nexus-tests-")

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADVANCEMENT_HMAC_SECRET"] = "test-hmac-secret"
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_TEST_DB_DIR) / 'nexus-test.db'}"
os.environ["REPLAY_BACKEND"] = "memory"

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from nexus_campus.api.v1.dependencies import get_request_verifier  # noqa: E402
from nexus_campus.core.security import (  # noqa: E402
    ROLE_DEPT_ADMIN,
    ROLE_FACULTY,
    ROLE_STUDENT,
    CallerContext,
    create_access_token,
)
from nexus_campus.core.settings import Settings, settings  # noqa: E402
from nexus_campus.db.session import Base, SessionLocal  # noqa: E402
from nexus_campus.db.session import engine as app_engine  # noqa: E402
from nexus_campus.db.time import utcnow  # noqa: E402
from nexus_campus.main import app as fastapi_app  # noqa: E402
from nexus_campus.models import BadgeDefinition, Event, Project, StudentBadge  # noqa: E402
from nexus_campus.services.replay import InMemoryReplayCache  # noqa: E402
from nexus_campus.services.signing import RequestVerifier  # noqa: E402

COLLEGE_ID = "college-1"


@pytest.fixture(scope="session")
def engine() -> Iterator[Engine]:
    Base.metadata.create_all(bind=app_engine)
    try:
        yield app_engine
    finally:
        Base.metadata.drop_all(bind=app_engine)
        app_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    """Factory for code that owns its own transaction, such as claims."""
    try:
        yield SessionLocal
    finally:
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def replay_cache() -> InMemoryReplayCache:
    return InMemoryReplayCache()


@pytest.fixture(autouse=True)
def override_verifier(app: FastAPI, replay_cache: InMemoryReplayCache) -> Iterator[None]:
    """Give every test its own replay cache."""

    def _verifier_override() -> RequestVerifier:
        return RequestVerifier(settings.ads_hmac_secret, replay_cache)

    app.dependency_overrides[get_request_verifier] = _verifier_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_request_verifier, None)


@pytest.fixture()
def client(app: FastAPI, session_factory: sessionmaker[Session]) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return settings


def make_caller(
    subject: str,
    *roles: str,
    college_id: str = COLLEGE_ID,
    department: str | None = None,
    name: str | None = None,
) -> CallerContext:
    return CallerContext(
        subject=subject,
        college_id=college_id,
        roles=frozenset(roles),
        department=department,
        name=name or subject,
    )


def auth_headers(caller: CallerContext) -> dict[str, str]:
    token = create_access_token(
        caller.subject,
        roles=sorted(caller.roles),
        college_id=caller.college_id,
        department=caller.department,
        name=caller.name,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def student() -> CallerContext:
    return make_caller("student-1", ROLE_STUDENT, department="CS", name="Stu Dent")


@pytest.fixture()
def other_student() -> CallerContext:
    return make_caller("student-2", ROLE_STUDENT, department="CS", name="Other Student")


@pytest.fixture()
def faculty() -> CallerContext:
    return make_caller("faculty-1", ROLE_FACULTY, department="CS", name="Prof Essor")


@pytest.fixture()
def admin() -> CallerContext:
    return make_caller("admin-1", ROLE_DEPT_ADMIN, name="Dept Admin")


@pytest.fixture()
def headers_for() -> Callable[[CallerContext], dict[str, str]]:
    """Return a helper that builds bearer headers for a caller."""
    return auth_headers


@pytest.fixture()
def make_event(db_session: Session) -> Callable[..., Event]:
    """Return a factory persisting events with sensible defaults."""

    def _make(**overrides: Any) -> Event:
        start = utcnow() + timedelta(days=7)
        values: dict[str, Any] = {
            "college_id": COLLEGE_ID,
            "author_id": "faculty-1",
            "author_name": "Prof Essor",
            "author_role": ROLE_FACULTY,
            "title": "Intro to Rust",
            "description": "Hands-on workshop",
            "start_at": start,
            "end_at": start + timedelta(hours=2),
            "type": "WORKSHOP",
            "mode": "ONSITE",
            "location": "Lab 1",
            "capacity": None,
            "visible_to_all_depts": True,
            "departments": [],
            "tags": [],
            "moderation_status": "APPROVED",
        }
        values.update(overrides)
        event = Event(**values)
        db_session.add(event)
        db_session.commit()
        return event

    return _make


@pytest.fixture()
def make_project(db_session: Session) -> Callable[..., Project]:
    """Return a factory persisting projects owned by ``faculty-1``."""

    def _make(**overrides: Any) -> Project:
        values: dict[str, Any] = {
            "college_id": COLLEGE_ID,
            "author_id": "faculty-1",
            "author_name": "Prof Essor",
            "title": "Campus sensor network",
            "description": "Build a LoRa mesh",
            "visible_to_all_depts": True,
            "departments": [],
            "project_type": "RESEARCH",
            "max_students": 2,
            "moderation_status": "APPROVED",
        }
        values.update(overrides)
        project = Project(**values)
        db_session.add(project)
        db_session.commit()
        return project

    return _make


@pytest.fixture()
def grant_badges(db_session: Session) -> Callable[[str, list[str]], None]:
    """Return a helper that awards the named badges to a student."""

    def _grant(student_id: str, names: list[str]) -> None:
        for name in names:
            definition = BadgeDefinition(name=name, created_by="faculty-1")
            db_session.add(definition)
            db_session.flush()
            db_session.add(StudentBadge(badge_id=definition.id, student_id=student_id, awarded_by="faculty-1"))
        db_session.commit()

    return _grant
