"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from nexus_campus.core.settings import settings

# Execution option consumed by the SQLite "begin" hook below.
SQLITE_IMMEDIATE_OPTION = "nexus_sqlite_immediate"


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import nexus_campus.models  # noqa: E402,F401


def configure_sqlite(engine: Engine) -> Engine:
    """Give a SQLite engine the transactional behaviour the claim pattern needs.

    pysqlite defers BEGIN until the first write, so a count-then-insert would
    read outside any transaction. Taking over BEGIN lets claim transactions
    start with ``BEGIN IMMEDIATE``, which holds the write lock for the whole
    read-check-write sequence. WAL keeps plain readers from blocking it.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            if engine.url.database not in (None, "", ":memory:"):
                cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        if conn.get_execution_options().get(SQLITE_IMMEDIATE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")

    return engine


def build_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine for ``url`` with dialect-specific tuning applied."""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        return configure_sqlite(create_engine(url, connect_args=connect_args, **kwargs))
    return create_engine(url, pool_pre_ping=True, **kwargs)


def serializable_options(bind: Engine | Connection) -> dict[str, Any]:
    """Return execution options that make a new transaction serializable."""
    if bind.dialect.name == "sqlite":
        return {SQLITE_IMMEDIATE_OPTION: True}
    return {"isolation_level": "SERIALIZABLE"}


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker[Session]:
    """Return the factory used by code that must own its transaction."""
    return SessionLocal


def create_tables(bind: Engine | None = None) -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=bind or engine)
