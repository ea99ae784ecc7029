"""Pytest fixtures — file-backed SQLite database per test, inline pointer fan-out."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.database import Base, get_db
from app.main import app
from app.services.pointer_projector import FanoutPolicy, PointerProjector, get_projector

# Import all models so they register with Base.metadata
from app.models.user import User                                   # noqa: F401
from app.models.group import Group, GroupMember                    # noqa: F401
from app.models.event import Event, EventGroup                     # noqa: F401
from app.models.poll import Poll, PollOption, Vote                 # noqa: F401
from app.models.carpool import Car, CarRider, NeedsRide            # noqa: F401
from app.models.attribute import EventAttribute                    # noqa: F401
from app.models.interest import InterestLevel                      # noqa: F401
from app.models.pointer import EventPointer, PointerRepair         # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def projector(session_factory):
    """Projector that writes pointers in the caller's thread, no retry delay."""
    return PointerProjector(
        session_factory,
        FanoutPolicy(mode="inline", retry_attempts=1, retry_delay_ms=0),
    )


@pytest.fixture(scope="function")
def client(session_factory, projector):
    """FastAPI TestClient with the database and projector dependencies overridden."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_projector] = lambda: projector
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create resources via the API, return the JSON response dict
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, name: str = "Test User") -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={"display_name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_group(client: TestClient, creator_id: str, name: str = "Test Group", is_public: bool = False) -> dict:
    """Helper — POST /api/groups and return response JSON."""
    resp = client.post("/api/groups/", json={
        "name": name,
        "created_by": creator_id,
        "is_public": is_public,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def add_test_member(client: TestClient, group_id: str, user_id: str) -> dict:
    resp = client.post(f"/api/groups/{group_id}/members", json={"user_id": user_id, "role": "member"})
    assert resp.status_code == 201, resp.text
    return resp.json()


def in_hours(hours: float) -> str:
    """ISO timestamp ``hours`` from now, second precision."""
    moment = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(hours=hours)
    return moment.isoformat()


def create_test_event(
    client: TestClient,
    creator_id: str,
    group_ids: list[str],
    title: str = "Hangout",
    start: Optional[str] = None,
    end: Optional[str] = None,
    **extra,
) -> dict:
    """Helper — POST /api/events; ``start=None`` creates an unscheduled event."""
    payload = {"title": title, "created_by": creator_id, "group_ids": group_ids, **extra}
    if start is not None:
        payload["time_input"] = {"start_time": start, "end_time": end}
    resp = client.post("/api/events/", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()
