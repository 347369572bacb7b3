"""Shared test fixtures: in-memory databases, sessions and API clients."""
import os

# Pin the environment before seatime.config builds its settings singleton
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.pop("MYSHIPTRACKING_API_KEY", None)
os.environ.pop("SEATIME_API_KEY", None)

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from seatime.database import get_db
from seatime.main import app
from seatime.models import Base  # noqa: F401 -- registers all models
from seatime.models.position_reading import PositionReading
from seatime.models.scheduled_task import ScheduledTask
from seatime.models.vessel import Vessel
from seatime.models.base import TaskKindEnum

# Fixed reference time for scenario tests (naive UTC)
T0 = datetime(2026, 3, 10, 6, 0)

TEST_API_KEY = "test-key-1234567"


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite engine, one shared connection, all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """sessionmaker bound to the test engine (what the scheduler opens per tick)."""
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def make_vessel(db, mmsi="235000001", name="TEST VESSEL", is_active=True, **kwargs):
    vessel = Vessel(mmsi=mmsi, name=name, is_active=is_active, **kwargs)
    db.add(vessel)
    db.commit()
    return vessel


def make_task(db, vessel, next_run_at=T0, interval_hours=2.0, is_active=True):
    task = ScheduledTask(
        vessel_id=vessel.vessel_id,
        kind=TaskKindEnum.POSITION_CHECK,
        interval_hours=interval_hours,
        next_run_at=next_run_at,
        is_active=is_active,
    )
    db.add(task)
    db.commit()
    return task


def make_reading(db, vessel, observed_at, lat=50.0, lon=-1.0, speed=0.0):
    reading = PositionReading(
        vessel_id=vessel.vessel_id,
        observed_at=observed_at,
        is_moving=speed > 0.5,
        speed_knots=speed,
        latitude=lat,
        longitude=lon,
        source="test",
    )
    db.add(reading)
    db.commit()
    return reading


class MutableClock:
    """Injectable clock for the scheduler; tests move it forward by hand."""

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, hours):
        self.now = self.now + timedelta(hours=hours)


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def mock_db():
    """MagicMock database session - returns None for all queries by default."""
    session = MagicMock()
    session.query.return_value.filter.return_value.first.return_value = None
    session.query.return_value.filter.return_value.all.return_value = []
    session.query.return_value.filter.return_value.order_by.return_value.all.return_value = []
    return session


@pytest.fixture
def api_client(mock_db):
    """TestClient with DB dependency overridden to use a MagicMock session."""
    def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def db_api_client(session_factory):
    """TestClient backed by the in-memory test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
