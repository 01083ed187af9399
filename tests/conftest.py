# tests/conftest.py
"""Shared fixtures. Points the app at SQLite before anything imports connector_sync."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("TEST_DEVICE_ID", None)
os.environ.pop("API_KEY", None)

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from connector_sync.database import Base
from connector_sync.models import ChargingPoint, ChargingStation, ReconciliationRun  # noqa


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def add_station(db, station_pk, code, name=None, points=0, deleted=None):
    """Insert a station with `points` live charging points numbered 1..points."""
    db.add(ChargingStation(id=station_pk, name=name or f"Station {code}", station_id=code,
                           created=datetime.utcnow(), deleted=deleted))
    for n in range(1, points + 1):
        db.add(ChargingPoint(id=station_pk * 100 + n, name=name or f"Station {code}",
                             point_id=n, station_id=code, created=datetime.utcnow()))
    db.commit()


def live_points(session_factory, code):
    """Point numbers stored for a station, read through a fresh session."""
    session = session_factory()
    try:
        return sorted(
            p.point_id for p in session.query(ChargingPoint)
            .filter(ChargingPoint.station_id == code, ChargingPoint.deleted.is_(None))
        )
    finally:
        session.close()
