# connector_sync/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy against the OCPP MySQL database. All models are auto-imported
here so create_tables() creates every table in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from connector_sync.config import settings


def _engine_options(url: str) -> dict:
    options = {
        "pool_pre_ping": True,   # Auto-reconnect if DB connection drops
        "echo": False,           # Set True to log all SQL queries (debug only)
    }
    # SQLite (local runs, tests) uses its own single-connection pools
    if not url.startswith("sqlite"):
        options.update(pool_size=5, max_overflow=0, pool_recycle=3600)
    return options


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """
    Creates all DB tables. Safe to call multiple times.
    The station/point tables normally already exist (owned by the OCPP
    backend); create_all skips them in that case.
    """
    from connector_sync.models.charging_station import ChargingStation       # noqa
    from connector_sync.models.charging_point import ChargingPoint           # noqa
    from connector_sync.models.reconciliation_run import ReconciliationRun   # noqa

    Base.metadata.create_all(bind=engine)
