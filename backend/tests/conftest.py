import os
import tempfile
from pathlib import Path

# Settings and the module-level engine are built at import time: point them at SQLite first.
os.environ.setdefault("DATABASE_URL", f"sqlite:///{Path(tempfile.gettempdir()) / 'kindling-tests.db'}")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("PAYMENT_MODE", "processor")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "whsec-test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from kindling.db.base import Base
from kindling.db.session import get_db
from kindling.main import app
from kindling.models import AdSlot, Site


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'kindling.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )

    @event.listens_for(eng, "connect")
    def _foreign_keys_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def site(db):
    row = Site(owner_id="owner-1", name="Example Blog", url="https://blog.example.com")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def make_slot(db, site):
    def _make(**overrides) -> AdSlot:
        values = {
            "site_id": site.id,
            "position": "BANNER",
            "price_usd_cents_per_day_full_share": 1000,
            "max_sponsors": 1,
            "allow_custom_share": False,
            "active": True,
            "capacity_version": 0,
        }
        values.update(overrides)
        slot = AdSlot(**values)
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return _make
