from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time: pin dev auth and local env before the app loads.
os.environ["ENV"] = "local"
os.environ["AUTH_MODE"] = "dev"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("CRON_SECRET", None)
os.environ.pop("INTERNAL_API_SECRET", None)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from meetcmu.db import get_db  # noqa: E402
from meetcmu.main import app  # noqa: E402
from meetcmu.models import Base  # noqa: E402


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(
        bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
