"""Common test fixtures for the site admin backend."""

import os
import tempfile
from datetime import datetime, timedelta

# Settings are read at import time, so the environment goes first
_TEST_DATA = tempfile.mkdtemp(prefix="siteadmin-tests-")
os.environ.setdefault("APP_PASSWORD", "test-password")
os.environ.setdefault("JWT_SECRET", "test-secret-with-at-least-thirty-two-characters")
os.environ["DATABASE_PATH"] = os.path.join(_TEST_DATA, "site.db")
os.environ["STORAGE_DIR"] = os.path.join(_TEST_DATA, "storage")
os.environ["LOG_FILE"] = os.path.join(_TEST_DATA, "app.log")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import siteadmin.models  # noqa: F401 - registers the models on the metadata
from siteadmin.database import Base
from siteadmin.services.blog import PostRepository


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    """Fresh in-memory database shared by every connection of the test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
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


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo(db, clock) -> PostRepository:
    return PostRepository(db, clock=clock)


def make_post(**overrides) -> dict:
    """Helper: post input with sensible defaults."""
    data = dict(
        title="Hello World",
        body="<p>Solar panels on every roof.</p>",
        status="draft",
        tags=[],
    )
    data.update(overrides)
    return data
