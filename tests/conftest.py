# tests/conftest.py
"""Shared fixtures: in-memory SQLite, pinned clock, scripted random source."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before parking_core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from parking_core.database import create_tables
from parking_core.schemas.actor import Actor
from parking_core.services.gate_service import GateService

START = datetime(2026, 3, 10, 9, 0, 0)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


class ScriptedRandom:
    """randint() returns the scripted values in order, then repeats the last one."""

    def __init__(self, *values):
        self.values = list(values) or [0]

    def randint(self, low, high):
        value = self.values.pop(0) if len(self.values) > 1 else self.values[0]
        assert low <= value <= high
        return value


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return ScriptedRandom(11, 22, 33, 44, 55, 66, 77, 88, 99)


@pytest.fixture
def gate(db, clock, rng):
    return GateService(db, clock=clock, rng=rng)


@pytest.fixture
def customer():
    return Actor(id="user-1", role="user")


@pytest.fixture
def other_customer():
    return Actor(id="user-2", role="user")


@pytest.fixture
def staff():
    return Actor(id="staff-1", role="staff")

