import os

# Set TESTING before any stacks imports
os.environ["TESTING"] = "true"

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from stacks.core.db import Base
from stacks.core.api import StacksAPI
from stacks.schemas.policy import Policy

START = datetime(2025, 3, 1, 10, 0, 0)


class Clock:
    """Settable stand-in for `utcnow`."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine(tmp_path):
    # File backed so that threads each get their own connection
    engine = create_engine(
        f"sqlite:///{tmp_path / 'stacks.db'}",
        connect_args={"check_same_thread": False, "timeout": 30}
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()

@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)

@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture
def clock():
    return Clock(START)

@pytest.fixture
def policy():
    return Policy(
        loan_period_days=14,
        hold_period_days=7,
        loan_limit=5,
        max_renewals=2,
        fine_daily_rate=Decimal("0.50"),
        fine_cap=Decimal("50.00"),
        block_extend_on_holds=True,
        allow_hold_when_available=False
    )

@pytest.fixture
def notifier():
    return MagicMock()

@pytest.fixture
def api(session_factory, notifier, policy, clock):
    return StacksAPI(
        session_factory=session_factory,
        notifier=notifier,
        policy=policy,
        clock=clock
    )

@pytest.fixture
def services(api, db_session):
    """Circulation services bound to one open session, for unit tests."""
    return api.services(db_session)


def assert_consistent(item):
    assert item.total_copies == (
        item.available_copies + item.borrowed_copies + item.reserved_copies
        + item.lost_copies + item.damaged_copies
    )
    for count in (item.available_copies, item.borrowed_copies, item.reserved_copies,
                  item.lost_copies, item.damaged_copies):
        assert count >= 0

@pytest.fixture
def consistent():
    return assert_consistent
