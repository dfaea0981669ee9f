import os

# Keep the test run off the on-disk database; must happen before `db` is imported
os.environ.setdefault("FINANCE_DB_URL", "sqlite://")

from datetime import datetime, timedelta

import pytest
from sqlalchemy.pool import StaticPool

from db import build_engine, build_session_factory, ensure_schema
from app.deps import build_store
from app.services.kv_store import KeyValueStore


class FakeClock:
    """Returns a strictly increasing time, one second per call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def engine():
    # One shared in-memory connection so every session sees the same data
    eng = build_engine("sqlite://", poolclass=StaticPool)
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def kv(session_factory):
    return KeyValueStore(session_factory)


@pytest.fixture
def store(session_factory):
    return build_store(
        session_factory,
        account_clock=FakeClock(),
        transaction_clock=FakeClock(),
    )


@pytest.fixture
def accounts(store):
    return store.accounts


@pytest.fixture
def transactions(store):
    return store.transactions


@pytest.fixture
def migrations(store):
    return store.migrations
