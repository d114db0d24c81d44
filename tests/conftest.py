"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import asyncio
from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from lifterid.db.models import Base, Lifter, MeetResult
from lifterid.identity.errors import VerificationFailure
from lifterid.identity.store import LifterStore


@pytest.fixture
def test_engine():
    """
    Create a clean in-memory SQLite database for each test.

    pysqlite's own transaction handling breaks SAVEPOINT, which the store
    and ingestion service rely on, so transactions are started explicitly.
    """
    engine = create_engine("sqlite:///:memory:", echo=False)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Database session for a test; rolled back when the test ends."""
    Session = sessionmaker(bind=test_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def store(db_session):
    return LifterStore(db_session)


@pytest.fixture
def make_lifter(db_session):
    """Factory inserting a lifter directly, bypassing the store."""
    def _make(name, external_id=None, membership_number=None):
        lifter = Lifter(name=name, external_id=external_id, membership_number=membership_number)
        db_session.add(lifter)
        db_session.flush()
        return lifter
    return _make


@pytest.fixture
def add_result(db_session):
    """Factory attaching a meet result to a lifter, for attribute history."""
    def _add(lifter, meet_name="Club Meet", meet_date=date(2023, 6, 1), **attrs):
        result = MeetResult(
            lifter_id=lifter.id,
            meet_name=meet_name,
            meet_date=meet_date,
            scraped_name=lifter.name,
            weight_class=attrs.pop("weight_class", ""),
            **attrs,
        )
        db_session.add(result)
        db_session.flush()
        return result
    return _add


class FakeProfileSource:
    """
    In-memory ProfileSource.

    histories maps external_id to a list of CompetitionEntry, or to an
    exception instance to raise. Ids listed in slow never answer within
    any reasonable timeout.
    """

    def __init__(self, histories=None, slow=()):
        self.histories = histories or {}
        self.slow = set(slow)
        self.calls = []

    async def fetch_history(self, external_id):
        self.calls.append(external_id)
        if external_id in self.slow:
            await asyncio.sleep(10)
        history = self.histories.get(external_id)
        if isinstance(history, Exception):
            raise history
        if history is None:
            raise VerificationFailure(external_id, "member page not found")
        return list(history)


@pytest.fixture
def fake_source():
    """Factory for FakeProfileSource instances."""
    return FakeProfileSource
