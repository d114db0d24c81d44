"""
Unit tests for LifterStore.
"""

from datetime import date

import pytest

from lifterid.db.models import Lifter
from lifterid.identity.errors import StoreConflict


def test_create_assigns_id(store):
    lifter = store.create("Jane Doe", external_id="12345", membership_number="M100")

    assert lifter.id is not None
    assert lifter.external_id == "12345"
    assert lifter.membership_number == "M100"
    assert store.get(lifter.id) is lifter


def test_create_returns_existing_holder_of_external_id(store, db_session):
    first = store.create("Jane Doe", external_id="12345")
    second = store.create("Jane  Doe-Smith", external_id="12345")

    assert second.id == first.id
    assert db_session.query(Lifter).count() == 1


def test_create_without_external_id_always_inserts(store, db_session):
    store.create("Alex Kim")
    store.create("Alex Kim")

    assert db_session.query(Lifter).count() == 2


def test_create_recovers_from_concurrent_insert(store, db_session, make_lifter, monkeypatch):
    """A writer that slips in between the check and the insert wins; its row is returned."""
    real_find = store.find_by_external_id
    calls = []

    def find_after_other_writer(external_id):
        calls.append(external_id)
        if len(calls) == 1:
            # Simulate the other writer committing right after our check
            make_lifter("Jane Doe", external_id=external_id)
            return None
        return real_find(external_id)

    monkeypatch.setattr(store, "find_by_external_id", find_after_other_writer)

    lifter = store.create("Jane Doe", external_id="777")

    assert lifter.external_id == "777"
    assert db_session.query(Lifter).filter_by(external_id="777").count() == 1


def test_find_by_name_is_exact_and_case_sensitive(store, make_lifter):
    make_lifter("Jane Doe")

    assert len(store.find_by_name("Jane Doe")) == 1
    assert store.find_by_name("jane doe") == []
    assert store.find_by_name("Jane") == []


def test_find_by_name_orders_by_id(store, make_lifter):
    a = make_lifter("Alex Kim")
    b = make_lifter("Alex Kim")

    assert [l.id for l in store.find_by_name("Alex Kim")] == [a.id, b.id]


def test_find_by_membership_number_returns_all_holders(store, make_lifter):
    make_lifter("Old Holder", membership_number="M1")
    make_lifter("New Holder", membership_number="M1")
    make_lifter("Someone Else", membership_number="M2")

    assert [l.name for l in store.find_by_membership_number("M1")] == ["Old Holder", "New Holder"]


def test_find_by_external_id_missing(store):
    assert store.find_by_external_id("nope") is None
    assert store.find_all_by_external_id("nope") == []


def test_set_external_id(store, make_lifter):
    lifter = make_lifter("Jane Doe")

    updated = store.set_external_id(lifter.id, "555")

    assert updated.external_id == "555"
    assert store.find_by_external_id("555").id == lifter.id


def test_set_external_id_same_value_is_noop(store, make_lifter):
    lifter = make_lifter("Jane Doe", external_id="555")

    assert store.set_external_id(lifter.id, "555").external_id == "555"


def test_set_external_id_conflict(store, make_lifter):
    holder = make_lifter("Janet Doe", external_id="555")
    lifter = make_lifter("Jane Doe")

    with pytest.raises(StoreConflict) as exc_info:
        store.set_external_id(lifter.id, "555")

    assert exc_info.value.holder_id == holder.id
    assert store.get(lifter.id).external_id is None


def test_set_external_id_constraint_violation_becomes_conflict(store, make_lifter, monkeypatch):
    make_lifter("Janet Doe", external_id="555")
    lifter = make_lifter("Jane Doe")
    # Pretend the pre-check saw nothing, so only the unique constraint catches it
    monkeypatch.setattr(store, "find_by_external_id", lambda external_id: None)

    with pytest.raises(StoreConflict):
        store.set_external_id(lifter.id, "555")

    assert store.get(lifter.id).external_id is None


def test_set_external_id_unknown_lifter(store):
    with pytest.raises(ValueError):
        store.set_external_id(9999, "555")


def test_recent_results_newest_first_and_limited(store, make_lifter, add_result):
    lifter = make_lifter("Jane Doe")
    other = make_lifter("Alex Kim")
    add_result(lifter, "Meet A", date(2022, 1, 1))
    add_result(lifter, "Meet C", date(2024, 1, 1))
    add_result(lifter, "Meet B", date(2023, 1, 1))
    add_result(other, "Meet A", date(2022, 1, 1))

    history = store.recent_results([lifter.id, other.id], limit_per_lifter=2)

    assert [r.meet_name for r in history[lifter.id]] == ["Meet C", "Meet B"]
    assert [r.meet_name for r in history[other.id]] == ["Meet A"]


def test_recent_results_empty(store):
    assert store.recent_results([]) == {}
