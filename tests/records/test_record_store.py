"""Unit tests: record lifecycle, custody rules and queries."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest

from custody.access.registry import AuthorizationRegistry
from custody.domain.exceptions import (
    BusinessValidationError,
    Forbidden,
    InvalidTarget,
    NotFound,
    Unauthorized,
)
from custody.events.notifications import Notification, NotificationChannel
from custody.records.store import RecordStore

FIELDS = {
    "name": "Jane Doe",
    "age": 30,
    "sex": "F",
    "mobile": "555-0100",
    "diagnosis": "flu",
    "treatment": "rest",
}


@pytest.fixture
def published() -> list[Notification]:
    return []


@pytest.fixture
def registry(clock, published) -> AuthorizationRegistry:
    registry = AuthorizationRegistry(
        owner="owner", notifications=NotificationChannel([published.append]), clock=clock
    )
    registry.authorize("owner", "dr-alice")
    registry.authorize("owner", "dr-bob")
    published.clear()
    return registry


@pytest.fixture
def store(registry) -> RecordStore:
    return RecordStore(registry=registry)


def test_ids_are_sequential_from_one(store: RecordStore) -> None:
    ids = [store.add_record("dr-alice", **FIELDS) for _ in range(5)]
    ids.append(store.add_record("dr-bob", **FIELDS))

    assert ids == [1, 2, 3, 4, 5, 6]
    assert store.list_all_ids("owner") == ids


def test_add_record_sets_custodian_and_timestamps(store: RecordStore, published) -> None:
    record_id = store.add_record("dr-alice", **FIELDS)

    record = store.get_record("dr-bob", record_id)
    assert record.current_custodian == "dr-alice"
    assert record.created_at == record.last_updated
    assert record.name == "Jane Doe"
    assert [(n.kind, n.record_id, n.actor) for n in published] == [
        ("record_added", 1, "dr-alice")
    ]
    assert published[0].occurred_at == record.created_at


def test_duplicate_records_are_allowed(store: RecordStore) -> None:
    assert store.add_record("dr-alice", **FIELDS) != store.add_record("dr-alice", **FIELDS)


def test_unauthorized_caller_cannot_add(store: RecordStore, published) -> None:
    with pytest.raises(Unauthorized):
        store.add_record("stranger", **FIELDS)

    assert store.list_all_ids("owner") == []
    assert published == []


def test_negative_age_is_rejected(store: RecordStore) -> None:
    with pytest.raises(BusinessValidationError):
        store.add_record("dr-alice", **{**FIELDS, "age": -1})

    # The rejected call did not consume an id.
    assert store.add_record("dr-alice", **FIELDS) == 1


def test_update_by_custodian_overwrites_fields(store: RecordStore) -> None:
    record_id = store.add_record("dr-alice", **FIELDS)
    before = store.get_record("dr-alice", record_id)

    updated = store.update_record(
        "dr-alice", record_id, **{**FIELDS, "name": "Jane D.", "age": 31}
    )

    assert updated.name == "Jane D."
    assert updated.age == 31
    assert updated.created_at == before.created_at
    assert updated.last_updated > before.last_updated
    assert updated.current_custodian == "dr-alice"
    assert store.get_record("owner", record_id) == updated


def test_update_by_authorized_non_custodian_is_forbidden(store: RecordStore) -> None:
    record_id = store.add_record("dr-alice", **FIELDS)
    before = store.get_record("dr-alice", record_id)

    with pytest.raises(Forbidden):
        store.update_record("dr-bob", record_id, **{**FIELDS, "diagnosis": "cold"})

    assert store.get_record("dr-alice", record_id) == before


def test_update_missing_record_is_not_found(store: RecordStore) -> None:
    with pytest.raises(NotFound):
        store.update_record("dr-alice", 42, **FIELDS)


def test_transfer_changes_custodian_only(store: RecordStore, published) -> None:
    record_id = store.add_record("dr-alice", **FIELDS)
    before = store.get_record("dr-alice", record_id)
    published.clear()

    store.transfer_record("dr-alice", record_id, "dr-bob")

    after = store.get_record("dr-alice", record_id)
    assert after.current_custodian == "dr-bob"
    assert after.last_updated == before.last_updated
    assert after.name == before.name
    assert [(n.kind, n.record_id, n.actor, n.subject) for n in published] == [
        ("record_transferred", record_id, "dr-alice", "dr-bob")
    ]

    with pytest.raises(Forbidden):
        store.update_record("dr-alice", record_id, **FIELDS)


def test_transfer_to_unauthorized_target_is_rejected(store: RecordStore, published) -> None:
    record_id = store.add_record("dr-alice", **FIELDS)
    published.clear()

    with pytest.raises(InvalidTarget):
        store.transfer_record("dr-alice", record_id, "stranger")

    assert store.get_record("dr-alice", record_id).current_custodian == "dr-alice"
    assert published == []


def test_transfer_error_precedence(store: RecordStore) -> None:
    record_id = store.add_record("dr-alice", **FIELDS)

    with pytest.raises(Unauthorized):
        store.transfer_record("stranger", 999, "also-stranger")
    with pytest.raises(NotFound):
        store.transfer_record("dr-bob", 999, "stranger")
    with pytest.raises(Forbidden):
        store.transfer_record("dr-bob", record_id, "stranger")


def test_revoked_provider_loses_access_to_own_records(store: RecordStore, registry) -> None:
    record_id = store.add_record("dr-alice", **FIELDS)
    registry.revoke("owner", "dr-alice")

    with pytest.raises(Unauthorized):
        store.get_record("dr-alice", record_id)
    with pytest.raises(Unauthorized):
        store.update_record("dr-alice", record_id, **FIELDS)
    with pytest.raises(Unauthorized):
        store.transfer_record("dr-alice", record_id, "dr-bob")
    with pytest.raises(Unauthorized):
        store.list_all_ids("dr-alice")
    with pytest.raises(Unauthorized):
        store.list_ids_by_custodian("dr-alice", "dr-alice")

    # The record itself is untouched and still shows the revoked custodian.
    assert store.get_record("dr-bob", record_id).current_custodian == "dr-alice"
    assert store.list_ids_by_custodian("dr-bob", "dr-alice") == [record_id]

    registry.authorize("owner", "dr-alice")
    store.transfer_record("dr-alice", record_id, "dr-bob")
    assert store.get_record("dr-bob", record_id).current_custodian == "dr-bob"


def test_list_ids_by_custodian_preserves_insertion_order(store: RecordStore) -> None:
    a1 = store.add_record("dr-alice", **FIELDS)
    b1 = store.add_record("dr-bob", **FIELDS)
    a2 = store.add_record("dr-alice", **FIELDS)
    b2 = store.add_record("dr-bob", **FIELDS)
    store.transfer_record("dr-bob", b1, "dr-alice")

    assert store.list_ids_by_custodian("owner", "dr-alice") == [a1, b1, a2]
    assert store.list_ids_by_custodian("owner", "dr-bob") == [b2]
    assert store.list_ids_by_custodian("owner", "nobody") == []
    assert store.list_all_ids("owner") == [a1, b1, a2, b2]


def test_listing_returns_a_copy(store: RecordStore) -> None:
    store.add_record("dr-alice", **FIELDS)
    ids = store.list_all_ids("dr-alice")
    ids.append(99)

    assert store.list_all_ids("dr-alice") == [1]


def test_concurrent_adds_get_unique_increasing_ids(registry) -> None:
    store = RecordStore(registry=registry)
    results: list[int] = []
    results_lock = threading.Lock()

    def worker(principal: str) -> None:
        for _ in range(50):
            record_id = store.add_record(principal, **FIELDS)
            with results_lock:
                results.append(record_id)

    threads = [threading.Thread(target=worker, args=(p,)) for p in ("dr-alice", "dr-bob") * 4]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == list(range(1, 401))
    assert store.list_all_ids("owner") == list(range(1, 401))


def test_end_to_end_custody_scenario(clock) -> None:
    registry = AuthorizationRegistry(owner="O", clock=clock)
    store = RecordStore(registry=registry)

    registry.authorize("O", "A")
    record_id = store.add_record("A", **FIELDS)
    assert record_id == 1
    assert store.get_record("A", 1).current_custodian == "A"

    registry.authorize("O", "B")
    store.transfer_record("A", 1, "B")
    assert store.get_record("A", 1).current_custodian == "B"

    with pytest.raises(Forbidden):
        store.update_record("A", 1, **FIELDS)

    before = store.get_record("B", 1).last_updated
    store.update_record("B", 1, **{**FIELDS, "name": "Jane D."})
    assert store.get_record("B", 1).last_updated > before

    registry.revoke("O", "B")
    with pytest.raises(Unauthorized):
        store.get_record("B", 1)


def test_update_never_moves_last_updated_before_created_at() -> None:
    created = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    readings = iter([created, created - timedelta(hours=1)])
    registry = AuthorizationRegistry(owner="owner", clock=lambda: next(readings))
    store = RecordStore(registry=registry)
    record_id = store.add_record("owner", **FIELDS)

    updated = store.update_record("owner", record_id, **{**FIELDS, "name": "Jane D."})

    assert updated.created_at == created
    assert updated.last_updated == created
    assert updated.name == "Jane D."
