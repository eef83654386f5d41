import pytest

from store import (
    CART_ITEM,
    TEAM,
    USER,
    ConstraintViolation,
    StorageUnavailable,
    Store,
)
from tests.doubles import UnreachableDatabase


class TestStoreOperations:
    def test_insert_returns_string_id_and_is_findable(self, store):
        item_id = store.insert(CART_ITEM, {"username": "alice", "name": "Jersey"})

        assert isinstance(item_id, str)
        assert store.find_one(CART_ITEM, {"username": "alice"})["name"] == "Jersey"

    def test_insert_does_not_mutate_caller_record(self, store):
        record = {"username": "alice"}
        store.insert(CART_ITEM, record)
        assert "_id" not in record

    def test_upsert_converges_to_single_document(self, store):
        store.upsert(TEAM, {"name": "MI"}, {"name": "MI", "color": "#000000", "logoUrl": "a"})
        store.upsert(TEAM, {"name": "MI"}, {"name": "MI", "color": "#045193", "logoUrl": "b"})

        rows = store.find_many(TEAM, {"name": "MI"})
        assert len(rows) == 1
        assert rows[0]["color"] == "#045193"
        assert rows[0]["logoUrl"] == "b"

    def test_delete_one_reports_count(self, store):
        store.insert(CART_ITEM, {"username": "bob"})

        assert store.delete_one(CART_ITEM, {"username": "bob"}) == 1
        assert store.delete_one(CART_ITEM, {"username": "bob"}) == 0

    def test_find_many_sorts_when_asked(self, store):
        for name in ("MI", "CSK", "RCB"):
            store.insert(TEAM, {"name": name})

        names = [row["name"] for row in store.find_many(TEAM, {}, sort="name")]
        assert names == ["CSK", "MI", "RCB"]

    def test_unknown_kind_is_rejected(self, store):
        with pytest.raises(ValueError):
            store.find_one("Order", {})


class TestStoreErrors:
    def test_unique_username_index_raises_constraint_violation(self, store):
        store.insert(USER, {"username": "alice", "passwordHash": "x"})

        with pytest.raises(ConstraintViolation):
            store.insert(USER, {"username": "alice", "passwordHash": "y"})

    def test_connection_failure_raises_storage_unavailable(self):
        store = Store(UnreachableDatabase())

        with pytest.raises(StorageUnavailable):
            store.find_one(USER, {"username": "alice"})
        with pytest.raises(StorageUnavailable):
            store.ping()

    def test_ensure_indexes_tolerates_unreachable_store(self):
        Store(UnreachableDatabase()).ensure_indexes()
