"""Unit tests for tasktrack.services.task_store — owner-scoped persistence."""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from tasktrack.db import new_id
from tasktrack.engine.errors import InternalError
from tasktrack.services.query_builder import build_task_query


def _titles(tasks):
    return [t.title for t in tasks]


class TestCreateAndGet:

    def test_defaults(self, store, alice):
        task = store.create(alice.id, {"title": "Buy milk"})
        assert len(task.id) == 32
        assert task.user_id == alice.id
        assert task.status == "pending"
        assert task.priority == "medium"
        assert task.tags == []
        assert task.description is None
        assert task.created_at is not None

    def test_get_roundtrip(self, store, alice):
        created = store.create(alice.id, {"title": "A", "tags": ["x"], "due_date": date(2030, 1, 2)})
        fetched = store.get(created.id)
        assert fetched.title == "A"
        assert fetched.tags == ["x"]
        assert fetched.due_date == date(2030, 1, 2)

    @pytest.mark.parametrize("task_id", ["", "not-an-id", "123", None, 42, "Z" * 32])
    def test_malformed_id_is_absent(self, store, task_id):
        assert store.get(task_id) is None

    def test_unknown_id_is_absent(self, store):
        assert store.get(new_id()) is None

    def test_unknown_fields_ignored(self, store, alice):
        task = store.create(alice.id, {"title": "A", "user_id": "someone-else", "id": "x"})
        assert task.user_id == alice.id
        assert task.id != "x"


class TestFind:

    def test_owner_scoped(self, store, alice, bob):
        store.create(alice.id, {"title": "Alice 1"})
        store.create(alice.id, {"title": "Alice 2"})
        store.create(bob.id, {"title": "Bob 1"})
        assert sorted(_titles(store.find(build_task_query(alice.id)))) == ["Alice 1", "Alice 2"]
        assert _titles(store.find(build_task_query(bob.id))) == ["Bob 1"]

    def test_newest_and_oldest(self, store, alice):
        for title in ("first", "second", "third"):
            store.create(alice.id, {"title": title})
        assert _titles(store.find(build_task_query(alice.id))) == ["third", "second", "first"]
        assert _titles(store.find(build_task_query(alice.id, {"sort": "oldest"}))) == [
            "first", "second", "third",
        ]

    def test_priority_sort_is_semantic(self, store, alice):
        store.create(alice.id, {"title": "low", "priority": "low"})
        store.create(alice.id, {"title": "high", "priority": "high"})
        store.create(alice.id, {"title": "medium", "priority": "medium"})
        tasks = store.find(build_task_query(alice.id, {"sort": "priority"}))
        assert [t.priority for t in tasks] == ["high", "medium", "low"]

    def test_due_date_sort_nulls_last(self, store, alice):
        store.create(alice.id, {"title": "none"})
        store.create(alice.id, {"title": "later", "due_date": date(2030, 6, 1)})
        store.create(alice.id, {"title": "sooner", "due_date": date(2030, 1, 1)})
        tasks = store.find(build_task_query(alice.id, {"sort": "dueDate"}))
        assert _titles(tasks) == ["sooner", "later", "none"]

    def test_search_title_or_description(self, store, alice):
        store.create(alice.id, {"title": "Buy MILK"})
        store.create(alice.id, {"title": "Groceries", "description": "eggs and milk"})
        store.create(alice.id, {"title": "Call mom"})
        tasks = store.find(build_task_query(alice.id, {"search": "milk"}))
        assert sorted(_titles(tasks)) == ["Buy MILK", "Groceries"]

    def test_search_is_literal(self, store, alice):
        store.create(alice.id, {"title": "50% off"})
        store.create(alice.id, {"title": "500 items"})
        tasks = store.find(build_task_query(alice.id, {"search": "50%"}))
        assert _titles(tasks) == ["50% off"]

    def test_filters_combine(self, store, alice):
        store.create(alice.id, {"title": "a", "status": "completed", "priority": "high"})
        store.create(alice.id, {"title": "b", "status": "completed", "priority": "low"})
        store.create(alice.id, {"title": "c", "status": "pending", "priority": "high"})
        tasks = store.find(build_task_query(alice.id, {"status": "completed", "priority": "high"}))
        assert _titles(tasks) == ["a"]


class TestUpdateDelete:

    def test_update_applies_changes(self, store, alice):
        task = store.create(alice.id, {"title": "Old"})
        updated = store.update(task.id, alice.id, {"title": "New", "status": "completed"})
        assert updated.title == "New"
        assert updated.status == "completed"
        assert updated.priority == "medium"
        assert updated.updated_at >= task.created_at

    def test_update_can_clear_optional_fields(self, store, alice):
        task = store.create(alice.id, {"title": "T", "description": "d", "tags": ["a"]})
        updated = store.update(task.id, alice.id, {"description": None, "tags": []})
        assert updated.description is None
        assert updated.tags == []

    def test_update_wrong_owner_matches_nothing(self, store, alice, bob):
        task = store.create(alice.id, {"title": "Mine"})
        assert store.update(task.id, bob.id, {"title": "Stolen"}) is None
        assert store.get(task.id).title == "Mine"

    def test_update_missing_task(self, store, alice):
        assert store.update(new_id(), alice.id, {"title": "x"}) is None

    def test_delete(self, store, alice):
        task = store.create(alice.id, {"title": "Gone"})
        assert store.delete(task.id, alice.id) is True
        assert store.get(task.id) is None
        assert store.delete(task.id, alice.id) is False

    def test_delete_wrong_owner(self, store, alice, bob):
        task = store.create(alice.id, {"title": "Mine"})
        assert store.delete(task.id, bob.id) is False
        assert store.get(task.id) is not None


class TestTally:

    def test_groups_by_status_and_priority(self, store, alice, bob):
        store.create(alice.id, {"title": "a", "priority": "high"})
        store.create(alice.id, {"title": "b", "priority": "high"})
        store.create(alice.id, {"title": "c", "status": "completed"})
        store.create(bob.id, {"title": "d"})
        rows = sorted(store.tally(alice.id))
        assert rows == [("completed", "medium", 1), ("pending", "high", 2)]


class TestStoreFailures:

    def test_sqlalchemy_errors_become_internal(self, store, database, alice):
        failure = OperationalError("SELECT 1", {}, Exception("connection lost"))
        with patch.object(database, "session_scope", side_effect=failure):
            with pytest.raises(InternalError) as exc:
                store.find(build_task_query(alice.id))
        assert exc.value.operation == "find"
        assert isinstance(exc.value.__cause__, OperationalError)
