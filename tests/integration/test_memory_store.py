"""
Integration tests for the sync policy with the in-memory document store.

Tests cover:
- Full task-list sharing flow
- Grants feeding later authorization
- Moderator role assignment
- Rejected writes leaving state unchanged
- Delete semantics
"""

import threading

import pytest

from tasksync.sync_policy.errors import Forbidden, Unauthorized, ValidationError
from tasksync.sync_policy.memory import DocumentNotFoundError, InMemoryDocumentStore


GROCERIES = {"_id": "alice:groceries", "type": "task-list", "name": "Groceries", "owner": "alice"}


def task(doc_id, text="Buy milk", list_id="alice:groceries", owner="alice"):
    return {"_id": doc_id, "type": "task", "task": text, "taskList": {"id": list_id, "owner": owner}}


def member(username, list_id="alice:groceries", owner="alice"):
    return {
        "_id": f"{list_id}:{username}",
        "type": "task-list:user",
        "username": username,
        "taskList": {"id": list_id, "owner": owner},
    }


class TestInMemoryDocumentStore:
    """Integration tests for InMemoryDocumentStore."""

    @pytest.fixture
    def store(self):
        """Store with alice's groceries list."""
        store = InMemoryDocumentStore()
        store.put(GROCERIES, actor="alice")
        return store

    def test_owner_gets_list_channels(self, store):
        """Creating a list grants its owner the list channels."""
        assert store.channels_for("alice") == frozenset(
            {"task-list:alice:groceries", "task-list:alice:groceries:users"}
        )
        assert store.channels_of("alice:groceries") == ("task-list:alice:groceries", "moderators")
        assert store.get("alice:groceries") == GROCERIES

    def test_sharing_flow(self, store):
        """A shared user can add tasks; an unshared one cannot."""
        with pytest.raises(Unauthorized):
            store.put(task("t1"), actor="bob")

        store.put(member("bob"), actor="alice")
        assert "task-list:alice:groceries" in store.channels_for("bob")

        store.put(task("t1"), actor="bob")
        assert store.documents_in_channel("task-list:alice:groceries") == [
            "alice:groceries",
            "t1",
        ]
        assert store.documents_in_channel("task-list:alice:groceries:users") == [
            "alice:groceries:bob"
        ]

    def test_moderator_role_assigned(self, store):
        """An admin-created moderator document grants the role."""
        with pytest.raises(Unauthorized):
            store.put({**GROCERIES, "name": "Food"}, actor="carol")

        store.put(
            {"_id": "moderator:carol", "type": "moderator", "username": "carol"},
            actor="root",
            roles=["admin"],
        )
        assert store.roles_for("carol") == frozenset({"moderator"})

        store.put({**GROCERIES, "name": "Food"}, actor="carol")
        assert store.get("alice:groceries")["name"] == "Food"

    def test_rejected_write_changes_nothing(self, store):
        """A rejected write stores no revision and declares nothing."""
        # Ownership is checked against the proposed owner, so alice is denied.
        with pytest.raises(Unauthorized):
            store.put({**GROCERIES, "owner": "bob"}, actor="alice")

        assert store.revision_count("alice:groceries") == 1
        assert store.get("alice:groceries") == GROCERIES
        assert store.channels_for("bob") == frozenset()

    def test_moderator_cannot_transfer_ownership(self, store):
        """Moderators pass access but ownership stays read-only."""
        store.put(
            {"_id": "moderator:carol", "type": "moderator", "username": "carol"},
            actor="root",
            roles=["admin"],
        )

        with pytest.raises(ValidationError, match="owner is read-only."):
            store.put({**GROCERIES, "owner": "bob"}, actor="carol")

        assert store.revision_count("alice:groceries") == 1
        assert store.get("alice:groceries")["owner"] == "alice"
        assert store.channels_for("bob") == frozenset()

    def test_update_replaces_grants(self, store):
        """Grants follow the latest revision of the granting document."""
        store.put(member("bob"), actor="alice")
        store.put({**member("bob"), "note": "weekly"}, actor="alice")

        assert store.revision_count("alice:groceries:bob") == 2
        assert store.channels_for("bob") == frozenset({"task-list:alice:groceries"})

    def test_delete(self, store):
        """Deleting a membership stores a tombstone and revokes its grant."""
        store.put(member("bob"), actor="alice")
        store.put(task("t1"), actor="bob")

        result = store.delete("alice:groceries:bob", actor="alice")

        assert result.empty
        assert store.get("alice:groceries:bob") is None
        assert store.revision_count("alice:groceries:bob") == 2
        assert store.channels_for("bob") == frozenset()
        assert store.channels_of("alice:groceries:bob") == (
            "task-list:alice:groceries:users",
            "moderators",
        )
        assert store.documents_in_channel("task-list:alice:groceries:users") == []

        with pytest.raises(Unauthorized):
            store.put(task("t9"), actor="bob")

    def test_delete_moderator_revokes_role(self, store):
        """Removing a moderator document takes the role away."""
        moderator = {"_id": "moderator:carol", "type": "moderator", "username": "carol"}
        store.put(moderator, actor="root", roles=["admin"])
        assert store.roles_for("carol") == frozenset({"moderator"})

        store.delete("moderator:carol", actor="root", roles=["admin"])

        assert store.roles_for("carol") == frozenset()
        with pytest.raises(Unauthorized):
            store.put({**GROCERIES, "name": "Food"}, actor="carol")

    def test_delete_unauthorized(self, store):
        """Outsiders cannot delete, and the document survives."""
        with pytest.raises(Unauthorized):
            store.delete("alice:groceries", actor="bob")
        assert store.get("alice:groceries") is not None

    def test_deleted_id_is_final(self, store):
        """No revision is accepted after a delete."""
        store.delete("alice:groceries", actor="alice")
        with pytest.raises(Forbidden, match="deleted"):
            store.put(GROCERIES, actor="alice")
        with pytest.raises(DocumentNotFoundError):
            store.delete("alice:groceries", actor="alice")

    def test_delete_missing(self, store):
        """Deleting an unknown id is a not-found error."""
        with pytest.raises(DocumentNotFoundError):
            store.delete("nope", actor="alice")

    def test_missing_id(self, store):
        """Writes must carry an _id."""
        with pytest.raises(ValidationError, match="_id is empty"):
            store.put({"type": "task-list", "name": "x", "owner": "alice"}, actor="alice")

    def test_invalid_type(self, store):
        """Unknown types never reach storage."""
        with pytest.raises(Forbidden, match="Invalid document type: widget"):
            store.put({"_id": "w1", "type": "widget"}, actor="alice")
        assert store.get("w1") is None

    def test_evaluate_is_dry_run(self, store):
        """evaluate decides without storing."""
        result = store.evaluate(member("bob"), actor="alice")
        assert result.access_grants[0].principal == "bob"
        assert store.get("alice:groceries:bob") is None
        assert store.channels_for("bob") == frozenset()

    def test_anonymous_actor(self, store):
        """Writes without an actor fail ownership checks."""
        with pytest.raises(Unauthorized):
            store.put(task("t1"), actor=None)

    def test_concurrent_writes_serialized(self, store):
        """Concurrent writers each get exactly one accepted revision."""
        errors = []

        def add(i):
            try:
                store.put(task(f"t{i}", text=f"item {i}"), actor="alice")
            except Exception as e:  # pragma: no cover - surfaced below
                errors.append(e)

        threads = [threading.Thread(target=add, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store.documents_in_channel("task-list:alice:groceries")) == 21
