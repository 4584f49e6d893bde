"""
Unit tests for routing declarations.

Tests cover:
- Declaration order and de-duplication
- Empty results
- Serialization
"""

from tasksync.sync_policy.routing import AccessGrant, Declarations, RoleGrant, SyncResult


class TestDeclarations:
    """Tests for Declarations."""

    def test_order_kept_duplicates_dropped(self):
        """First-declared order wins; repeats are ignored."""
        out = Declarations()
        out.channel("task-list:a", "moderators")
        out.channel("moderators", "task-list:b")
        out.access("alice", "task-list:a", "task-list:a")
        out.role("carol", "moderator")
        out.role("carol", "moderator")

        result = out.build()

        assert result.channels == ("task-list:a", "moderators", "task-list:b")
        assert result.access_grants == (AccessGrant("alice", "task-list:a"),)
        assert result.role_grants == (RoleGrant("carol", "moderator"),)
        assert not result.empty

    def test_empty(self):
        """Nothing declared builds an empty result."""
        assert Declarations().build().empty
        assert SyncResult().empty


class TestSyncResult:
    """Tests for SyncResult."""

    def test_to_dict(self):
        """Results serialize to plain JSON types."""
        result = SyncResult(
            channels=("task-list:a:users", "moderators"),
            access_grants=(AccessGrant("bob", "task-list:a"),),
            role_grants=(RoleGrant("carol", "moderator"),),
        )
        assert result.to_dict() == {
            "channels": ["task-list:a:users", "moderators"],
            "access": [{"principal": "bob", "channel": "task-list:a"}],
            "roles": [{"principal": "carol", "role": "moderator"}],
        }
