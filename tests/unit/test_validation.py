"""
Unit tests for field validation primitives.

Tests cover:
- Emptiness checks
- Read-only checks
- Prefix and exact id checks
- Error codes and field names
"""

import pytest

from tasksync.sync_policy.errors import Forbidden, ValidationError
from tasksync.sync_policy.validation import (
    exact_id,
    immutable,
    is_empty,
    not_empty,
    required_prefix,
)


class TestNotEmpty:
    """Tests for not_empty."""

    @pytest.mark.parametrize("value", [None, "", "   ", "\t\n", [], {}])
    def test_empty_values_rejected(self, value):
        """Absent and whitespace-only values are empty."""
        assert is_empty(value)
        with pytest.raises(ValidationError, match="username is empty."):
            not_empty("username", value)

    @pytest.mark.parametrize("value", ["alice", " a ", "0"])
    def test_present_values_pass(self, value):
        """Non-blank strings pass."""
        assert not is_empty(value)
        not_empty("username", value)

    @pytest.mark.parametrize("value", [5, 0, False, True, ["x"], {"a": 1}, 1.5])
    def test_non_strings_rejected(self, value):
        """Names must be strings, whatever their content."""
        assert is_empty(value)
        with pytest.raises(ValidationError, match="owner is empty."):
            not_empty("owner", value)

    def test_error_details(self):
        """Errors carry code and field name."""
        with pytest.raises(ValidationError) as exc_info:
            not_empty("taskList.id", None)
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.field_name == "taskList.id"


class TestImmutable:
    """Tests for immutable."""

    def test_unchanged_passes(self):
        """Equal values pass."""
        immutable("owner", "alice", "alice")
        immutable("owner", None, None)

    def test_changed_rejected(self):
        """Changed values are read-only."""
        with pytest.raises(ValidationError, match="owner is read-only."):
            immutable("owner", "bob", "alice")

    def test_removed_rejected(self):
        """Dropping a field counts as changing it."""
        with pytest.raises(ValidationError):
            immutable("taskList.id", None, "alice:groceries")


class TestRequiredPrefix:
    """Tests for required_prefix."""

    def test_prefixed_passes(self):
        """Values starting with the prefix pass."""
        required_prefix("_id", "alice:groceries", "owner", "alice:")

    def test_wrong_prefix_rejected(self):
        """Other prefixes are rejected."""
        with pytest.raises(ValidationError, match="_id must be prefixed with owner."):
            required_prefix("_id", "bob:groceries", "owner", "alice:")

    def test_prefix_is_exact(self):
        """Prefix matching is case- and separator-sensitive."""
        with pytest.raises(ValidationError):
            required_prefix("_id", "Alice:groceries", "owner", "alice:")
        with pytest.raises(ValidationError):
            required_prefix("_id", "alicegroceries", "owner", "alice:")

    def test_non_string_rejected(self):
        """Missing values never carry a prefix."""
        with pytest.raises(ValidationError):
            required_prefix("_id", None, "owner", "alice:")


class TestExactId:
    """Tests for exact_id."""

    def test_match_passes(self):
        """Matching id passes."""
        exact_id("moderator:carol", "moderator:carol", "moderator:{username}")

    def test_mismatch_rejected(self):
        """Mismatched id names the pattern."""
        with pytest.raises(ValidationError) as exc_info:
            exact_id("moderator:dave", "moderator:carol", "moderator:{username}")
        assert str(exc_info.value) == "_id must match the pattern moderator:{username}."
        assert exc_info.value.field_name == "_id"

    def test_validation_error_is_forbidden(self):
        """Validation failures are a kind of Forbidden."""
        with pytest.raises(Forbidden):
            exact_id("x", "y", "{y}")
