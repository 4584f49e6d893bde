"""
Field validation primitives for document revisions.

Each primitive checks one invariant and raises ValidationError with an
actionable message naming the offending field.

Invariants:
    - Validation is deterministic; same input, same error
    - Primitives only read the values they are given
    - Read-only checks compare with ==, so identical values always pass
    - Required fields must be non-blank strings
"""

from __future__ import annotations

from typing import Any

from .errors import ValidationError


def is_empty(value: Any) -> bool:
    """Whether a value is not a string or is whitespace only."""
    if not isinstance(value, str):
        return True
    return value.strip() == ""


def not_empty(name: str, value: Any) -> None:
    """Require a field to be a non-blank string.

    Raises:
        ValidationError: If the value is not a non-blank string
    """
    if is_empty(value):
        raise ValidationError(f"{name} is empty.", field_name=name)


def immutable(name: str, value: Any, old_value: Any) -> None:
    """Require a field to keep its prior value.

    Raises:
        ValidationError: If the value changed
    """
    if value != old_value:
        raise ValidationError(f"{name} is read-only.", field_name=name)


def required_prefix(name: str, value: Any, prefix_name: str, prefix: str) -> None:
    """Require ``value`` to start with ``prefix``.

    Args:
        name: Field being checked
        value: Field value
        prefix_name: Field the prefix is derived from, used in the message
        prefix: Exact prefix expected

    Raises:
        ValidationError: If the value does not start with the prefix
    """
    if not isinstance(value, str) or not value.startswith(prefix):
        raise ValidationError(
            f"{name} must be prefixed with {prefix_name}.", field_name=name
        )


def exact_id(doc_id: Any, expected: str, pattern: str) -> None:
    """Require the document id to equal ``expected``.

    Args:
        doc_id: The document's ``_id``
        expected: The id the naming pattern produces for this document
        pattern: Human-readable pattern, e.g. ``moderator:{username}``

    Raises:
        ValidationError: If the id does not match
    """
    if doc_id != expected:
        raise ValidationError(f"_id must match the pattern {pattern}.", field_name="_id")
