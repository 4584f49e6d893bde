"""
Document revisions and operation classification.

A write hands the policy two revisions of the same document: the proposed
one and, unless the document is new, the prior accepted one. This module
wraps those raw JSON bodies and classifies the write.

Invariants:
    - A write is exactly one of create, update or delete
    - Create means no prior revision and a non-tombstone proposal
    - The effective type of a delete is the prior revision's type,
      because a tombstone does not have to carry one
    - Classification is total and never raises

How to change safely:
    - Rules must read the type through WriteContext.effective_type,
      never from the proposed document directly
    - Keep field lookup tolerant of missing or malformed nested objects;
      the validator is what reports them
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .access import Principal

_MISSING = object()


class Operation(Enum):
    """Kind of write being evaluated."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Document:
    """One revision of a document as submitted to or stored by the runtime.

    Attributes:
        data: The raw JSON body of the revision
    """

    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        """Wrap a JSON body, copying it so later mutation cannot leak in."""
        if not isinstance(data, dict):
            raise TypeError(f"Document body must be an object, got {type(data).__name__}")
        return cls(data=copy.deepcopy(data))

    @property
    def id(self) -> str | None:
        value = self.data.get("_id", self.data.get("id"))
        return value if isinstance(value, str) else None

    @property
    def type(self) -> Any:
        return self.data.get("type")

    @property
    def deleted(self) -> bool:
        return self.data.get("_deleted", self.data.get("deleted")) is True

    def get(self, path: str, default: Any = None) -> Any:
        """Look up a field by dotted path, e.g. ``taskList.owner``.

        Returns ``default`` when any segment is missing or a parent is not
        an object.
        """
        value: Any = self.data
        for part in path.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(part, _MISSING)
            if value is _MISSING:
                return default
        return value

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self.data)


def classify(doc: Document, old_doc: Document | None) -> tuple[Operation, Any]:
    """Classify a write and resolve the type its rules dispatch on.

    Args:
        doc: Proposed revision
        old_doc: Prior accepted revision, or None if there is none

    Returns:
        Tuple of (operation, effective_type)
    """
    if doc.deleted:
        # A tombstone for an id the store never accepted has no type to
        # dispatch on; it falls through to the invalid-type branch.
        return Operation.DELETE, old_doc.type if old_doc is not None else None
    if old_doc is None:
        return Operation.CREATE, doc.type
    return Operation.UPDATE, doc.type


@dataclass(frozen=True)
class WriteContext:
    """Everything a single evaluation may look at.

    Built once per write and passed explicitly through every pipeline
    stage. Nothing here outlives the evaluation.

    Attributes:
        doc: Proposed revision
        old_doc: Prior accepted revision (None on create)
        principal: The authenticated actor
        operation: Classified operation
        effective_type: Type tag used for rule dispatch
    """

    doc: Document
    old_doc: Document | None
    principal: Principal
    operation: Operation
    effective_type: Any

    @classmethod
    def build(
        cls,
        doc: Document,
        old_doc: Document | None,
        principal: Principal,
    ) -> WriteContext:
        operation, effective_type = classify(doc, old_doc)
        return cls(
            doc=doc,
            old_doc=old_doc,
            principal=principal,
            operation=operation,
            effective_type=effective_type,
        )

    @property
    def is_create(self) -> bool:
        return self.operation is Operation.CREATE

    @property
    def is_update(self) -> bool:
        return self.operation is Operation.UPDATE

    @property
    def is_delete(self) -> bool:
        return self.operation is Operation.DELETE

    @property
    def subject(self) -> Document:
        """Revision whose fields decide ownership for access checks.

        The proposed revision, except on delete where the prior revision
        is used: a tombstone carries no fields of its own.
        """
        if self.is_delete and self.old_doc is not None:
            return self.old_doc
        return self.doc
