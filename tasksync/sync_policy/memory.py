"""
In-memory document store that runs the sync policy on every write.

This stands in for the replication runtime in:
- Unit and integration tests
- The development gateway
- Local experiments without a real sync server

It resolves the prior revision and the acting principal, asks the policy
for a decision, and applies the revision together with its declarations.

Invariants:
    - All data is lost on process exit
    - A write is applied completely or not at all
    - A principal's read access is the union of its channel grants
    - A principal's roles are its explicit roles plus assigned roles
    - Declarations are keyed by the document that made them; an update
      replaces them
    - A delete revokes the document's access and role grants but keeps
      its last channels
    - A deleted id accepts no further revisions

How to change safely:
    - This is test and development code; the policy never depends on it
    - Keep the principal resolution in step with how the runtime does it
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from .access import Principal
from .documents import Document
from .errors import Forbidden
from .policy import SyncPolicy
from .routing import AccessGrant, RoleGrant, SyncResult
from .validation import not_empty

logger = logging.getLogger(__name__)


class DocumentNotFoundError(KeyError):
    """Raised when a document id has no live revision."""

    def __init__(self, doc_id: str) -> None:
        super().__init__(doc_id)
        self.doc_id = doc_id

    def __str__(self) -> str:
        return f"Document not found: {self.doc_id}"


class InMemoryDocumentStore:
    """Revision store that admits writes through a SyncPolicy.

    Thread safety:
        Writes are serialized with a lock, as the runtime serializes
        writes to the same id. Reads take the same lock.

    Example:
        >>> store = InMemoryDocumentStore()
        >>> store.put(
        ...     {"_id": "alice:groceries", "type": "task-list", "name": "Groceries", "owner": "alice"},
        ...     actor="alice",
        ... )
        >>> sorted(store.channels_for("alice"))
        ['task-list:alice:groceries', 'task-list:alice:groceries:users']
    """

    def __init__(self, policy: SyncPolicy | None = None) -> None:
        self.policy = policy or SyncPolicy()
        self._revisions: dict[str, list[Document]] = defaultdict(list)
        self._channels: dict[str, tuple[str, ...]] = {}
        self._access: dict[str, tuple[AccessGrant, ...]] = {}
        self._roles: dict[str, tuple[RoleGrant, ...]] = {}
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def put(
        self,
        doc: dict[str, Any],
        actor: str | None,
        roles: Iterable[str] = (),
    ) -> SyncResult:
        """Submit a revision (create, update, or tombstone).

        Args:
            doc: Proposed revision body; must carry an ``_id``
            actor: Authenticated user submitting the write
            roles: Roles held outside of moderator documents (e.g. admin)

        Returns:
            The declarations applied with the revision

        Raises:
            Unauthorized: If the policy denies the actor
            ValidationError: If the revision is invalid
            Forbidden: If the type is unknown or the id was deleted
        """
        proposed = Document.from_dict(doc)
        doc_id = proposed.id
        not_empty("_id", doc_id)

        with self._lock:
            old_doc = self._current(doc_id)
            if old_doc is not None and old_doc.deleted:
                raise Forbidden(f"Document {doc_id} is deleted", details={"doc_id": doc_id})

            result = self.policy.evaluate(proposed, old_doc, self._principal(actor, roles))
            self._apply(doc_id, proposed, result)

        logger.debug(
            "Stored revision",
            extra={"doc_id": doc_id, "revision": self.revision_count(doc_id)},
        )
        return result

    def delete(self, doc_id: str, actor: str | None, roles: Iterable[str] = ()) -> SyncResult:
        """Submit a tombstone for a live document.

        Raises:
            DocumentNotFoundError: If the id has no live revision
            Unauthorized: If the policy denies the actor
        """
        if self.get(doc_id) is None:
            raise DocumentNotFoundError(doc_id)
        return self.put({"_id": doc_id, "_deleted": True}, actor, roles)

    def evaluate(
        self,
        doc: dict[str, Any],
        actor: str | None,
        roles: Iterable[str] = (),
    ) -> SyncResult:
        """Evaluate a write against current state without storing it."""
        proposed = Document.from_dict(doc)
        with self._lock:
            old_doc = self._current(proposed.id) if proposed.id else None
            return self.policy.evaluate(proposed, old_doc, self._principal(actor, roles))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, doc_id: str) -> dict[str, Any] | None:
        """Return the live revision body, or None if absent or deleted."""
        with self._lock:
            current = self._current(doc_id)
        if current is None or current.deleted:
            return None
        return current.to_dict()

    def revision_count(self, doc_id: str) -> int:
        with self._lock:
            return len(self._revisions.get(doc_id, ()))

    def channels_for(self, user: str) -> frozenset[str]:
        """All channels ``user`` has been granted read access to."""
        with self._lock:
            return self._channels_for(user)

    def roles_for(self, user: str) -> frozenset[str]:
        """All roles assigned to ``user`` by accepted documents."""
        with self._lock:
            return self._roles_for(user)

    def channels_of(self, doc_id: str) -> tuple[str, ...]:
        """Channels the document's latest routed revision belongs to."""
        with self._lock:
            return self._channels.get(doc_id, ())

    def documents_in_channel(self, channel: str) -> list[str]:
        """Ids of live documents routed to ``channel``, in id order."""
        with self._lock:
            return sorted(
                doc_id
                for doc_id, channels in self._channels.items()
                if channel in channels and not self._current(doc_id).deleted
            )

    # -------------------------------------------------------------------------
    # Internals (caller holds the lock)
    # -------------------------------------------------------------------------

    def _current(self, doc_id: str) -> Document | None:
        revisions = self._revisions.get(doc_id)
        return revisions[-1] if revisions else None

    def _channels_for(self, user: str) -> frozenset[str]:
        return frozenset(
            grant.channel
            for grants in self._access.values()
            for grant in grants
            if grant.principal == user
        )

    def _roles_for(self, user: str) -> frozenset[str]:
        return frozenset(
            grant.role
            for grants in self._roles.values()
            for grant in grants
            if grant.principal == user
        )

    def _principal(self, actor: str | None, roles: Iterable[str]) -> Principal:
        if actor is None:
            return Principal(name=None, roles=frozenset(roles))
        return Principal.with_channels(
            actor,
            roles=self._roles_for(actor) | frozenset(roles),
            channels=self._channels_for(actor),
        )

    def _apply(self, doc_id: str, doc: Document, result: SyncResult) -> None:
        self._revisions[doc_id].append(doc)
        if doc.deleted:
            # Revoke what the document granted; channel membership of
            # already distributed revisions stays.
            self._access.pop(doc_id, None)
            self._roles.pop(doc_id, None)
            return
        self._channels[doc_id] = result.channels
        self._access[doc_id] = result.access_grants
        self._roles[doc_id] = result.role_grants
