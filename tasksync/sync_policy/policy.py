"""
The sync policy: one decision per proposed write.

For every proposed revision the runtime calls SyncPolicy.evaluate(), which
runs a fixed pipeline:

    classify -> authorize -> validate -> route

1. classify: create, update or delete, and the effective type
2. authorize: the type's access check must allow the principal
3. validate: the type's field rules
4. route: channels, grants and roles for the accepted revision

Type immutability is checked ahead of all of these on update, so a
retyped document never reaches another type's rules.

The first failing stage aborts the evaluation with an exception. Routing
only runs after everything else passed, so a rejected write never yields
declarations.

Invariants:
    - Evaluation is pure: no I/O, no shared mutable state, no caching
    - Unknown types are rejected as Forbidden whatever the operation
    - A document's type never changes across revisions
    - Deletes are authorized but neither validated nor routed

How to change safely:
    - Per-type behavior belongs in rules.py, not here
    - Never reorder the stages; routing must stay last
"""

from __future__ import annotations

import logging
from typing import Any, NoReturn

from .access import Principal, enforce
from .config import PolicyConfig
from .documents import Document, WriteContext
from .errors import Forbidden, SyncPolicyError
from .routing import Declarations, SyncResult
from .rules import RuleRegistry, build_rules
from .validation import immutable

logger = logging.getLogger(__name__)

_EMPTY_RESULT = SyncResult()


def _as_document(doc: Document | dict[str, Any] | None) -> Document | None:
    if doc is None or isinstance(doc, Document):
        return doc
    return Document.from_dict(doc)


class SyncPolicy:
    """Admits or rejects proposed revisions and declares their routing.

    Thread safety:
        Stateless after construction; safe to share across threads.

    Example:
        >>> policy = SyncPolicy()
        >>> result = policy.evaluate(
        ...     {"_id": "alice:groceries", "type": "task-list", "name": "Groceries", "owner": "alice"},
        ...     None,
        ...     Principal("alice"),
        ... )
        >>> result.channels
        ('task-list:alice:groceries', 'moderators')
    """

    def __init__(
        self,
        config: PolicyConfig | None = None,
        rules: RuleRegistry | None = None,
    ) -> None:
        """Initialize the policy.

        Args:
            config: Role and channel names (defaults match the task-list app)
            rules: Rule registry (defaults to build_rules())
        """
        self.config = config or PolicyConfig()
        self.rules = rules if rules is not None else build_rules()

    def evaluate(
        self,
        doc: Document | dict[str, Any],
        old_doc: Document | dict[str, Any] | None,
        principal: Principal,
    ) -> SyncResult:
        """Evaluate one proposed write.

        Args:
            doc: Proposed revision
            old_doc: Prior accepted revision, or None if there is none
            principal: The authenticated actor

        Returns:
            Declarations to apply atomically with the revision

        Raises:
            Unauthorized: If the principal may not perform the write
            ValidationError: If the revision violates an invariant
            Forbidden: If the document type is not recognized
        """
        ctx = WriteContext.build(_as_document(doc), _as_document(old_doc), principal)

        try:
            result = self._run(ctx)
        except SyncPolicyError as e:
            logger.info(
                "Rejected write",
                extra={
                    "doc_id": ctx.doc.id,
                    "doc_type": ctx.effective_type,
                    "operation": ctx.operation.value,
                    "actor": principal.name,
                    "error_code": e.code,
                    "reason": e.message,
                },
            )
            raise

        logger.debug(
            "Accepted write",
            extra={
                "doc_id": ctx.doc.id,
                "doc_type": ctx.effective_type,
                "operation": ctx.operation.value,
                "actor": principal.name,
                "channels": list(result.channels),
            },
        )
        return result

    def _run(self, ctx: WriteContext) -> SyncResult:
        if ctx.is_update:
            # Retyping would move the document under another rule set.
            immutable("type", ctx.doc.type, ctx.old_doc.type)

        rules = self.rules.get(ctx.effective_type)
        if rules is None:
            self._reject_invalid_type(ctx)

        enforce(rules.authorize(ctx, self.config), ctx.principal)

        if ctx.is_delete:
            # Earlier revisions' routing stays authoritative for copies
            # already distributed.
            return _EMPTY_RESULT

        rules.validate(ctx, self.config)
        out = Declarations()
        rules.route(ctx, self.config, out)
        return out.build()

    def _reject_invalid_type(self, ctx: WriteContext) -> NoReturn:
        logger.warning(
            f"Invalid document type: {ctx.effective_type}",
            extra={"doc_id": ctx.doc.id, "operation": ctx.operation.value},
        )
        raise Forbidden(f"Invalid document type: {ctx.effective_type}")
