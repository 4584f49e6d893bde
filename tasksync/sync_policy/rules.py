"""
Per-type rule sets for the task-list application.

Each document type maps to a TypeRules record bundling its three rules:
- authorize: which access check the write must pass
- validate: field and identifier invariants (not run on delete)
- route: channels, grants and roles declared (not run on delete)

The RuleRegistry maps type tags to these records. Tags with no entry are
rejected by the policy as invalid document types.

Document types:
    moderator        id "moderator:{username}", grants the moderator role
    task-list        id "{owner}:...", owned by owner
    task             belongs to task-list taskList.id owned by taskList.owner
    task-list:user   id "{taskList.id}:{username}", shares a list with a user

Invariants:
    - Registry is mutable while building, frozen before evaluation
    - Each type tag is registered at most once
    - Rules read ownership through WriteContext.subject

How to change safely:
    - Add a type by writing its three rules and registering them in
      build_rules(); nothing else dispatches on type
    - Fields validated as read-only must stay read-only forever, other
      rules (ids, channel names) rely on them
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from .access import (
    AccessCheck,
    require_either,
    require_principal,
    require_read_access,
    require_role,
)
from .config import PolicyConfig
from .documents import WriteContext
from .routing import Declarations
from .validation import exact_id, immutable, not_empty, required_prefix

logger = logging.getLogger(__name__)

MODERATOR = "moderator"
TASK_LIST = "task-list"
TASK = "task"
TASK_LIST_USER = "task-list:user"


class RulesFrozenError(Exception):
    """Raised when attempting to modify a frozen rule registry."""

    pass


class DuplicateRuleError(Exception):
    """Raised when attempting to register a type tag twice."""

    pass


AuthorizeRule = Callable[[WriteContext, PolicyConfig], AccessCheck]
ValidateRule = Callable[[WriteContext, PolicyConfig], None]
RouteRule = Callable[[WriteContext, PolicyConfig, Declarations], None]


@dataclass(frozen=True)
class TypeRules:
    """Rule set for one document type.

    Attributes:
        type_name: Type tag the rules apply to
        authorize: Builds the access check for a write
        validate: Raises ValidationError if the revision is invalid
        route: Declares channels, grants and roles for the revision
    """

    type_name: str
    authorize: AuthorizeRule
    validate: ValidateRule
    route: RouteRule


class RuleRegistry:
    """Maps document type tags to their rule sets.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Lookups after freeze are lock-free

    Example:
        >>> registry = RuleRegistry()
        >>> registry.register(TypeRules("note", authorize, validate, route))
        >>> registry.freeze()
        >>> registry.get("note").type_name
        'note'
    """

    def __init__(self) -> None:
        self._rules: dict[str, TypeRules] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, rules: TypeRules) -> None:
        """Register the rule set for a type.

        Raises:
            RulesFrozenError: If registry is frozen
            DuplicateRuleError: If the type tag is already registered
        """
        with self._lock:
            if self._frozen:
                raise RulesFrozenError(
                    f"Cannot register rules for '{rules.type_name}': registry is frozen"
                )
            if rules.type_name in self._rules:
                raise DuplicateRuleError(f"Rules for '{rules.type_name}' already registered")
            self._rules[rules.type_name] = rules
            logger.debug(f"Registered rules for document type: {rules.type_name}")

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    def get(self, type_name: object) -> TypeRules | None:
        """Look up rules by type tag; None for unknown or non-string tags."""
        if not isinstance(type_name, str):
            return None
        return self._rules.get(type_name)

    def __contains__(self, type_name: object) -> bool:
        return self.get(type_name) is not None

    def __iter__(self) -> Iterator[TypeRules]:
        return iter(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)


# =============================================================================
# moderator
# =============================================================================


def _authorize_moderator(ctx: WriteContext, config: PolicyConfig) -> AccessCheck:
    # Only admins add or remove moderators.
    return require_role(config.admin_role)


def _validate_moderator(ctx: WriteContext, config: PolicyConfig) -> None:
    username = ctx.doc.get("username")
    not_empty("username", username)

    if ctx.is_create:
        exact_id(ctx.doc.id, f"moderator:{username}", "moderator:{username}")
    else:
        immutable("username", username, ctx.old_doc.get("username"))


def _route_moderator(ctx: WriteContext, config: PolicyConfig, out: Declarations) -> None:
    out.role(ctx.doc.get("username"), config.moderator_role)


# =============================================================================
# task-list
# =============================================================================


def _authorize_task_list(ctx: WriteContext, config: PolicyConfig) -> AccessCheck:
    owner = ctx.subject.get("owner")
    if ctx.is_create:
        # Users only create task-lists for themselves.
        return require_principal(owner)
    return require_either(require_principal(owner), require_role(config.moderator_role))


def _validate_task_list(ctx: WriteContext, config: PolicyConfig) -> None:
    owner = ctx.doc.get("owner")
    not_empty("name", ctx.doc.get("name"))
    not_empty("owner", owner)

    if ctx.is_create:
        required_prefix("_id", ctx.doc.id, "owner", f"{owner}:")
    else:
        immutable("owner", owner, ctx.old_doc.get("owner"))


def _route_task_list(ctx: WriteContext, config: PolicyConfig, out: Declarations) -> None:
    channel = f"task-list:{ctx.doc.id}"
    out.channel(channel, config.moderators_channel)
    # Owner reads the list, its tasks and its members.
    out.access(ctx.doc.get("owner"), channel, f"{channel}:users")


# =============================================================================
# task
# =============================================================================


def _authorize_task(ctx: WriteContext, config: PolicyConfig) -> AccessCheck:
    subject = ctx.subject
    return require_either(
        require_principal(subject.get("taskList.owner")),
        require_read_access(f"task-list:{subject.get('taskList.id')}"),
    )


def _validate_task_list_ref(ctx: WriteContext) -> None:
    list_id = ctx.doc.get("taskList.id")
    list_owner = ctx.doc.get("taskList.owner")

    if ctx.is_create:
        # Read-only after create, so checking once is enough.
        required_prefix("taskList.id", list_id, "taskList.owner", f"{list_owner}:")
    else:
        immutable("taskList.id", list_id, ctx.old_doc.get("taskList.id"))
        immutable("taskList.owner", list_owner, ctx.old_doc.get("taskList.owner"))


def _validate_task(ctx: WriteContext, config: PolicyConfig) -> None:
    not_empty("taskList.id", ctx.doc.get("taskList.id"))
    not_empty("taskList.owner", ctx.doc.get("taskList.owner"))
    not_empty("task", ctx.doc.get("task"))
    _validate_task_list_ref(ctx)


def _route_task(ctx: WriteContext, config: PolicyConfig, out: Declarations) -> None:
    out.channel(f"task-list:{ctx.doc.get('taskList.id')}", config.moderators_channel)


# =============================================================================
# task-list:user
# =============================================================================


def _authorize_task_list_user(ctx: WriteContext, config: PolicyConfig) -> AccessCheck:
    return require_either(
        require_principal(ctx.subject.get("taskList.owner")),
        require_role(config.moderator_role),
    )


def _validate_task_list_user(ctx: WriteContext, config: PolicyConfig) -> None:
    list_id = ctx.doc.get("taskList.id")
    username = ctx.doc.get("username")
    not_empty("taskList.id", list_id)
    not_empty("taskList.owner", ctx.doc.get("taskList.owner"))
    not_empty("username", username)

    if ctx.is_create:
        # One membership document per user per list.
        exact_id(ctx.doc.id, f"{list_id}:{username}", "{taskList.id}:{username}")
    _validate_task_list_ref(ctx)


def _route_task_list_user(ctx: WriteContext, config: PolicyConfig, out: Declarations) -> None:
    channel = f"task-list:{ctx.doc.get('taskList.id')}"
    out.channel(f"{channel}:users", config.moderators_channel)
    out.access(ctx.doc.get("username"), channel)


def build_rules() -> RuleRegistry:
    """Build the frozen rule registry for the task-list application."""
    registry = RuleRegistry()
    registry.register(TypeRules(MODERATOR, _authorize_moderator, _validate_moderator, _route_moderator))
    registry.register(TypeRules(TASK_LIST, _authorize_task_list, _validate_task_list, _route_task_list))
    registry.register(TypeRules(TASK, _authorize_task, _validate_task, _route_task))
    registry.register(
        TypeRules(
            TASK_LIST_USER,
            _authorize_task_list_user,
            _validate_task_list_user,
            _route_task_list_user,
        )
    )
    registry.freeze()
    return registry
