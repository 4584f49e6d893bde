"""
Access control for document writes.

This module decides whether the acting principal may perform a write:
- Principal model (name, roles, channel read access)
- Access primitives (require a user, a role, or channel read access)
- The either/or combinator used by ownership-or-delegate rules

Checks are plain callables that return an AccessDecision instead of
raising, so combinators can inspect a failure before deciding what to do.
The policy turns a final denial into Unauthorized.

Invariants:
    - Principals are immutable and resolved by the runtime per write
    - require_either evaluates the fallback only if the primary denies
    - A denial from require_either carries the fallback's reason
    - Checks have no side effects and cache nothing

How to change safely:
    - New primitives must return AccessDecision, never raise
    - Keep reason strings stable; clients display them verbatim
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from .errors import Unauthorized

logger = logging.getLogger(__name__)


def _no_channels(channel: str) -> bool:
    return False


@dataclass(frozen=True)
class Principal:
    """The authenticated actor attempting a write.

    Attributes:
        name: Stable identity (username) used in ownership comparisons
        roles: Roles held by the principal
        has_read_access: Query for whether the principal can read a channel
    """

    name: str | None
    roles: frozenset[str] = frozenset()
    has_read_access: Callable[[str], bool] = field(default=_no_channels, compare=False)

    @classmethod
    def with_channels(
        cls,
        name: str | None,
        roles: Iterable[str] = (),
        channels: Iterable[str] = (),
    ) -> Principal:
        """Build a principal whose read access is a fixed set of channels.

        Example:
            >>> p = Principal.with_channels("bob", channels=["task-list:alice:groceries"])
            >>> p.has_read_access("task-list:alice:groceries")
            True
        """
        readable = frozenset(channels)
        return cls(name=name, roles=frozenset(roles), has_read_access=readable.__contains__)

    def __str__(self) -> str:
        return self.name or "<anonymous>"


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check.

    Attributes:
        allowed: Whether the check passed
        requirement: What the check required, e.g. ``role:moderator``
        reason: Why access was denied (None when allowed)
    """

    allowed: bool
    requirement: str
    reason: str | None = None

    @classmethod
    def allow(cls, requirement: str) -> AccessDecision:
        return cls(allowed=True, requirement=requirement)

    @classmethod
    def deny(cls, requirement: str, reason: str) -> AccessDecision:
        return cls(allowed=False, requirement=requirement, reason=reason)


AccessCheck = Callable[[Principal], AccessDecision]


def require_principal(name: str | None) -> AccessCheck:
    """Require the acting principal to be the user ``name``."""

    def check(principal: Principal) -> AccessDecision:
        requirement = f"user:{name}"
        if name is not None and principal.name == name:
            return AccessDecision.allow(requirement)
        return AccessDecision.deny(requirement, "wrong user")

    return check


def require_role(role: str) -> AccessCheck:
    """Require the acting principal to hold ``role``."""

    def check(principal: Principal) -> AccessDecision:
        requirement = f"role:{role}"
        if role in principal.roles:
            return AccessDecision.allow(requirement)
        return AccessDecision.deny(requirement, "missing role")

    return check


def require_read_access(channel: str) -> AccessCheck:
    """Require the acting principal to have read access to ``channel``."""

    def check(principal: Principal) -> AccessDecision:
        requirement = f"channel:{channel}"
        if principal.has_read_access(channel):
            return AccessDecision.allow(requirement)
        return AccessDecision.deny(requirement, "missing channel access")

    return check


def require_either(primary: AccessCheck, fallback: AccessCheck) -> AccessCheck:
    """Pass if ``primary`` passes, otherwise defer entirely to ``fallback``.

    Example:
        >>> check = require_either(require_principal("alice"), require_role("moderator"))
        >>> check(Principal("bob", roles=frozenset({"moderator"}))).allowed
        True
    """

    def check(principal: Principal) -> AccessDecision:
        decision = primary(principal)
        if decision.allowed:
            return decision
        return fallback(principal)

    return check


def enforce(check: AccessCheck, principal: Principal) -> AccessDecision:
    """Run an access check and raise if it denies.

    Args:
        check: Access check to evaluate
        principal: The acting principal

    Returns:
        The allowing decision

    Raises:
        Unauthorized: If the check denies access
    """
    decision = check(principal)
    if not decision.allowed:
        logger.debug(
            "Access denied",
            extra={"actor": str(principal), "requirement": decision.requirement},
        )
        raise Unauthorized(
            f"{decision.reason}: requires {decision.requirement}",
            actor=principal.name,
            requirement=decision.requirement,
        )
    return decision
