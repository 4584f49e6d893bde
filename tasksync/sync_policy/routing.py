"""
Routing and grant declarations.

An accepted revision declares which channels it belongs to, which users
may read which channels, and which users hold which roles. The runtime
applies these atomically with the revision.

Invariants:
    - Declarations keep first-declared order and contain no duplicates
    - A result is immutable once built
    - Deletes produce an empty result
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AccessGrant:
    """Read access to a channel for a user."""

    principal: str
    channel: str


@dataclass(frozen=True)
class RoleGrant:
    """A role assigned to a user."""

    principal: str
    role: str


@dataclass(frozen=True)
class SyncResult:
    """Distribution metadata for an accepted revision.

    Attributes:
        channels: Channels the revision is routed to
        access_grants: Channel read grants established by the revision
        role_grants: Role assignments established by the revision
    """

    channels: tuple[str, ...] = ()
    access_grants: tuple[AccessGrant, ...] = ()
    role_grants: tuple[RoleGrant, ...] = ()

    @property
    def empty(self) -> bool:
        return not (self.channels or self.access_grants or self.role_grants)

    def to_dict(self) -> dict[str, Any]:
        return {
            "channels": list(self.channels),
            "access": [
                {"principal": g.principal, "channel": g.channel} for g in self.access_grants
            ],
            "roles": [{"principal": g.principal, "role": g.role} for g in self.role_grants],
        }


@dataclass
class Declarations:
    """Mutable collector used by routing rules during one evaluation."""

    _channels: dict[str, None] = field(default_factory=dict)
    _access: dict[AccessGrant, None] = field(default_factory=dict)
    _roles: dict[RoleGrant, None] = field(default_factory=dict)

    def channel(self, *names: str) -> None:
        """Route the revision to the given channels."""
        for name in names:
            self._channels[name] = None

    def access(self, principal: str, *channels: str) -> None:
        """Grant ``principal`` read access to the given channels."""
        for channel in channels:
            self._access[AccessGrant(principal, channel)] = None

    def role(self, principal: str, role: str) -> None:
        """Assign ``role`` to ``principal``."""
        self._roles[RoleGrant(principal, role)] = None

    def build(self) -> SyncResult:
        return SyncResult(
            channels=tuple(self._channels),
            access_grants=tuple(self._access),
            role_grants=tuple(self._roles),
        )
