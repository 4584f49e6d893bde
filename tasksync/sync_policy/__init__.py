"""
Task-list sync policy - per-write admission and routing for a replicated
document store.

On every proposed revision the replication runtime asks the policy three
questions and gets one answer:

    ┌──────────┐   ┌───────────┐   ┌──────────┐   ┌──────────────┐
    │ classify │──▶│ authorize │──▶│ validate │──▶│ route/grant  │
    └──────────┘   └───────────┘   └──────────┘   └──────────────┘
     create/update    user, role,    required,      channels,
     /delete, type    channel read   read-only,     access grants,
                                     id patterns    role grants

Any failing stage rejects the write with Unauthorized, ValidationError or
Forbidden; nothing is declared for a rejected write.

Invariants:
    - Evaluation is a pure function of (doc, old_doc, principal)
    - A document's type never changes
    - Ownership and containment fields are read-only after create
    - Deletes are authorized but never re-routed

How to change safely:
    - Add document types in rules.py via build_rules()
    - Keep error messages stable; clients show them verbatim

Version: see _version.py.
"""

from ._version import __version__
from .access import (
    AccessDecision,
    Principal,
    require_either,
    require_principal,
    require_read_access,
    require_role,
)
from .config import ObservabilityConfig, PolicyConfig
from .documents import Document, Operation, WriteContext, classify
from .errors import Forbidden, SyncPolicyError, Unauthorized, ValidationError
from .memory import DocumentNotFoundError, InMemoryDocumentStore
from .policy import SyncPolicy
from .routing import AccessGrant, RoleGrant, SyncResult
from .rules import RuleRegistry, TypeRules, build_rules

__all__ = [
    "__version__",
    # Policy
    "SyncPolicy",
    "SyncResult",
    "AccessGrant",
    "RoleGrant",
    # Documents
    "Document",
    "Operation",
    "WriteContext",
    "classify",
    # Access
    "Principal",
    "AccessDecision",
    "require_principal",
    "require_role",
    "require_read_access",
    "require_either",
    # Rules
    "RuleRegistry",
    "TypeRules",
    "build_rules",
    # Config
    "PolicyConfig",
    "ObservabilityConfig",
    # Store
    "InMemoryDocumentStore",
    "DocumentNotFoundError",
    # Errors
    "SyncPolicyError",
    "Unauthorized",
    "Forbidden",
    "ValidationError",
]
