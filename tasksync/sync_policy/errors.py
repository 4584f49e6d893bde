"""
Error types for the task-list sync policy.

This module defines all exception types raised while evaluating a write:
- SyncPolicyError: Base exception
- Unauthorized: An access-control requirement was not met
- Forbidden: The write is rejected outright (e.g. unknown document type)
- ValidationError: The proposed revision violates a document invariant

Invariants:
    - All errors inherit from SyncPolicyError
    - The message is the reason surfaced verbatim to the writing client
    - Errors are terminal; the policy never retries or downgrades them
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SyncPolicyError(Exception):
    """Base exception for all sync policy errors.

    Attributes:
        message: Human-readable rejection reason
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "SYNC_POLICY_ERROR"
        self.details = details or {}


class Unauthorized(SyncPolicyError):
    """The acting principal may not perform this write.

    Raised when:
    - The principal is not the required user
    - The principal lacks the required role
    - The principal has no read access to the required channel

    The caller may retry as a different, authorized principal.
    """

    def __init__(
        self,
        message: str,
        actor: Optional[str] = None,
        requirement: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="UNAUTHORIZED",
            details={"actor": actor, "requirement": requirement},
        )
        self.actor = actor
        self.requirement = requirement


class Forbidden(SyncPolicyError):
    """The write is rejected regardless of who submits it.

    Raised directly for documents of an unrecognized type.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code or "FORBIDDEN", details=details)


class ValidationError(Forbidden):
    """Proposed revision failed validation.

    Raised when:
    - A required field is missing or blank
    - A read-only field changed after create
    - An identifier does not follow its naming pattern

    The caller must submit a corrected proposal.
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name},
        )
        self.field_name = field_name
