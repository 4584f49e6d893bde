"""
Configuration for the sync policy.

All configuration is done via environment variables. This module provides
typed configuration classes with validation.

Invariants:
    - All settings have defaults matching the task-list application
    - Role and channel names are never empty
    - The admin role and the moderator role are distinct

How to change safely:
    - Renaming a role or channel changes who can write and who receives
      which documents; migrate existing role and channel data first
    - Add new settings with defaults that keep current behavior
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass(frozen=True)
class PolicyConfig:
    """Names the policy uses for roles and shared channels.

    Attributes:
        admin_role: Role allowed to add and remove moderators
        moderator_role: Role granted by moderator documents
        moderators_channel: Channel every task-list document is routed to
        observability: Logging configuration
    """

    admin_role: str = "admin"
    moderator_role: str = "moderator"
    moderators_channel: str = "moderators"
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> PolicyConfig:
        """Load configuration from environment variables.

        Raises:
            ValueError: If the resulting configuration is invalid.
        """
        config = cls(
            admin_role=os.getenv("SYNC_ADMIN_ROLE", "admin"),
            moderator_role=os.getenv("SYNC_MODERATOR_ROLE", "moderator"),
            moderators_channel=os.getenv("SYNC_MODERATORS_CHANNEL", "moderators"),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.admin_role.strip():
            raise ValueError("SYNC_ADMIN_ROLE must not be empty")
        if not self.moderator_role.strip():
            raise ValueError("SYNC_MODERATOR_ROLE must not be empty")
        if not self.moderators_channel.strip():
            raise ValueError("SYNC_MODERATORS_CHANNEL must not be empty")
        if self.admin_role == self.moderator_role:
            raise ValueError(
                f"SYNC_ADMIN_ROLE and SYNC_MODERATOR_ROLE must differ (both '{self.admin_role}')"
            )
        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Sync policy configuration loaded",
            extra={
                "admin_role": self.admin_role,
                "moderator_role": self.moderator_role,
                "moderators_channel": self.moderators_channel,
                "log_level": self.observability.log_level,
            },
        )
