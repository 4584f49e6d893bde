"""
Configuration for the sync gateway.

Uses pydantic-settings for environment variable loading.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Gateway configuration loaded from environment."""

    host: str = Field(default="0.0.0.0", description="Gateway bind host")
    port: int = Field(default=4984, description="Gateway bind port")

    # Users holding the admin role; authentication happens upstream
    admin_users: list[str] = Field(
        default_factory=list,
        description="Usernames granted the admin role on every write",
    )

    actor_header: str = Field(default="X-Actor", description="Header carrying the authenticated user")

    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    model_config = {"env_prefix": "TASKSYNC_"}
