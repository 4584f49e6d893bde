"""
FastAPI application factory for the sync gateway.

This module creates the app with:
- Logging setup from the policy's observability config
- In-memory document store lifecycle
- Policy error to HTTP status mapping
- Document and access routes

Usage:
    uvicorn gateway.app:app --port 4984
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import json_log_formatter
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tasksync.sync_policy import (
    DocumentNotFoundError,
    InMemoryDocumentStore,
    PolicyConfig,
    SyncPolicy,
    SyncPolicyError,
    Unauthorized,
)

from .config import Settings
from .routes import router

logger = logging.getLogger(__name__)


def setup_logging(config: PolicyConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Policy configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _status_for(error: SyncPolicyError) -> int:
    return 401 if isinstance(error, Unauthorized) else 403


def create_app(
    settings: Settings | None = None,
    store: InMemoryDocumentStore | None = None,
    configure_logging: bool = False,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Gateway settings (loaded from env if not provided)
        store: Document store to serve (a fresh one if not provided)
        configure_logging: Install the gateway's log handler on startup
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage document store lifecycle."""
        policy_config = PolicyConfig.from_env()
        if configure_logging:
            setup_logging(policy_config)
        policy_config.log_config()

        app.state.settings = settings
        app.state.store = store or InMemoryDocumentStore(SyncPolicy(policy_config))
        logger.info("Sync gateway started", extra={"admin_users": settings.admin_users})

        yield

        logger.info("Sync gateway stopped")

    app = FastAPI(
        title="Task-list Sync Gateway",
        description=(
            "Development host for the task-list sync policy. "
            "Every write is authorized, validated and routed before it is stored."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SyncPolicyError)
    async def policy_error_handler(request: Request, exc: SyncPolicyError) -> JSONResponse:
        return JSONResponse(
            status_code=_status_for(exc),
            content={"error": exc.message, "error_code": exc.code},
        )

    @app.exception_handler(DocumentNotFoundError)
    async def not_found_handler(request: Request, exc: DocumentNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"error": str(exc), "error_code": "NOT_FOUND"},
        )

    app.include_router(router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "tasksync-gateway"}

    return app


app = create_app(configure_logging=True)
