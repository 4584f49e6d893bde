"""
API routes for the sync gateway.

Every write is submitted on behalf of the user named in the actor header
and goes through the sync policy. Policy rejections are turned into HTTP
errors by the app's exception handlers.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from tasksync.sync_policy import DocumentNotFoundError, InMemoryDocumentStore

from .config import Settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sync Gateway"])


# --- Request/Response Models ---


class EvaluateRequest(BaseModel):
    """Dry-run a proposed revision."""

    doc: dict[str, Any] = Field(..., description="Proposed revision body, including _id")


class SyncResponse(BaseModel):
    """Declarations produced by an accepted write."""

    ok: bool = True
    id: str | None = None
    channels: list[str] = Field(default_factory=list)
    access: list[dict[str, str]] = Field(default_factory=list)
    roles: list[dict[str, str]] = Field(default_factory=list)


class UserAccessResponse(BaseModel):
    """Channels and roles a user currently holds."""

    username: str
    channels: list[str]
    roles: list[str]


# --- Dependencies ---


def get_store(request: Request) -> InMemoryDocumentStore:
    """Get document store from app state."""
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    """Get settings from app state."""
    return request.app.state.settings


def get_actor(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """Get the authenticated user from the actor header."""
    actor = request.headers.get(settings.actor_header)
    if not actor:
        raise HTTPException(
            status_code=401,
            detail=f"{settings.actor_header} header is required",
        )
    return actor


def get_roles(
    request: Request,
    actor: str = Depends(get_actor),
    settings: Settings = Depends(get_settings),
) -> tuple[str, ...]:
    """Roles the actor holds outside of moderator documents."""
    if actor in settings.admin_users:
        return (request.app.state.store.policy.config.admin_role,)
    return ()


# --- Document Endpoints ---


@router.put("/docs/{doc_id}", response_model=SyncResponse)
async def put_document(
    doc_id: str,
    doc: dict[str, Any] = Body(...),
    actor: str = Depends(get_actor),
    roles: tuple[str, ...] = Depends(get_roles),
    store: InMemoryDocumentStore = Depends(get_store),
):
    """Create or update a document."""
    for key in ("_id", "id"):
        body_id = doc.get(key)
        if body_id is not None and body_id != doc_id:
            raise HTTPException(status_code=400, detail=f"{key} in body does not match path")

    # The path id is authoritative; store it under _id only.
    body = {k: v for k, v in doc.items() if k != "id"}
    result = store.put({**body, "_id": doc_id}, actor=actor, roles=roles)
    return SyncResponse(id=doc_id, **result.to_dict())


@router.delete("/docs/{doc_id}", response_model=SyncResponse)
async def delete_document(
    doc_id: str,
    actor: str = Depends(get_actor),
    roles: tuple[str, ...] = Depends(get_roles),
    store: InMemoryDocumentStore = Depends(get_store),
):
    """Delete a document by writing a tombstone."""
    result = store.delete(doc_id, actor=actor, roles=roles)
    return SyncResponse(id=doc_id, **result.to_dict())


@router.get("/docs/{doc_id}")
async def get_document(
    doc_id: str,
    store: InMemoryDocumentStore = Depends(get_store),
) -> dict[str, Any]:
    """Get the live revision of a document."""
    doc = store.get(doc_id)
    if doc is None:
        raise DocumentNotFoundError(doc_id)
    return doc


@router.post("/evaluate", response_model=SyncResponse)
async def evaluate_document(
    request: EvaluateRequest,
    actor: str = Depends(get_actor),
    roles: tuple[str, ...] = Depends(get_roles),
    store: InMemoryDocumentStore = Depends(get_store),
):
    """Evaluate a proposed revision without storing it."""
    result = store.evaluate(request.doc, actor=actor, roles=roles)
    doc_id = request.doc.get("_id")
    return SyncResponse(id=doc_id if isinstance(doc_id, str) else None, **result.to_dict())


# --- Access Endpoints ---


@router.get("/users/{username}/access", response_model=UserAccessResponse)
async def get_user_access(
    username: str,
    store: InMemoryDocumentStore = Depends(get_store),
):
    """Get the channels and assigned roles of a user."""
    return UserAccessResponse(
        username=username,
        channels=sorted(store.channels_for(username)),
        roles=sorted(store.roles_for(username)),
    )
