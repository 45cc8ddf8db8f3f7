"""
Identities module routes.

Cross-platform identities link a project's platform users together. The
lookup route is declared before `/{identity_id}` so it is matched first.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query

from app.identities.factory import get_identity_service
from app.identities.schemas import (
    AliasRequest,
    AliasResponse,
    CreateIdentityRequest,
    IdentityResponse,
    ReactionEventResponse,
    SuccessResponse,
    UpdateIdentityRequest,
)
from app.identities.services.identity_service import IdentityService
from app.messages.schemas import ReceivedMessageResponse
from gatekit_core.auth.dependencies import require_project_access
from gatekit_core.domain.auth import AuthContext

router = APIRouter(prefix="/api/v1/projects/{project}/identities", tags=["identities"])


@router.post("", response_model=IdentityResponse, status_code=201)
def create_identity(
    project: str,
    body: CreateIdentityRequest = Body(...),
    auth: AuthContext = Depends(require_project_access("identities.create")),
    service: IdentityService = Depends(get_identity_service),
):
    """Create an identity linking one or more platform users."""
    return service.create(
        auth,
        project,
        aliases=[alias.model_dump() for alias in body.aliases],
        display_name=body.display_name,
        email=body.email,
        metadata=body.metadata,
    )


@router.get("", response_model=list[IdentityResponse])
def list_identities(
    project: str,
    auth: AuthContext = Depends(require_project_access("identities.list")),
    service: IdentityService = Depends(get_identity_service),
):
    return service.list_identities(auth, project)


@router.get("/lookup", response_model=IdentityResponse)
def lookup_identity(
    project: str,
    platform_id: str = Query(...),
    provider_user_id: str = Query(...),
    auth: AuthContext = Depends(require_project_access("identities.lookup")),
    service: IdentityService = Depends(get_identity_service),
):
    """Find the identity of a platform user."""
    return service.lookup(auth, project, platform_id, provider_user_id)


@router.get("/{identity_id}", response_model=IdentityResponse)
def get_identity(
    project: str,
    identity_id: str,
    auth: AuthContext = Depends(require_project_access("identities.get")),
    service: IdentityService = Depends(get_identity_service),
):
    return service.get(auth, project, identity_id)


@router.patch("/{identity_id}", response_model=IdentityResponse)
def update_identity(
    project: str,
    identity_id: str,
    body: UpdateIdentityRequest = Body(...),
    auth: AuthContext = Depends(require_project_access("identities.update")),
    service: IdentityService = Depends(get_identity_service),
):
    return service.update(auth, project, identity_id, body.model_dump(exclude_unset=True))


@router.delete("/{identity_id}", response_model=SuccessResponse)
def delete_identity(
    project: str,
    identity_id: str,
    auth: AuthContext = Depends(require_project_access("identities.delete")),
    service: IdentityService = Depends(get_identity_service),
):
    return service.delete(auth, project, identity_id)


@router.post("/{identity_id}/aliases", response_model=AliasResponse, status_code=201)
def add_alias(
    project: str,
    identity_id: str,
    body: AliasRequest = Body(...),
    auth: AuthContext = Depends(require_project_access("identities.add_alias")),
    service: IdentityService = Depends(get_identity_service),
):
    """Link another platform user to the identity."""
    return service.add_alias(
        auth,
        project,
        identity_id,
        body.platform_id,
        body.provider_user_id,
        body.provider_user_display,
    )


@router.delete("/{identity_id}/aliases/{alias_id}", response_model=SuccessResponse)
def remove_alias(
    project: str,
    identity_id: str,
    alias_id: str,
    auth: AuthContext = Depends(require_project_access("identities.remove_alias")),
    service: IdentityService = Depends(get_identity_service),
):
    return service.remove_alias(auth, project, identity_id, alias_id)


@router.get("/{identity_id}/messages", response_model=list[ReceivedMessageResponse])
def list_identity_messages(
    project: str,
    identity_id: str,
    auth: AuthContext = Depends(require_project_access("identities.messages")),
    service: IdentityService = Depends(get_identity_service),
):
    """Messages from every platform account linked to the identity."""
    return service.list_messages(auth, project, identity_id)


@router.get("/{identity_id}/reactions", response_model=list[ReactionEventResponse])
def list_identity_reactions(
    project: str,
    identity_id: str,
    active: bool = Query(False, description="Only reactions that are still in place"),
    auth: AuthContext = Depends(require_project_access("identities.reactions")),
    service: IdentityService = Depends(get_identity_service),
):
    return service.list_reactions(auth, project, identity_id, active_only=active)
