"""
API keys module routes.

Key creation and rolling are rate limited per client address.
"""

from fastapi import APIRouter, Body, Depends, Request

from app.keys.schemas import (
    ApiKeyResponse,
    CreateApiKeyRequest,
    CreatedApiKeyResponse,
    MessageResponse,
    RolledApiKeyResponse,
)
from gatekit_core.auth.api_key_service import ApiKeyService
from gatekit_core.auth.dependencies import require_project_access
from gatekit_core.domain.auth import AuthContext, AuthType
from gatekit_core.infrastructure.rate_limiter import KEY_CREATE_LIMIT, KEY_ROLL_LIMIT, limiter

router = APIRouter(prefix="/api/v1/projects/{project}/keys", tags=["keys"])


def get_api_key_service() -> ApiKeyService:
    """Get API key service instance."""
    return ApiKeyService()


def _created_by(auth: AuthContext) -> str | None:
    if auth.auth_type == AuthType.JWT and auth.user is not None:
        return auth.user.user_id
    return None


@router.post("", response_model=CreatedApiKeyResponse, status_code=201)
@limiter.limit(KEY_CREATE_LIMIT)
def create_api_key(
    request: Request,
    project: str,
    body: CreateApiKeyRequest = Body(...),
    auth: AuthContext = Depends(require_project_access("keys.create")),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Create an API key. The raw key is returned in this response only."""
    return service.create_key(
        auth,
        project,
        name=body.name,
        scopes=body.scopes,
        expires_in_days=body.expires_in_days,
        created_by=_created_by(auth),
    )


@router.get("", response_model=list[ApiKeyResponse])
def list_api_keys(
    project: str,
    auth: AuthContext = Depends(require_project_access("keys.list")),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """List the project's unrevoked keys, masked."""
    return service.list_keys(auth, project)


@router.delete("/{key_id}", response_model=MessageResponse)
def revoke_api_key(
    project: str,
    key_id: str,
    auth: AuthContext = Depends(require_project_access("keys.revoke")),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return service.revoke_key(auth, project, key_id)


@router.post("/{key_id}/roll", response_model=RolledApiKeyResponse)
@limiter.limit(KEY_ROLL_LIMIT)
def roll_api_key(
    request: Request,
    project: str,
    key_id: str,
    auth: AuthContext = Depends(require_project_access("keys.roll")),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Issue a replacement key; the old one stays valid for the grace period."""
    return service.roll_key(auth, project, key_id, created_by=_created_by(auth))
