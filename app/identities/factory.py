"""
Factory functions for identities module dependencies.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.identities.protocols import IdentityRepository
from app.identities.services.identity_repository import PostgresIdentityRepository
from app.identities.services.identity_service import IdentityService
from app.messages.factory import get_message_repository
from gatekit_core.auth.dependencies import get_project_directory
from gatekit_core.auth.project_access import ProjectDirectory


@lru_cache()
def get_identity_repository() -> IdentityRepository:
    return PostgresIdentityRepository()


def get_identity_service(
    directory: ProjectDirectory = Depends(get_project_directory),
) -> IdentityService:
    """Get identity service instance."""
    return IdentityService(get_identity_repository(), directory, get_message_repository())
