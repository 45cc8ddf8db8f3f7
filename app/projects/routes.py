"""
Projects module routes.

Project creation is reserved for human users; reads and updates go through
the project access guard.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from app.projects.schemas import (
    CreateProjectRequest,
    MessageResponse,
    ProjectResponse,
    UpdateProjectRequest,
)
from app.projects.services.project_service import ProjectService
from gatekit_core.auth.dependencies import authenticate, require_project_access
from gatekit_core.domain.auth import AuthContext, ProjectRole

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


def get_project_service() -> ProjectService:
    """Get project service instance."""
    return ProjectService()


@router.post("", response_model=ProjectResponse, status_code=201)
def create_project(
    body: CreateProjectRequest = Body(...),
    auth: AuthContext = Depends(authenticate("projects.create")),
    service: ProjectService = Depends(get_project_service),
):
    """Create a project owned by the authenticated user."""
    return service.create(
        auth,
        name=body.name,
        project_id=body.id,
        environment=body.environment,
        description=body.description,
    )


@router.get("", response_model=list[ProjectResponse])
def list_projects(
    auth: AuthContext = Depends(authenticate("projects.list")),
    service: ProjectService = Depends(get_project_service),
):
    """List the projects visible to the caller."""
    return service.list_projects(auth)


@router.get("/{project}", response_model=ProjectResponse)
def get_project(
    project: str,
    auth: AuthContext = Depends(require_project_access("projects.get")),
    service: ProjectService = Depends(get_project_service),
):
    return service.get(auth, project)


@router.patch("/{project}", response_model=ProjectResponse)
def update_project(
    project: str,
    body: UpdateProjectRequest = Body(...),
    auth: AuthContext = Depends(require_project_access("projects.update", ProjectRole.ADMIN)),
    service: ProjectService = Depends(get_project_service),
):
    """Update a project. Users need at least the admin role."""
    return service.update(auth, project, body.model_dump(exclude_unset=True))


@router.delete("/{project}", response_model=MessageResponse)
def delete_project(
    project: str,
    auth: AuthContext = Depends(authenticate("projects.delete")),
    service: ProjectService = Depends(get_project_service),
):
    """Delete a project. Only its owner or a global admin may do this."""
    return service.delete(auth, project)
