"""
Members module routes.

Any member may list the project's members; changing membership needs the
admin role. Members may invite new people by email.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from app.members.schemas import (
    AddMemberRequest,
    InviteMemberRequest,
    InviteResponse,
    MemberResponse,
    MessageResponse,
    UpdateMemberRoleRequest,
)
from app.members.services.member_service import MemberService
from gatekit_core.auth.dependencies import get_project_directory, require_project_access
from gatekit_core.auth.project_access import ProjectDirectory
from gatekit_core.domain.auth import AuthContext, ProjectRole

router = APIRouter(prefix="/api/v1/projects/{project}/members", tags=["members"])


def get_member_service(
    directory: ProjectDirectory = Depends(get_project_directory),
) -> MemberService:
    """Get member service instance."""
    return MemberService(directory)


@router.get("", response_model=list[MemberResponse])
def list_members(
    project: str,
    auth: AuthContext = Depends(require_project_access("members.list", ProjectRole.VIEWER)),
    service: MemberService = Depends(get_member_service),
):
    return service.list_members(auth, project)


@router.post("", response_model=MemberResponse, status_code=201)
def add_member(
    project: str,
    body: AddMemberRequest = Body(...),
    auth: AuthContext = Depends(require_project_access("members.add", ProjectRole.ADMIN)),
    service: MemberService = Depends(get_member_service),
):
    """Add an existing user to the project by email, or update their role."""
    return service.add_member(auth, project, body.email, body.role)


@router.patch("/{user_id}", response_model=MemberResponse)
def update_member_role(
    project: str,
    user_id: str,
    body: UpdateMemberRoleRequest = Body(...),
    auth: AuthContext = Depends(require_project_access("members.update", ProjectRole.ADMIN)),
    service: MemberService = Depends(get_member_service),
):
    return service.update_member_role(auth, project, user_id, body.role)


@router.delete("/{user_id}", response_model=MessageResponse)
def remove_member(
    project: str,
    user_id: str,
    auth: AuthContext = Depends(require_project_access("members.remove", ProjectRole.ADMIN)),
    service: MemberService = Depends(get_member_service),
):
    return service.remove_member(auth, project, user_id)


@router.post("/invite", response_model=InviteResponse, status_code=201)
def invite_member(
    project: str,
    body: InviteMemberRequest = Body(...),
    auth: AuthContext = Depends(require_project_access("members.invite", ProjectRole.MEMBER)),
    service: MemberService = Depends(get_member_service),
):
    return service.invite(auth, project, body.email)
