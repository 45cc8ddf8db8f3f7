"""
Pydantic schemas for the members module.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, EmailStr

MemberRole = Literal["admin", "member", "viewer"]


class AddMemberRequest(BaseModel):
    email: EmailStr
    role: MemberRole = "member"


class UpdateMemberRoleRequest(BaseModel):
    role: MemberRole


class MemberResponse(BaseModel):
    user_id: str
    email: str
    name: Optional[str] = None
    role: str
    created_at: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class InviteMemberRequest(BaseModel):
    email: EmailStr


class InviteResponse(BaseModel):
    """Outcome of an invitation.

    Existing users join directly, so `invite_link` and `expires_at` are null.
    """

    email: str
    invite_link: Optional[str] = None
    expires_at: Optional[str] = None
    message: str
