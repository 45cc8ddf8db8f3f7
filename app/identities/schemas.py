"""
Pydantic schemas for the identities module.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field


class AliasRequest(BaseModel):
    """A platform user to link to an identity."""

    platform_id: str
    provider_user_id: str = Field(..., min_length=1, max_length=500)
    provider_user_display: Optional[str] = Field(None, max_length=200)


class CreateIdentityRequest(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    metadata: Optional[dict[str, Any]] = None
    aliases: list[AliasRequest] = Field(..., min_length=1)


class UpdateIdentityRequest(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    metadata: Optional[dict[str, Any]] = None


class AliasResponse(BaseModel):
    id: str
    identity_id: str
    project_id: str
    platform_id: str
    platform: str
    provider_user_id: str
    provider_user_display: Optional[str] = None
    linked_at: Optional[str] = None
    link_method: str


class IdentityResponse(BaseModel):
    id: str
    project_id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    aliases: list[AliasResponse] = []


class SuccessResponse(BaseModel):
    success: bool
    message: str


class ReactionEventResponse(BaseModel):
    """One add/remove event from the reaction log."""

    platform_id: str
    provider_message_id: str
    provider_user_id: str
    user_display: Optional[str] = None
    emoji: str
    reaction_type: str
    received_at: str
