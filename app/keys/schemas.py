"""
Pydantic schemas for the API keys module.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class CreateApiKeyRequest(BaseModel):
    """API key creation request."""

    name: str = Field(..., min_length=1, max_length=255)
    scopes: list[str] = Field(..., min_length=1)
    expires_in_days: Optional[int] = Field(None, ge=1, le=3650)


class CreatedApiKeyResponse(BaseModel):
    """A newly issued key. `key` is shown only once."""

    id: str
    key: str
    name: str
    prefix: str
    scopes: list[str]
    expires_at: Optional[str] = None
    created_at: Optional[str] = None


class RolledApiKeyResponse(CreatedApiKeyResponse):
    old_key_id: str
    old_key_revoked_at: str


class ApiKeyResponse(BaseModel):
    id: str
    name: str
    masked_key: str
    scopes: list[str]
    last_used_at: Optional[str] = None
    expires_at: Optional[str] = None
    created_at: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
