"""
Pydantic schemas for the projects module.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

Environment = Literal["production", "staging", "development", "custom"]


class CreateProjectRequest(BaseModel):
    """Project creation request. `id` defaults to a slug of `name`."""

    name: str = Field(..., min_length=1, max_length=255)
    id: Optional[str] = Field(None, pattern=r"^[a-z0-9][a-z0-9-]*$", max_length=100)
    description: Optional[str] = None
    environment: Environment = "development"


class UpdateProjectRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    environment: Optional[Environment] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    environment: str
    owner_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    active_api_keys: Optional[int] = None


class MessageResponse(BaseModel):
    message: str
