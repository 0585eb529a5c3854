"""Workspace and membership schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WorkspaceCreateRequest(BaseModel):
    name: str | None = Field(None, max_length=255)
    is_default: bool = False


class WorkspaceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    is_default: bool
    is_superadmin_workspace: bool
    created_at: datetime


class WorkspaceMembershipRead(BaseModel):
    """Workspace as listed on the signed-in user's dashboard."""

    model_config = ConfigDict(from_attributes=True)

    workspace_id: UUID
    workspace_name: str
    role: str
    is_default: bool
    is_superadmin_workspace: bool


class MemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email: str
    role: str
    joined_at: datetime | None


class MemberRoleUpdate(BaseModel):
    role: str | None = None
