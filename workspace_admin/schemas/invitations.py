"""Invitation schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class InvitationCreateRequest(BaseModel):
    """Admin request to invite an email to a workspace."""

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = Field(None, max_length=320)
    workspace_id: str | None = Field(None, alias="workspaceId")
    role: str | None = None
    workspace_name: str | None = Field(None, alias="workspaceName")


class InvitationIntentRequest(BaseModel):
    """Deep-link parameters captured when an acceptance link is opened.

    Field names match the link's query parameters.
    """

    email: str | None = Field(None, max_length=320)
    workspace_id: str | None = None
    invite_role: str | None = None
    workspace_name: str | None = None
    token: str | None = None


class InvitationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    email: str
    role: str
    status: str
    invited_by: UUID | None
    created_at: datetime
    updated_at: datetime
    accepted_at: datetime | None
    expires_at: datetime | None


class InvitationListResponse(BaseModel):
    items: list[InvitationRead]
