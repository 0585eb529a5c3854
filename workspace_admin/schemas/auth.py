"""Authentication and registration schemas.

Request fields are optional at the schema level so that missing values are
reported by the service layer as ``{success: false, error}`` with status 400.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Credentials plus any invitation parameters carried by the login page URL."""

    email: str | None = Field(None, max_length=320)
    password: str | None = None
    workspace_id: str | None = None
    invite_role: str | None = None
    workspace_name: str | None = None
    invite_token: str | None = None


class RegisterRequest(BaseModel):
    """Acceptance form submitted from an invitation deep link."""

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = Field(None, max_length=320)
    password: str | None = None
    workspace_id: str | None = Field(None, alias="workspaceId")
    role: str | None = None
    workspace_name: str | None = Field(None, alias="workspaceName")
    token: str | None = None


class ConfirmEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    user_id: str | None = Field(None, alias="userId")


class ResendConfirmationRequest(BaseModel):
    email: str | None = None


class TokenResponse(BaseModel):
    """Schema for JWT token response."""

    access_token: str
    token_type: str = "bearer"


class UserRead(BaseModel):
    """Schema for reading user info (response)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    email_confirmed_at: datetime | None
    global_role: str = "user"
