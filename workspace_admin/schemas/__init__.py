"""Pydantic schemas for request/response validation."""

from workspace_admin.schemas.auth import (
    ConfirmEmailRequest,
    LoginRequest,
    RegisterRequest,
    ResendConfirmationRequest,
    TokenResponse,
    UserRead,
)
from workspace_admin.schemas.invitations import (
    InvitationCreateRequest,
    InvitationIntentRequest,
    InvitationListResponse,
    InvitationRead,
)
from workspace_admin.schemas.workspaces import (
    MemberRead,
    MemberRoleUpdate,
    WorkspaceCreateRequest,
    WorkspaceMembershipRead,
    WorkspaceRead,
)

__all__ = [
    # Auth
    "LoginRequest",
    "RegisterRequest",
    "ConfirmEmailRequest",
    "ResendConfirmationRequest",
    "TokenResponse",
    "UserRead",
    # Invitations
    "InvitationCreateRequest",
    "InvitationIntentRequest",
    "InvitationRead",
    "InvitationListResponse",
    # Workspaces
    "WorkspaceCreateRequest",
    "WorkspaceRead",
    "WorkspaceMembershipRead",
    "MemberRead",
    "MemberRoleUpdate",
]
