"""SQLAlchemy models."""

from workspace_admin.models.enums import (
    GlobalRole,
    IntentSource,
    InvitationStatus,
    WorkspaceRole,
)
from workspace_admin.models.invitation import Invitation
from workspace_admin.models.pending_intent import PendingIntent
from workspace_admin.models.user import User
from workspace_admin.models.user_role import UserRole
from workspace_admin.models.workspace import Workspace
from workspace_admin.models.workspace_member import WorkspaceMember

__all__ = [
    "GlobalRole",
    "IntentSource",
    "Invitation",
    "InvitationStatus",
    "PendingIntent",
    "User",
    "UserRole",
    "Workspace",
    "WorkspaceMember",
    "WorkspaceRole",
]
