"""Workspace access control.

Global role comes from user_roles (superadmin / user); workspace role comes from
workspace_members. A superadmin is treated as admin of every workspace without
holding membership rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from workspace_admin.models.enums import GlobalRole, WorkspaceRole
from workspace_admin.models.user_role import UserRole
from workspace_admin.models.workspace import Workspace
from workspace_admin.models.workspace_member import WorkspaceMember
from workspace_admin.services.errors import ForbiddenError


@dataclass(frozen=True)
class WorkspaceMembershipView:
    """Workspace as seen by one user (dashboard listing)."""

    workspace_id: UUID
    workspace_name: str
    role: str
    is_default: bool
    is_superadmin_workspace: bool


def get_global_role(db: Session, user_id: UUID) -> GlobalRole:
    """Return the user's global role; missing assignment means USER."""
    row = db.get(UserRole, user_id)
    if row is None:
        return GlobalRole.USER
    try:
        return GlobalRole(row.role)
    except ValueError:
        return GlobalRole.USER


def is_superadmin(db: Session, user_id: UUID) -> bool:
    return get_global_role(db, user_id) == GlobalRole.SUPERADMIN


def get_membership(db: Session, user_id: UUID, workspace_id: UUID) -> WorkspaceMember | None:
    return db.get(WorkspaceMember, {"workspace_id": workspace_id, "user_id": user_id})


def effective_role(db: Session, user_id: UUID, workspace_id: UUID) -> WorkspaceRole | None:
    """Role the user acts with in workspace_id, or None without access."""
    if is_superadmin(db, user_id):
        return WorkspaceRole.ADMIN
    membership = get_membership(db, user_id, workspace_id)
    if membership is None:
        return None
    return WorkspaceRole(membership.role)


def user_has_access_to_workspace(db: Session, user_id: UUID, workspace_id: UUID | None) -> bool:
    """Return True if user is a member (any role) or superadmin. None workspace → False."""
    if workspace_id is None:
        return False
    return effective_role(db, user_id, workspace_id) is not None


def can_manage_workspace(db: Session, user_id: UUID, workspace_id: UUID) -> bool:
    """Superadmins and workspace admins may invite, cancel and remove members."""
    return effective_role(db, user_id, workspace_id) == WorkspaceRole.ADMIN


def require_workspace_admin(db: Session, user_id: UUID, workspace_id: UUID) -> None:
    """Raise ForbiddenError unless user may manage workspace_id."""
    if not can_manage_workspace(db, user_id, workspace_id):
        raise ForbiddenError("Not authorized to manage this workspace")


def list_user_workspaces(db: Session, user_id: UUID) -> list[WorkspaceMembershipView]:
    """Workspaces visible to the user, ordered by name.

    Superadmins see every workspace with the admin role; everyone else sees the
    workspaces they hold a membership in.
    """
    if is_superadmin(db, user_id):
        rows = db.scalars(select(Workspace).order_by(Workspace.name)).all()
        return [
            WorkspaceMembershipView(
                workspace_id=ws.id,
                workspace_name=ws.name,
                role=WorkspaceRole.ADMIN,
                is_default=ws.is_default,
                is_superadmin_workspace=ws.is_superadmin_workspace,
            )
            for ws in rows
        ]
    pairs = db.execute(
        select(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(WorkspaceMember.user_id == user_id)
        .order_by(Workspace.name)
    ).all()
    return [
        WorkspaceMembershipView(
            workspace_id=ws.id,
            workspace_name=ws.name,
            role=role,
            is_default=ws.is_default,
            is_superadmin_workspace=ws.is_superadmin_workspace,
        )
        for ws, role in pairs
    ]
