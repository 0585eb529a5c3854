"""Workspace lifecycle and member management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workspace_admin.models.invitation import Invitation
from workspace_admin.models.pending_intent import PendingIntent
from workspace_admin.models.user import User
from workspace_admin.models.workspace import Workspace
from workspace_admin.models.workspace_member import WorkspaceMember
from workspace_admin.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from workspace_admin.services.reconciler import ensure_membership
from workspace_admin.services.validation import parse_workspace_role
from workspace_admin.services.workspace_access import (
    get_membership,
    is_superadmin,
    require_workspace_admin,
    user_has_access_to_workspace,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberView:
    user_id: UUID
    email: str
    role: str
    joined_at: datetime | None


def create_workspace(
    db: Session,
    actor_id: UUID,
    name: str | None,
    *,
    is_default: bool = False,
    is_superadmin_workspace: bool = False,
) -> Workspace:
    """Create a workspace (superadmin only). The creator becomes its admin."""
    if not is_superadmin(db, actor_id):
        raise ForbiddenError("Only superadmins can create workspaces")
    return _create(db, name, actor_id, is_default, is_superadmin_workspace)


def bootstrap_workspace(
    db: Session,
    name: str | None,
    *,
    admin_id: UUID | None = None,
    is_default: bool = False,
    is_superadmin_workspace: bool = False,
) -> Workspace:
    """Create a workspace without an acting user (operator scripts)."""
    return _create(db, name, admin_id, is_default, is_superadmin_workspace)


def _create(
    db: Session,
    name: str | None,
    admin_id: UUID | None,
    is_default: bool,
    is_superadmin_workspace: bool,
) -> Workspace:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Workspace name is required")
    if is_superadmin_workspace and db.scalar(
        select(Workspace.id).where(Workspace.is_superadmin_workspace.is_(True))
    ):
        raise ConflictError("A superadmin workspace already exists")

    workspace = Workspace(
        name=name,
        is_default=is_default,
        is_superadmin_workspace=is_superadmin_workspace,
    )
    db.add(workspace)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A superadmin workspace already exists") from None
    db.refresh(workspace)
    if admin_id is not None:
        ensure_membership(db, workspace.id, admin_id, "admin")
    logger.info("workspace_created: workspace_id=%s name=%s", workspace.id, name)
    return workspace


def delete_workspace(db: Session, actor_id: UUID, workspace_id: UUID) -> None:
    """Delete a workspace with its memberships and invitations (superadmin only).

    Default and superadmin workspaces cannot be deleted.
    """
    if not is_superadmin(db, actor_id):
        raise ForbiddenError("Only superadmins can delete workspaces")
    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    if workspace.is_protected:
        raise ConflictError("Default and superadmin workspaces cannot be deleted")
    for model in (PendingIntent, Invitation, WorkspaceMember):
        db.execute(delete(model).where(model.workspace_id == workspace_id))
    db.delete(workspace)
    db.commit()
    logger.info("workspace_deleted: workspace_id=%s by=%s", workspace_id, actor_id)


def list_members(db: Session, actor_id: UUID, workspace_id: UUID) -> list[MemberView]:
    """Members of a workspace with their emails, oldest first. Any member may list."""
    if not user_has_access_to_workspace(db, actor_id, workspace_id):
        raise ForbiddenError("Not a member of this workspace")
    rows = db.execute(
        select(WorkspaceMember, User.email)
        .join(User, User.id == WorkspaceMember.user_id)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.created_at, User.email)
    ).all()
    return [MemberView(m.user_id, email, m.role, m.created_at) for m, email in rows]


def remove_member(db: Session, actor_id: UUID, workspace_id: UUID, user_id: UUID) -> None:
    """Remove a membership. Members are only ever removed explicitly."""
    require_workspace_admin(db, actor_id, workspace_id)
    result = db.execute(
        delete(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
    )
    db.commit()
    if not result.rowcount:
        raise NotFoundError("Member not found")
    logger.info(
        "member_removed: workspace_id=%s user_id=%s by=%s", workspace_id, user_id, actor_id
    )


def update_member_role(
    db: Session,
    actor_id: UUID,
    workspace_id: UUID,
    user_id: UUID,
    role: str | None,
) -> WorkspaceMember:
    require_workspace_admin(db, actor_id, workspace_id)
    new_role = parse_workspace_role(role)
    membership = get_membership(db, user_id, workspace_id)
    if membership is None:
        raise NotFoundError("Member not found")
    membership.role = new_role.value
    db.commit()
    logger.info(
        "member_role_updated: workspace_id=%s user_id=%s role=%s by=%s",
        workspace_id,
        user_id,
        new_role.value,
        actor_id,
    )
    return membership
