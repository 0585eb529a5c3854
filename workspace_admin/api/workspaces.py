"""Workspace and membership API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from workspace_admin.api.deps import error_response, get_db, require_auth
from workspace_admin.models.user import User
from workspace_admin.schemas.workspaces import (
    MemberRead,
    MemberRoleUpdate,
    WorkspaceCreateRequest,
    WorkspaceMembershipRead,
    WorkspaceRead,
)
from workspace_admin.services import workspaces
from workspace_admin.services.errors import WorkspaceAdminError
from workspace_admin.services.validation import parse_uuid
from workspace_admin.services.workspace_access import list_user_workspaces

router = APIRouter()


@router.get("", response_model=list[WorkspaceMembershipRead])
def api_list_workspaces(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    """Workspaces visible to the signed-in user (every workspace for superadmins)."""
    return [
        WorkspaceMembershipRead.model_validate(view)
        for view in list_user_workspaces(db, current_user.id)
    ]


@router.post("", status_code=201, response_model=WorkspaceRead)
def api_create_workspace(
    body: WorkspaceCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    try:
        workspace = workspaces.create_workspace(
            db, current_user.id, body.name, is_default=body.is_default
        )
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return WorkspaceRead.model_validate(workspace)


@router.delete("/{workspace_id}")
def api_delete_workspace(
    workspace_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    """Delete a workspace. Default and superadmin workspaces are refused."""
    try:
        workspaces.delete_workspace(db, current_user.id, parse_uuid(workspace_id, "workspace_id"))
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return {"success": True, "error": None}


@router.get("/{workspace_id}/members", response_model=list[MemberRead])
def api_list_members(
    workspace_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    try:
        members = workspaces.list_members(
            db, current_user.id, parse_uuid(workspace_id, "workspace_id")
        )
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return [MemberRead.model_validate(m) for m in members]


@router.patch("/{workspace_id}/members/{user_id}")
def api_update_member_role(
    workspace_id: str,
    user_id: str,
    body: MemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    try:
        membership = workspaces.update_member_role(
            db,
            current_user.id,
            parse_uuid(workspace_id, "workspace_id"),
            parse_uuid(user_id, "user_id"),
            body.role,
        )
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return {"success": True, "error": None, "role": membership.role}


@router.delete("/{workspace_id}/members/{user_id}")
def api_remove_member(
    workspace_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    """Remove a member (workspace admin or superadmin)."""
    try:
        workspaces.remove_member(
            db,
            current_user.id,
            parse_uuid(workspace_id, "workspace_id"),
            parse_uuid(user_id, "user_id"),
        )
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return {"success": True, "error": None}
