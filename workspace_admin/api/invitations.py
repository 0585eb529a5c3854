"""Invitation API routes: issue, resend, cancel, list, and deep-link intent capture."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from workspace_admin.api.deps import error_response, get_db, get_identity_provider, require_auth
from workspace_admin.models.enums import IntentSource
from workspace_admin.models.user import User
from workspace_admin.schemas.invitations import (
    InvitationCreateRequest,
    InvitationIntentRequest,
    InvitationListResponse,
    InvitationRead,
)
from workspace_admin.services import intents, invitation_issuer
from workspace_admin.services.email_service import Mailer, get_mailer
from workspace_admin.services.errors import WorkspaceAdminError
from workspace_admin.services.identity_provider import IdentityProvider
from workspace_admin.services.invitation_issuer import IssueResult
from workspace_admin.services.invitation_links import LinkParams
from workspace_admin.services.validation import normalize_email, parse_uuid

logger = logging.getLogger(__name__)

router = APIRouter()


def _issue_body(result: IssueResult) -> dict:
    """Success once the ledger write succeeds; mail failure is reported alongside."""
    return {
        "success": True,
        "message": result.message,
        "error": result.error,
        "emailSent": result.email_sent,
        "invitationId": str(result.invitation.id),
        "workspaceName": result.workspace_name,
        "existingUser": result.existing_user,
    }


@router.post("/create")
def api_create_invitation(
    body: InvitationCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
    mailer: Mailer = Depends(get_mailer),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Invite an email address to a workspace (workspace admin or superadmin)."""
    try:
        result = invitation_issuer.issue(
            db,
            current_user.id,
            body.email,
            body.workspace_id,
            body.role,
            body.workspace_name,
            mailer=mailer,
            provider=provider,
        )
    except WorkspaceAdminError as exc:
        logger.info("invitation_create_rejected: by=%s error=%s", current_user.id, exc)
        return error_response(exc)
    return _issue_body(result)


@router.post("/intent")
def api_record_intent(
    body: InvitationIntentRequest,
    db: Session = Depends(get_db),
):
    """Remember the invitation a visitor opened, so a later sign-in can honour it.

    Unauthenticated, so only a signed invitation token or a pending invitation
    for the same email and workspace is accepted. The intent grants nothing by
    itself.
    """
    link = LinkParams(
        email=body.email,
        workspace_id=body.workspace_id,
        role=body.invite_role,
        workspace_name=body.workspace_name,
        token=body.token,
    )
    try:
        email = normalize_email(body.email)
        resolved = intents.resolve_open(db, email, link)
        intents.record(db, email, resolved, IntentSource.INVITE_LINK)
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return {
        "success": True,
        "error": None,
        "workspaceId": str(resolved.workspace_id),
        "workspaceName": resolved.workspace_name,
        "role": resolved.role.value,
    }


@router.get("", response_model=InvitationListResponse)
def api_list_invitations(
    workspace_id: str | None = None,
    status: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    """List a workspace's invitations, optionally filtered by status."""
    try:
        ws_uuid = parse_uuid(workspace_id, "workspace_id")
        rows = invitation_issuer.list_invitations(db, current_user.id, ws_uuid, status)
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return InvitationListResponse(items=[InvitationRead.model_validate(r) for r in rows])


@router.post("/{invitation_id}/cancel")
def api_cancel_invitation(
    invitation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    try:
        invitation = invitation_issuer.cancel(
            db, current_user.id, parse_uuid(invitation_id, "invitation_id")
        )
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return {"success": True, "error": None, "status": invitation.status}


@router.post("/{invitation_id}/resend")
def api_resend_invitation(
    invitation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
    mailer: Mailer = Depends(get_mailer),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Re-send an invitation with a fresh link; reactivates cancelled or expired ones."""
    try:
        result = invitation_issuer.resend(
            db,
            current_user.id,
            parse_uuid(invitation_id, "invitation_id"),
            mailer=mailer,
            provider=provider,
        )
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return _issue_body(result)
