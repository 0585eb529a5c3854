"""Invitation issuer — authorize, upsert the ledger, mail the acceptance link.

The ledger write happens before the mail send and is not rolled back when the
send fails: re-issuing is idempotent, so recovery is "resend", not a
compensating transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from workspace_admin.config import get_settings
from workspace_admin.models.enums import InvitationStatus
from workspace_admin.models.invitation import Invitation
from workspace_admin.models.workspace import Workspace
from workspace_admin.services import identity_resolver
from workspace_admin.services import invitation_ledger as ledger
from workspace_admin.services.email_service import Mailer, build_invitation_email
from workspace_admin.services.errors import (
    ConflictError,
    MailDeliveryError,
    NotFoundError,
    ValidationError,
)
from workspace_admin.services.identity_provider import IdentityProvider
from workspace_admin.services.invitation_links import build_acceptance_link, mint_invitation_token
from workspace_admin.services.validation import normalize_email, parse_uuid, parse_workspace_role
from workspace_admin.services.workspace_access import require_workspace_admin

logger = logging.getLogger(__name__)


@dataclass
class IssueResult:
    """Outcome of issue/resend. The invitation is persisted even if email_sent is False."""

    invitation: Invitation
    workspace_name: str
    link: str
    existing_user: bool
    email_sent: bool
    error: str | None = None

    @property
    def message(self) -> str:
        if self.email_sent:
            return f"Invitation sent to {self.invitation.email}"
        return (
            f"Invitation to {self.invitation.email} saved, but the email could not be sent. "
            "Use resend to try again."
        )


def issue(
    db: Session,
    inviter_id: UUID,
    email: str | None,
    workspace_id: UUID | str | None,
    role: str | None = None,
    workspace_name: str | None = None,
    *,
    mailer: Mailer,
    provider: IdentityProvider,
) -> IssueResult:
    """Invite email to workspace_id with role on behalf of inviter_id.

    Raises ValidationError / ForbiddenError / NotFoundError before any write.
    Mail delivery failure is reported in the result, not raised.
    """
    email = normalize_email(email)
    ws_uuid = parse_uuid(workspace_id, "workspace_id")
    role = parse_workspace_role(role)

    require_workspace_admin(db, inviter_id, ws_uuid)
    workspace = db.get(Workspace, ws_uuid)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    name = workspace.name or workspace_name or "Workspace"

    invitation = ledger.upsert(db, ws_uuid, email, role, inviter_id)

    existing_user = identity_resolver.exists(db, provider, email)
    token = mint_invitation_token(invitation, name)
    link = build_acceptance_link(email, ws_uuid, role.value, name, token)

    settings = get_settings()
    subject, html_body, text_body = build_invitation_email(
        workspace_name=name,
        role=role.value,
        link=link,
        existing_user=existing_user,
        expiry_days=settings.invitation_expiry_days,
        brand=settings.mail_brand_name,
    )
    try:
        mailer.send(email, subject, html_body, text_body)
    except MailDeliveryError as exc:
        logger.error(
            "invitation_email_failed: invitation_id=%s email=%s error=%s",
            invitation.id,
            email,
            exc,
        )
        return IssueResult(invitation, name, link, existing_user, email_sent=False, error=str(exc))

    logger.info(
        "invitation_issued: invitation_id=%s workspace_id=%s email=%s role=%s existing_user=%s",
        invitation.id,
        ws_uuid,
        email,
        role.value,
        existing_user,
    )
    return IssueResult(invitation, name, link, existing_user, email_sent=True)


def resend(
    db: Session,
    inviter_id: UUID,
    invitation_id: UUID,
    *,
    mailer: Mailer,
    provider: IdentityProvider,
) -> IssueResult:
    """Re-issue an existing invitation with a fresh link.

    Cancelled or expired invitations are reactivated first; accepted ones are
    a conflict.
    """
    invitation = ledger.get(db, invitation_id)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    require_workspace_admin(db, inviter_id, invitation.workspace_id)
    if invitation.status == InvitationStatus.ACCEPTED:
        raise ConflictError("Invitation has already been accepted")
    if invitation.status in (InvitationStatus.CANCELLED, InvitationStatus.EXPIRED):
        ledger.reactivate(db, invitation.id)
    return issue(
        db,
        inviter_id,
        invitation.email,
        invitation.workspace_id,
        invitation.role,
        mailer=mailer,
        provider=provider,
    )


def cancel(db: Session, actor_id: UUID, invitation_id: UUID) -> Invitation:
    """Withdraw an invitation on behalf of a workspace admin or superadmin."""
    invitation = ledger.get(db, invitation_id)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    require_workspace_admin(db, actor_id, invitation.workspace_id)
    return ledger.cancel(db, invitation_id)


def list_invitations(
    db: Session,
    actor_id: UUID,
    workspace_id: UUID,
    status: str | None = None,
) -> list[Invitation]:
    require_workspace_admin(db, actor_id, workspace_id)
    if status is not None:
        try:
            status = InvitationStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown invitation status: {status}") from None
    return ledger.list_for_workspace(db, workspace_id, status)
