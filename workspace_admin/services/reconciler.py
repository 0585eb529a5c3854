"""Confirmation reconciler — turns a confirmed identity's pending invitation into a membership.

Two independent triggers drive the same operation: the email-confirmation
callback and the login sweep. Either may fire first, and either may fire more
than once. Membership insert is ON CONFLICT DO NOTHING on the composite key
and the ledger transition is conditional on status = pending, so any number of
invocations converge on one membership and one accepted ledger row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from workspace_admin.models.workspace_member import WorkspaceMember
from workspace_admin.services import intents
from workspace_admin.services import invitation_ledger as ledger
from workspace_admin.services.errors import ForbiddenError, NotFoundError
from workspace_admin.services.identity_provider import IdentityProvider
from workspace_admin.services.validation import normalize_email

logger = logging.getLogger(__name__)


class ReconcileOutcome(StrEnum):
    """Terminal and informational outcomes. None of these is an error."""

    RECONCILED = "reconciled"
    NOT_YET_CONFIRMED = "not_yet_confirmed"
    NO_PENDING_INVITATION = "no_pending_invitation"


@dataclass
class ReconciledMembership:
    workspace_id: UUID
    role: str
    created: bool


@dataclass
class ReconcileResult:
    outcome: ReconcileOutcome
    user_id: UUID
    email: str
    memberships: list[ReconciledMembership] = field(default_factory=list)

    @property
    def terminal(self) -> bool:
        """False only while confirmation is outstanding (caller retries later)."""
        return self.outcome != ReconcileOutcome.NOT_YET_CONFIRMED


def ensure_membership(db: Session, workspace_id: UUID, user_id: UUID, role: str) -> bool:
    """Insert membership unless (workspace_id, user_id) exists. Returns True if inserted.

    An existing membership keeps its role; the conflict is benign.
    """
    insert = ledger.dialect_insert(db)
    stmt = (
        insert(WorkspaceMember)
        .values(
            workspace_id=workspace_id,
            user_id=user_id,
            role=str(role),
            created_at=datetime.now(UTC),
        )
        .on_conflict_do_nothing(index_elements=["workspace_id", "user_id"])
    )
    result = db.execute(stmt)
    db.commit()
    created = result.rowcount == 1
    if created:
        logger.info(
            "membership_created: workspace_id=%s user_id=%s role=%s",
            workspace_id,
            user_id,
            role,
        )
    else:
        logger.info(
            "membership_exists: workspace_id=%s user_id=%s (conflict treated as success)",
            workspace_id,
            user_id,
        )
    return created


def reconcile(
    db: Session,
    user_id: UUID,
    email: str | None,
    workspace_id: UUID | None = None,
    *,
    provider: IdentityProvider,
) -> ReconcileResult:
    """Create memberships for every pending invitation of a confirmed identity.

    workspace_id restricts reconciliation to one invitation (login sweep).
    email, when given, must be the identity's own address. The ledger's role
    is authoritative.
    """
    identity = provider.get_identity(user_id)
    if identity is None:
        raise NotFoundError("User not found")
    if email is not None and normalize_email(email) != identity.email:
        raise ForbiddenError("Email does not belong to this user")

    if not identity.email_confirmed:
        logger.info("reconcile_deferred: user_id=%s email not confirmed", user_id)
        return ReconcileResult(ReconcileOutcome.NOT_YET_CONFIRMED, user_id, identity.email)

    pending = ledger.get_pending(db, identity.email, workspace_id)
    if not pending:
        logger.info(
            "reconcile_noop: user_id=%s workspace_id=%s no pending invitation",
            user_id,
            workspace_id,
        )
        return ReconcileResult(ReconcileOutcome.NO_PENDING_INVITATION, user_id, identity.email)

    result = ReconcileResult(ReconcileOutcome.RECONCILED, user_id, identity.email)
    for invitation in pending:
        target_ws, role = invitation.workspace_id, invitation.role
        created = ensure_membership(db, target_ws, user_id, role)
        ledger.mark_accepted(db, target_ws, identity.email)
        result.memberships.append(ReconciledMembership(target_ws, role, created))

    try:
        provider.update_metadata(user_id, {"invitation_accepted": True})
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("metadata_update_failed: user_id=%s error=%s", user_id, exc)
    return result


def complete_confirmation(
    db: Session,
    user_id: UUID,
    email: str | None,
    *,
    provider: IdentityProvider,
) -> ReconcileResult:
    """Confirmation callback: reconcile, then clear carried intent once terminal."""
    result = reconcile(db, user_id, email, provider=provider)
    if result.terminal:
        intents.consume_for_email(db, result.email)
    return result


def confirm_and_reconcile(
    db: Session,
    token: str,
    *,
    provider: IdentityProvider,
) -> ReconcileResult:
    """Confirmation-link target: confirm the address, then reconcile immediately."""
    identity = provider.confirm_email(token)
    return complete_confirmation(db, identity.user_id, identity.email, provider=provider)
