"""Server-side pending workspace intent.

An identity cannot be created together with its membership, so the target
workspace travels from the acceptance step to reconciliation in a
``pending_intents`` row keyed by email. Rows are consumed once reconciliation
reaches a terminal outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workspace_admin.models.enums import IntentSource, WorkspaceRole
from workspace_admin.models.pending_intent import PendingIntent
from workspace_admin.models.workspace import Workspace
from workspace_admin.services import invitation_ledger as ledger
from workspace_admin.services.errors import InvalidInvitationTokenError, ValidationError
from workspace_admin.services.invitation_links import LinkParams, decode_invitation_token
from workspace_admin.services.validation import (
    normalize_email,
    parse_uuid,
    parse_workspace_role,
)

logger = logging.getLogger(__name__)

# Identity metadata keys mirroring the intent (cleared once reconciled).
INTENT_METADATA_KEYS = ("workspace_id", "invite_role", "workspace_name", "invitation_accepted")


@dataclass(frozen=True)
class ResolvedIntent:
    """Validated target of an invitation acceptance."""

    workspace_id: UUID
    role: WorkspaceRole
    workspace_name: str | None
    token_id: str | None = None

    def as_metadata(self) -> dict:
        return {
            "workspace_id": str(self.workspace_id),
            "invite_role": self.role.value,
            "workspace_name": self.workspace_name,
            "invitation_accepted": False,
        }


def _find_by_token(db: Session, token_id: str) -> PendingIntent | None:
    return db.scalar(
        select(PendingIntent)
        .where(PendingIntent.token_id == token_id)
        .execution_options(populate_existing=True)
    )


def resolve(db: Session, email: str, params: LinkParams) -> ResolvedIntent:
    """Validate link parameters for email and return the target workspace.

    A signed token is authoritative over the plain query parameters and must
    have been issued to this email and not used before. Links without a token
    only need a well-formed, existing workspace. Which role is granted is
    decided by the ledger at reconciliation, not here.
    """
    email = normalize_email(email)
    if params.token:
        claims = decode_invitation_token(params.token)
        if claims.email != email:
            raise InvalidInvitationTokenError(
                "This invitation was sent to a different email address"
            )
        used = _find_by_token(db, claims.token_id)
        if used is not None and (used.consumed_at is not None or used.email != email):
            raise InvalidInvitationTokenError("This invitation link has already been used")
        workspace_id = claims.workspace_id
        role = parse_workspace_role(claims.role)
        workspace_name = claims.workspace_name
        token_id = claims.token_id
    else:
        workspace_id = parse_uuid(params.workspace_id, "workspace_id")
        role = parse_workspace_role(params.role)
        workspace_name = params.workspace_name
        token_id = None

    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        raise ValidationError("Unknown workspace in invitation link")
    return ResolvedIntent(
        workspace_id=workspace_id,
        role=role,
        workspace_name=workspace_name or workspace.name,
        token_id=token_id,
    )


def resolve_open(db: Session, email: str, params: LinkParams) -> ResolvedIntent:
    """Like resolve, but an unsigned link also needs a pending invitation."""
    resolved = resolve(db, email, params)
    if resolved.token_id is None and not ledger.get_pending(db, email, resolved.workspace_id):
        raise ValidationError("No pending invitation for this email and workspace")
    return resolved


def record(
    db: Session,
    email: str,
    intent: ResolvedIntent,
    source: IntentSource,
    user_id: UUID | None = None,
) -> PendingIntent:
    """Persist intent for email. Re-presenting the same token is idempotent."""
    email = normalize_email(email)
    if intent.token_id is not None:
        existing = _find_by_token(db, intent.token_id)
        if existing is not None:
            if existing.consumed_at is not None:
                raise InvalidInvitationTokenError("This invitation link has already been used")
            if user_id is not None and existing.user_id is None:
                existing.user_id = user_id
                db.commit()
            return existing

    row = PendingIntent(
        email=email,
        workspace_id=intent.workspace_id,
        role=intent.role.value,
        workspace_name=intent.workspace_name,
        source=source.value,
        token_id=intent.token_id,
        user_id=user_id,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Same token presented concurrently; the other request's row stands.
        db.rollback()
        existing = _find_by_token(db, intent.token_id) if intent.token_id else None
        if existing is None:
            raise
        return existing
    logger.info(
        "intent_recorded: email=%s workspace_id=%s source=%s token=%s",
        email,
        intent.workspace_id,
        source.value,
        "yes" if intent.token_id else "no",
    )
    return row


def pending_for_email(db: Session, email: str) -> list[PendingIntent]:
    """Unconsumed intents for email: registration first, then invite links; newest first."""
    priority = case((PendingIntent.source == IntentSource.REGISTRATION.value, 0), else_=1)
    return list(
        db.scalars(
            select(PendingIntent)
            .where(
                PendingIntent.email == normalize_email(email),
                PendingIntent.consumed_at.is_(None),
            )
            .order_by(priority, PendingIntent.created_at.desc())
            .execution_options(populate_existing=True)
        ).all()
    )


def consume_for_email(db: Session, email: str, now: datetime | None = None) -> int:
    """Mark every unconsumed intent of email as consumed. Returns count."""
    now = now or datetime.now(UTC)
    result = db.execute(
        update(PendingIntent)
        .where(
            PendingIntent.email == normalize_email(email),
            PendingIntent.consumed_at.is_(None),
        )
        .values(consumed_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    count = result.rowcount or 0
    if count:
        logger.info("intents_consumed: email=%s count=%d", email, count)
    return count


def consume_for_workspace(
    db: Session, email: str, workspace_id: UUID, now: datetime | None = None
) -> int:
    """Mark the unconsumed intents of email for one workspace as consumed."""
    now = now or datetime.now(UTC)
    result = db.execute(
        update(PendingIntent)
        .where(
            PendingIntent.email == normalize_email(email),
            PendingIntent.workspace_id == workspace_id,
            PendingIntent.consumed_at.is_(None),
        )
        .values(consumed_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    count = result.rowcount or 0
    if count:
        logger.info(
            "intents_consumed: email=%s workspace_id=%s count=%d", email, workspace_id, count
        )
    return count
