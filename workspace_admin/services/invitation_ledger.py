"""Invitation ledger — one row per (workspace_id, email).

All writes are keyed by the natural key, never by a generated id, so re-invite,
resend and concurrent writers converge on a single row (last writer wins).
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from workspace_admin.config import get_settings
from workspace_admin.models.enums import InvitationStatus, WorkspaceRole
from workspace_admin.models.invitation import Invitation
from workspace_admin.services.errors import ConflictError, NotFoundError
from workspace_admin.services.validation import normalize_email, parse_workspace_role

logger = logging.getLogger(__name__)


def dialect_insert(db: Session):
    """Return the dialect ``insert`` construct supporting ON CONFLICT clauses."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return pg_insert
    if name == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Unsupported database dialect for upsert: {name}")


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _expiry_from(now: datetime) -> datetime:
    return now + timedelta(days=get_settings().invitation_expiry_days)


def is_expired(invitation: Invitation, now: datetime | None = None) -> bool:
    expires_at = as_utc(invitation.expires_at)
    if expires_at is None:
        return False
    return expires_at <= (now or datetime.now(UTC))


def get(db: Session, invitation_id: UUID) -> Invitation | None:
    return db.get(Invitation, invitation_id, populate_existing=True)


def get_by_key(db: Session, workspace_id: UUID, email: str) -> Invitation | None:
    """Fetch the ledger row for the natural key, bypassing stale identity-map state."""
    return db.scalar(
        select(Invitation)
        .where(
            Invitation.workspace_id == workspace_id,
            Invitation.email == normalize_email(email),
        )
        .execution_options(populate_existing=True)
    )


def upsert(
    db: Session,
    workspace_id: UUID,
    email: str,
    role: WorkspaceRole | str | None,
    invited_by: UUID | None,
    *,
    now: datetime | None = None,
) -> Invitation:
    """Insert or update the invitation for (workspace_id, email).

    On conflict: role and invited_by are overwritten, status returns to pending,
    accepted_at is cleared and the expiry window restarts. Safe to call
    repeatedly; never produces a second row.
    """
    email = normalize_email(email)
    role = parse_workspace_role(role)
    now = now or datetime.now(UTC)
    expires_at = _expiry_from(now)

    insert = dialect_insert(db)
    stmt = insert(Invitation).values(
        id=uuid.uuid4(),
        workspace_id=workspace_id,
        email=email,
        role=role.value,
        invited_by=invited_by,
        status=InvitationStatus.PENDING.value,
        created_at=now,
        updated_at=now,
        accepted_at=None,
        expires_at=expires_at,
    )
    excluded = stmt.excluded
    stmt = stmt.on_conflict_do_update(
        index_elements=["workspace_id", "email"],
        set_={
            "role": excluded.role,
            "invited_by": excluded.invited_by,
            "status": excluded.status,
            "accepted_at": None,
            "updated_at": excluded.updated_at,
            "expires_at": excluded.expires_at,
        },
    )
    db.execute(stmt)
    db.commit()

    invitation = get_by_key(db, workspace_id, email)
    logger.info(
        "invitation_upserted: id=%s workspace_id=%s email=%s role=%s",
        invitation.id,
        workspace_id,
        email,
        role.value,
    )
    return invitation


def mark_accepted(
    db: Session,
    workspace_id: UUID,
    email: str,
    *,
    now: datetime | None = None,
) -> bool:
    """Transition the pending row for (workspace_id, email) to accepted.

    Conditional on status = pending, so a row already processed by another
    reconciliation path is left alone. Returns False (not an error) when no
    pending row exists.
    """
    now = now or datetime.now(UTC)
    result = db.execute(
        update(Invitation)
        .where(
            Invitation.workspace_id == workspace_id,
            Invitation.email == normalize_email(email),
            Invitation.status == InvitationStatus.PENDING.value,
        )
        .values(
            status=InvitationStatus.ACCEPTED.value,
            accepted_at=now,
            updated_at=now,
        )
    )
    db.commit()
    changed = result.rowcount > 0
    if changed:
        logger.info("invitation_accepted: workspace_id=%s email=%s", workspace_id, email)
    else:
        logger.info(
            "invitation_accept_noop: workspace_id=%s email=%s (no pending row)",
            workspace_id,
            email,
        )
    return changed


def _require(db: Session, invitation_id: UUID) -> Invitation:
    invitation = db.get(Invitation, invitation_id, populate_existing=True)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    return invitation


def cancel(db: Session, invitation_id: UUID) -> Invitation:
    """Withdraw an invitation. Accepted invitations cannot be cancelled."""
    invitation = _require(db, invitation_id)
    if invitation.status == InvitationStatus.ACCEPTED:
        raise ConflictError("Invitation has already been accepted")
    if invitation.status != InvitationStatus.CANCELLED:
        invitation.status = InvitationStatus.CANCELLED.value
        invitation.updated_at = datetime.now(UTC)
        db.commit()
        logger.info("invitation_cancelled: id=%s", invitation.id)
    return invitation


def reactivate(db: Session, invitation_id: UUID, *, now: datetime | None = None) -> Invitation:
    """Return a cancelled or expired invitation to pending with a fresh expiry."""
    invitation = _require(db, invitation_id)
    if invitation.status == InvitationStatus.ACCEPTED:
        raise ConflictError("Invitation has already been accepted")
    now = now or datetime.now(UTC)
    invitation.status = InvitationStatus.PENDING.value
    invitation.updated_at = now
    invitation.expires_at = _expiry_from(now)
    db.commit()
    logger.info("invitation_reactivated: id=%s", invitation.id)
    return invitation


def expire(db: Session, invitation_id: UUID) -> Invitation:
    """Administrative expiry of a pending invitation."""
    invitation = _require(db, invitation_id)
    if invitation.status == InvitationStatus.EXPIRED:
        return invitation
    if invitation.status != InvitationStatus.PENDING:
        raise ConflictError(f"Cannot expire a {invitation.status} invitation")
    invitation.status = InvitationStatus.EXPIRED.value
    invitation.updated_at = datetime.now(UTC)
    db.commit()
    logger.info("invitation_expired: id=%s", invitation.id)
    return invitation


def expire_stale(db: Session, now: datetime | None = None) -> int:
    """Expire every pending invitation whose window has closed. Returns count."""
    now = now or datetime.now(UTC)
    result = db.execute(
        update(Invitation)
        .where(
            Invitation.status == InvitationStatus.PENDING.value,
            Invitation.expires_at.is_not(None),
            Invitation.expires_at <= now,
        )
        .values(status=InvitationStatus.EXPIRED.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    count = result.rowcount or 0
    logger.info("invitations_expired: count=%d", count)
    return count


def get_pending(
    db: Session,
    email: str,
    workspace_id: UUID | None = None,
    *,
    now: datetime | None = None,
) -> list[Invitation]:
    """Pending, unexpired invitations for email (optionally one workspace).

    Rows found past their expiry are transitioned to expired here, so expiry is
    enforced at reconciliation time even without the batch sweep.
    """
    now = now or datetime.now(UTC)
    stmt = select(Invitation).where(
        Invitation.email == normalize_email(email),
        Invitation.status == InvitationStatus.PENDING.value,
    )
    if workspace_id is not None:
        stmt = stmt.where(Invitation.workspace_id == workspace_id)
    rows = db.scalars(
        stmt.order_by(Invitation.created_at).execution_options(populate_existing=True)
    ).all()

    pending: list[Invitation] = []
    stale = False
    for invitation in rows:
        if is_expired(invitation, now):
            invitation.status = InvitationStatus.EXPIRED.value
            invitation.updated_at = now
            stale = True
            logger.info("invitation_expired_on_read: id=%s", invitation.id)
        else:
            pending.append(invitation)
    if stale:
        db.commit()
    return pending


def list_for_workspace(
    db: Session,
    workspace_id: UUID,
    status: InvitationStatus | str | None = None,
) -> list[Invitation]:
    stmt = select(Invitation).where(Invitation.workspace_id == workspace_id)
    if status is not None:
        stmt = stmt.where(Invitation.status == str(status))
    return list(
        db.scalars(
            stmt.order_by(Invitation.created_at.desc()).execution_options(populate_existing=True)
        ).all()
    )
