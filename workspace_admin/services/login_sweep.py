"""Session-login invitation sweep.

Runs after every successful sign-in and reconciles any workspace intent the
user still carries, healing reconciliations the confirmation callback missed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from workspace_admin.models.enums import IntentSource
from workspace_admin.services import intents
from workspace_admin.services import invitation_ledger as ledger
from workspace_admin.services.errors import ValidationError
from workspace_admin.services.identity_provider import Identity, IdentityProvider
from workspace_admin.services.invitation_links import LinkParams
from workspace_admin.services.reconciler import ReconcileOutcome, ReconcileResult, reconcile
from workspace_admin.services.workspace_access import get_membership

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """What the sweep found and did for one sign-in."""

    source: IntentSource | None = None
    results: list[ReconcileResult] = field(default_factory=list)
    already_member: list[UUID] = field(default_factory=list)
    cleared: int = 0
    deferred: bool = False

    @property
    def joined_workspaces(self) -> list[UUID]:
        return [
            m.workspace_id
            for r in self.results
            if r.outcome == ReconcileOutcome.RECONCILED
            for m in r.memberships
        ]


def run_login_sweep(
    db: Session,
    identity: Identity,
    link: LinkParams | None = None,
    *,
    provider: IdentityProvider,
) -> SweepResult:
    """Reconcile carried intent for a freshly signed-in identity.

    Intent sources, in priority order: (1) registration intents for this email,
    (2) invite-link intents, including link parameters presented with this
    sign-in, (3) none. Every carried intent is cleared once processing
    completes; a still-unconfirmed identity keeps its intent for a later
    attempt. A malformed or reused link never blocks the sign-in itself.
    """
    if link is not None and link.has_intent():
        try:
            resolved = intents.resolve(db, identity.email, link)
            intents.record(db, identity.email, resolved, IntentSource.INVITE_LINK, identity.user_id)
        except ValidationError as exc:
            logger.warning("sweep_link_ignored: user_id=%s reason=%s", identity.user_id, exc)

    carried = intents.pending_for_email(db, identity.email)
    if not carried:
        return SweepResult()

    sweep = SweepResult(source=IntentSource(carried[0].source))
    seen: set[UUID] = set()
    for intent in carried:
        if intent.workspace_id in seen:
            continue
        seen.add(intent.workspace_id)

        if get_membership(db, identity.user_id, intent.workspace_id) is not None:
            # Membership landed but the ledger step may not have; finish it.
            ledger.mark_accepted(db, intent.workspace_id, identity.email)
            sweep.already_member.append(intent.workspace_id)
            continue

        result = reconcile(
            db,
            identity.user_id,
            identity.email,
            intent.workspace_id,
            provider=provider,
        )
        if not result.terminal:
            sweep.deferred = True
            logger.info("sweep_deferred: user_id=%s email not confirmed", identity.user_id)
            return sweep
        sweep.results.append(result)

    sweep.cleared = intents.consume_for_email(db, identity.email)
    try:
        provider.update_metadata(identity.user_id, remove=intents.INTENT_METADATA_KEYS)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("metadata_cleanup_failed: user_id=%s error=%s", identity.user_id, exc)

    logger.info(
        "sweep_completed: user_id=%s source=%s joined=%d already_member=%d cleared=%d",
        identity.user_id,
        sweep.source,
        len(sweep.joined_workspaces),
        len(sweep.already_member),
        sweep.cleared,
    )
    return sweep
