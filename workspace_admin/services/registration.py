"""Registration / acceptance handler for invited users.

State machine per email: NO_ACCOUNT -> ACCOUNT_CREATED (unconfirmed) ->
ACCOUNT_CONFIRMED. Membership is never created here before confirmation; the
reconciler does that once the identity is confirmed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from workspace_admin.models.enums import IntentSource
from workspace_admin.services import intents
from workspace_admin.services.errors import (
    AccountExistsError,
    AlreadyRegisteredError,
    InvalidCredentialsError,
    ValidationError,
)
from workspace_admin.services.identity_provider import Identity, IdentityProvider
from workspace_admin.services.invitation_links import LinkParams
from workspace_admin.services.reconciler import ReconcileResult, reconcile
from workspace_admin.services.validation import normalize_email, validate_password

logger = logging.getLogger(__name__)


class RegistrationState(StrEnum):
    NO_ACCOUNT = "no_account"
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_CONFIRMED = "account_confirmed"


@dataclass
class RegistrationResult:
    state: RegistrationState
    user_id: UUID
    email: str
    created: bool
    reconcile: ReconcileResult | None = None


def _sign_in_existing(provider: IdentityProvider, email: str, password: str) -> Identity:
    try:
        return provider.sign_in(email, password)
    except InvalidCredentialsError:
        raise AlreadyRegisteredError(
            "An account already exists for this email. Sign in with your existing password."
        ) from None


def register(
    db: Session,
    email: str | None,
    password: str | None,
    link: LinkParams,
    *,
    provider: IdentityProvider,
) -> RegistrationResult:
    """Accept an invitation by creating an account or signing in to an existing one.

    New accounts are created unconfirmed with the workspace intent in their
    metadata and in a ``pending_intents`` row; reconciliation happens after
    confirmation. An existing account must sign in with its current password;
    if it is already confirmed the invitation is reconciled immediately.
    """
    email = normalize_email(email)
    if not link.has_intent():
        raise ValidationError("Missing invitation parameters")
    resolved = intents.resolve_open(db, email, link)

    created = False
    if provider.find_by_email(email) is None:
        validate_password(password)
        try:
            identity = provider.create_account(email, password, resolved.as_metadata())
            created = True
        except AccountExistsError:
            identity = _sign_in_existing(provider, email, password)
    else:
        if not password:
            raise ValidationError("Password is required")
        identity = _sign_in_existing(provider, email, password)

    if not created:
        try:
            provider.update_metadata(identity.user_id, resolved.as_metadata())
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("metadata_update_failed: user_id=%s error=%s", identity.user_id, exc)

    intents.record(db, email, resolved, IntentSource.REGISTRATION, identity.user_id)

    if not identity.email_confirmed:
        logger.info(
            "registration_pending_confirmation: user_id=%s workspace_id=%s created=%s",
            identity.user_id,
            resolved.workspace_id,
            created,
        )
        return RegistrationResult(
            RegistrationState.ACCOUNT_CREATED, identity.user_id, email, created
        )

    result = reconcile(db, identity.user_id, email, resolved.workspace_id, provider=provider)
    if result.terminal:
        intents.consume_for_workspace(db, email, resolved.workspace_id)
    logger.info(
        "registration_reconciled: user_id=%s workspace_id=%s outcome=%s",
        identity.user_id,
        resolved.workspace_id,
        result.outcome,
    )
    return RegistrationResult(
        RegistrationState.ACCOUNT_CONFIRMED, identity.user_id, email, created, result
    )
