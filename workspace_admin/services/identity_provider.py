"""
Identity provider abstraction.

The identity store (accounts, passwords, email confirmation) is a separate
system from the relational workspace store: nothing here creates memberships
or touches the invitation ledger, and each call commits on its own.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workspace_admin.config import get_settings
from workspace_admin.models.user import User
from workspace_admin.services.auth import (
    PURPOSE_EMAIL_CONFIRM,
    create_purpose_token,
    decode_purpose_token,
)
from workspace_admin.services.email_service import Mailer, build_confirmation_email
from workspace_admin.services.errors import (
    AccountExistsError,
    InvalidCredentialsError,
    MailDeliveryError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Provider-side view of an account."""

    user_id: UUID
    email: str
    email_confirmed: bool
    metadata: dict[str, Any] = field(default_factory=dict)


class IdentityProvider(ABC):
    """Abstract base for identity providers."""

    @abstractmethod
    def create_account(self, email: str, password: str, metadata: dict[str, Any]) -> Identity:
        """Create an unconfirmed account and send the confirmation email.

        Raises AccountExistsError if the email is already registered.
        """
        ...

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Identity:
        """Verify credentials. Raises InvalidCredentialsError."""
        ...

    @abstractmethod
    def get_identity(self, user_id: UUID) -> Identity | None:
        """Return the identity for user_id, or None."""
        ...

    @abstractmethod
    def find_by_email(self, email: str) -> Identity | None:
        """Return the identity registered for email, or None."""
        ...

    @abstractmethod
    def confirm_email(self, token: str) -> Identity:
        """Mark the address in a confirmation token as confirmed."""
        ...

    @abstractmethod
    def update_metadata(
        self,
        user_id: UUID,
        updates: dict[str, Any] | None = None,
        remove: tuple[str, ...] = (),
    ) -> None:
        """Merge updates into, and drop keys from, identity metadata."""
        ...

    @abstractmethod
    def send_confirmation(self, email: str) -> bool:
        """(Re)send the confirmation email. Returns False if nothing was sent."""
        ...


def _to_identity(user: User) -> Identity:
    return Identity(
        user_id=user.id,
        email=user.email,
        email_confirmed=user.email_confirmed,
        metadata=dict(user.user_metadata or {}),
    )


class LocalIdentityProvider(IdentityProvider):
    """Identity provider backed by the ``users`` table and bcrypt hashes."""

    def __init__(self, db: Session, mailer: Mailer | None = None, settings=None) -> None:
        self.db = db
        self.mailer = mailer
        self.settings = settings if settings is not None else get_settings()

    def _get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email.strip().lower()))

    def create_account(self, email: str, password: str, metadata: dict[str, Any]) -> Identity:
        email = email.strip().lower()
        if self._get_user_by_email(email) is not None:
            raise AccountExistsError("User already registered")

        user = User(email=email, user_metadata=dict(metadata or {}))
        user.set_password(password)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent sign-up for the same address won the race.
            self.db.rollback()
            raise AccountExistsError("User already registered") from None
        self.db.refresh(user)
        logger.info("identity_created: user_id=%s email=%s", user.id, email)

        self._send_confirmation_for(user)
        return _to_identity(user)

    def sign_in(self, email: str, password: str) -> Identity:
        user = self._get_user_by_email(email)
        if user is None or not user.verify_password(password):
            raise InvalidCredentialsError("Invalid email or password")
        user.last_sign_in_at = datetime.now(UTC)
        self.db.commit()
        return _to_identity(user)

    def get_identity(self, user_id: UUID) -> Identity | None:
        user = self.db.get(User, user_id)
        return _to_identity(user) if user is not None else None

    def find_by_email(self, email: str) -> Identity | None:
        user = self._get_user_by_email(email)
        return _to_identity(user) if user is not None else None

    def confirm_email(self, token: str) -> Identity:
        payload = decode_purpose_token(token, PURPOSE_EMAIL_CONFIRM)
        if payload is None:
            raise ValidationError("Invalid or expired confirmation link")
        try:
            user_id = UUID(str(payload.get("sub")))
        except ValueError:
            raise ValidationError("Invalid or expired confirmation link") from None
        user = self.db.get(User, user_id)
        if user is None or user.email != payload.get("email"):
            raise ValidationError("Invalid or expired confirmation link")
        if user.email_confirmed_at is None:
            user.email_confirmed_at = datetime.now(UTC)
            self.db.commit()
            logger.info("identity_confirmed: user_id=%s", user.id)
        return _to_identity(user)

    def update_metadata(
        self,
        user_id: UUID,
        updates: dict[str, Any] | None = None,
        remove: tuple[str, ...] = (),
    ) -> None:
        user = self.db.get(User, user_id)
        if user is None:
            return
        merged = dict(user.user_metadata or {})
        merged.update(updates or {})
        for key in remove:
            merged.pop(key, None)
        # Reassign so the JSON column registers the change.
        user.user_metadata = merged
        self.db.commit()

    def send_confirmation(self, email: str) -> bool:
        user = self._get_user_by_email(email)
        if user is None or user.email_confirmed:
            return False
        return self._send_confirmation_for(user)

    def confirmation_link(self, user: User) -> str:
        hours = self.settings.email_confirmation_expiry_hours
        token = create_purpose_token(
            PURPOSE_EMAIL_CONFIRM,
            {"sub": str(user.id), "email": user.email},
            timedelta(hours=hours),
        )
        return f"{self.settings.public_base_url}/api/auth/confirm?{urlencode({'token': token})}"

    def _send_confirmation_for(self, user: User) -> bool:
        """Send the confirmation email; failures are logged, never raised."""
        if self.mailer is None:
            logger.warning("confirmation_email_skipped: no mailer user_id=%s", user.id)
            return False
        subject, html_body, text_body = build_confirmation_email(
            link=self.confirmation_link(user),
            expiry_hours=self.settings.email_confirmation_expiry_hours,
            brand=self.settings.mail_brand_name,
        )
        try:
            self.mailer.send(user.email, subject, html_body, text_body)
        except MailDeliveryError as exc:
            logger.error("confirmation_email_failed: user_id=%s error=%s", user.id, exc)
            return False
        return True
