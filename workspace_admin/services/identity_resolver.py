"""Identity resolver — does an account already exist for this email?

Only selects the notification copy for an invitation. Never blocks invitation
creation: any failure degrades to "unknown", reported as False.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from workspace_admin.services.errors import IdentityProviderError
from workspace_admin.services.identity_provider import IdentityProvider

logger = logging.getLogger(__name__)


def exists(db: Session, provider: IdentityProvider, email: str) -> bool:
    """Return True if an identity is registered for email; False on any failure."""
    try:
        return provider.find_by_email(email) is not None
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("identity_lookup_failed: email=%s error=%s", email, exc)
        return False
    except IdentityProviderError as exc:
        logger.warning("identity_lookup_failed: email=%s error=%s", email, exc)
        return False
