"""Signed tokens — session access tokens, email confirmation and invitation links."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from workspace_admin.config import get_settings
from workspace_admin.models.user import User

# JWT configuration
ALGORITHM = "HS256"

# Token purposes; a token minted for one purpose is rejected for every other.
PURPOSE_ACCESS = "access"
PURPOSE_EMAIL_CONFIRM = "email_confirm"
PURPOSE_INVITATION = "invitation"


def create_purpose_token(purpose: str, data: dict, expires_delta: timedelta) -> str:
    """Create a signed JWT bound to a purpose."""
    settings = get_settings()
    to_encode = data.copy()
    to_encode.update({"purpose": purpose, "exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_purpose_token(token: str, purpose: str) -> Optional[dict]:
    """Decode and validate a JWT for the given purpose. Returns payload or None."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != purpose:
        return None
    return payload


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session access token."""
    hours = get_settings().access_token_expire_hours
    return create_purpose_token(PURPOSE_ACCESS, data, expires_delta or timedelta(hours=hours))


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a session access token. Returns payload or None."""
    return decode_purpose_token(token, PURPOSE_ACCESS)


def get_user_from_token(db: Session, token: str) -> Optional[User]:
    """Extract user from an access token. Returns None if token invalid or user not found."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    subject: Optional[str] = payload.get("sub")
    if subject is None:
        return None
    try:
        user_id = UUID(subject)
    except ValueError:
        return None
    return db.get(User, user_id)
