"""Shared FastAPI dependencies for API routes."""

from __future__ import annotations

import logging
import secrets

from fastapi import Cookie, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from workspace_admin.config import get_settings
from workspace_admin.db.session import get_db  # re-export
from workspace_admin.models.user import User
from workspace_admin.services.auth import get_user_from_token
from workspace_admin.services.email_service import Mailer, get_mailer
from workspace_admin.services.errors import (
    AlreadyRegisteredError,
    ConflictError,
    EmailNotConfirmedError,
    ForbiddenError,
    IdentityProviderError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
    WorkspaceAdminError,
)
from workspace_admin.services.identity_provider import IdentityProvider, LocalIdentityProvider

logger = logging.getLogger(__name__)

__all__ = [
    "AUTH_COOKIE",
    "error_response",
    "get_current_user",
    "get_db",
    "get_identity_provider",
    "get_mailer",
    "is_service_call",
    "require_auth",
    "require_internal_token",
]

# Cookie name for browser sessions
AUTH_COOKIE = "access_token"

# Most specific first; subclasses must precede their bases.
_STATUS_BY_ERROR: tuple[tuple[type[WorkspaceAdminError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (EmailNotConfirmedError, status.HTTP_403_FORBIDDEN),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyRegisteredError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (IdentityProviderError, status.HTTP_502_BAD_GATEWAY),
)


def error_response(exc: WorkspaceAdminError, **extra) -> JSONResponse:
    """Translate a service error into ``{success: false, error}`` with its status code."""
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, error_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            code = error_code
            break
    return JSONResponse(
        status_code=code,
        content={"success": False, "error": str(exc), "errorType": type(exc).__name__, **extra},
    )


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None),
) -> User | None:
    """Return the authenticated user or None.

    Checks (in order):
    1. Authorization: Bearer <token> header
    2. access_token cookie
    """
    token: str | None = None

    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer ") :]

    if token is None and access_token:
        token = access_token

    if token is None:
        return None

    return get_user_from_token(db, token)


def require_auth(
    request: Request,
    user: User | None = Depends(get_current_user),
) -> User:
    """Dependency that requires authentication. Returns 401 otherwise."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


def get_identity_provider(
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> IdentityProvider:
    return LocalIdentityProvider(db, mailer)


def is_service_call(x_internal_token: str | None) -> bool:
    """True if the request carries the configured service credential.

    Always False when INTERNAL_SERVICE_TOKEN is unset. Uses constant-time
    comparison.
    """
    expected = get_settings().internal_service_token
    if not expected or not x_internal_token:
        return False
    return secrets.compare_digest(x_internal_token, expected)


def require_internal_token(x_internal_token: str | None = Header(None)) -> None:
    """Validate the internal service token from the request header. Raises 403."""
    if not is_service_call(x_internal_token):
        logger.warning("Internal endpoint auth failed: invalid or missing token")
        raise HTTPException(status_code=403, detail="Invalid internal token")
