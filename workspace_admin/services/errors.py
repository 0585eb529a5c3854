"""Service-layer exceptions.

API routes translate these into HTTP responses. Informational outcomes of
reconciliation (not yet confirmed, no pending invitation) are not exceptions;
see ``ReconcileOutcome``.
"""

from __future__ import annotations


class WorkspaceAdminError(Exception):
    """Base class for service errors."""

    pass


class ValidationError(WorkspaceAdminError, ValueError):
    """Missing or malformed input. Raised before any side effect."""

    pass


class ForbiddenError(WorkspaceAdminError):
    """Caller is not allowed to perform the operation. No side effects."""

    pass


class NotFoundError(WorkspaceAdminError):
    """Referenced workspace, invitation or user does not exist."""

    pass


class ConflictError(WorkspaceAdminError):
    """State transition not allowed from the current state."""

    pass


class MailDeliveryError(WorkspaceAdminError):
    """Mail collaborator failed. Non-fatal to invitation persistence."""

    pass


class IdentityProviderError(WorkspaceAdminError):
    """Identity provider call failed; message is surfaced to the caller verbatim."""

    pass


class AlreadyRegisteredError(IdentityProviderError):
    """An account exists for the email and the supplied password did not sign in."""

    pass


class InvalidCredentialsError(IdentityProviderError):
    """Email/password pair rejected at sign-in."""

    pass


class EmailNotConfirmedError(IdentityProviderError):
    """Sign-in refused because the email address is not confirmed yet."""

    pass


class AccountExistsError(IdentityProviderError):
    """Sign-up refused because an identity already exists for the email."""

    pass


class InvalidInvitationTokenError(ValidationError):
    """Invitation token is malformed, expired, tampered with or already used."""

    pass
