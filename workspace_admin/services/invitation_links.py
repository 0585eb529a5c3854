"""Acceptance deep links and single-use signed invitation tokens.

Deep-link query parameter names ``email``, ``workspace_id``, ``invite_role`` and
``workspace_name`` are embedded in already-sent emails and must not change.
``token`` is optional: links without it are still honoured.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, quote, urlencode, urlsplit
from uuid import UUID

from workspace_admin.config import get_settings
from workspace_admin.models.invitation import Invitation
from workspace_admin.services.auth import (
    PURPOSE_INVITATION,
    create_purpose_token,
    decode_purpose_token,
)
from workspace_admin.services.errors import InvalidInvitationTokenError
from workspace_admin.services.invitation_ledger import as_utc

ACCEPT_INVITATION_PATH = "/auth/accept-invitation"

PARAM_EMAIL = "email"
PARAM_WORKSPACE_ID = "workspace_id"
PARAM_ROLE = "invite_role"
PARAM_WORKSPACE_NAME = "workspace_name"
PARAM_TOKEN = "token"


@dataclass(frozen=True)
class LinkParams:
    """Invitation intent as carried by a deep link or an acceptance form."""

    email: str | None = None
    workspace_id: str | None = None
    role: str | None = None
    workspace_name: str | None = None
    token: str | None = None

    def has_intent(self) -> bool:
        return bool(self.token or self.workspace_id)


@dataclass(frozen=True)
class InvitationClaims:
    """Verified contents of an invitation token."""

    token_id: str
    email: str
    workspace_id: UUID
    role: str
    workspace_name: str | None
    invitation_id: UUID | None


def mint_invitation_token(invitation: Invitation, workspace_name: str | None) -> str:
    """Sign a fresh single-use token for the invitation's current state.

    Each call gets a new ``jti``; resend therefore yields a distinct link.
    """
    expires_at = as_utc(invitation.expires_at)
    now = datetime.now(UTC)
    if expires_at is None or expires_at <= now:
        expires_at = now + timedelta(days=get_settings().invitation_expiry_days)
    return create_purpose_token(
        PURPOSE_INVITATION,
        {
            "jti": uuid.uuid4().hex,
            "sub": invitation.email,
            "ws": str(invitation.workspace_id),
            "role": invitation.role,
            "wsn": workspace_name,
            "inv": str(invitation.id),
        },
        expires_at - now,
    )


def decode_invitation_token(token: str) -> InvitationClaims:
    """Verify an invitation token. Raises InvalidInvitationTokenError."""
    payload = decode_purpose_token(token, PURPOSE_INVITATION)
    if payload is None:
        raise InvalidInvitationTokenError("Invalid or expired invitation link")
    try:
        workspace_id = UUID(str(payload["ws"]))
        invitation_id = UUID(str(payload["inv"])) if payload.get("inv") else None
        return InvitationClaims(
            token_id=str(payload["jti"]),
            email=str(payload["sub"]).lower(),
            workspace_id=workspace_id,
            role=str(payload["role"]),
            workspace_name=payload.get("wsn"),
            invitation_id=invitation_id,
        )
    except (KeyError, ValueError):
        raise InvalidInvitationTokenError("Invalid or expired invitation link") from None


def build_acceptance_link(
    email: str,
    workspace_id: UUID | str,
    role: str,
    workspace_name: str,
    token: str | None = None,
    *,
    base_url: str | None = None,
) -> str:
    """Build the acceptance deep link sent in invitation emails."""
    base = (base_url or get_settings().public_base_url).rstrip("/")
    params = [
        (PARAM_EMAIL, email),
        (PARAM_WORKSPACE_ID, str(workspace_id)),
        (PARAM_ROLE, role),
        (PARAM_WORKSPACE_NAME, workspace_name),
    ]
    if token:
        params.append((PARAM_TOKEN, token))
    return f"{base}{ACCEPT_INVITATION_PATH}?{urlencode(params, quote_via=quote)}"


def parse_acceptance_link(url: str) -> LinkParams:
    """Extract invitation parameters from an acceptance deep link."""
    query = parse_qs(urlsplit(url).query)

    def first(name: str) -> str | None:
        values = query.get(name)
        return values[0] if values else None

    return LinkParams(
        email=first(PARAM_EMAIL),
        workspace_id=first(PARAM_WORKSPACE_ID),
        role=first(PARAM_ROLE),
        workspace_name=first(PARAM_WORKSPACE_NAME),
        token=first(PARAM_TOKEN),
    )
