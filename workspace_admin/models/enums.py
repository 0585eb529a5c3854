"""Role and status enums shared by models, services and schemas."""

from enum import StrEnum


class GlobalRole(StrEnum):
    """System-wide role. Assigned out of band; missing row means USER."""

    SUPERADMIN = "superadmin"
    USER = "user"


class WorkspaceRole(StrEnum):
    """Workspace-scoped role held through a membership row."""

    ADMIN = "admin"
    MEMBER = "member"


class InvitationStatus(StrEnum):
    """Invitation ledger lifecycle status."""

    PENDING = "pending"  # Awaiting confirmation + reconciliation
    ACCEPTED = "accepted"  # Membership created
    CANCELLED = "cancelled"  # Withdrawn by an admin
    EXPIRED = "expired"  # Past expires_at, or expired administratively


class IntentSource(StrEnum):
    """Where a pending workspace intent was captured."""

    REGISTRATION = "registration"
    INVITE_LINK = "invite_link"
