"""Input validation: email format, password policy, role and id parsing."""

from __future__ import annotations

import re
from uuid import UUID

from workspace_admin.models.enums import WorkspaceRole
from workspace_admin.services.errors import ValidationError

PASSWORD_MIN_LENGTH = 8

_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_SYMBOL_RE = re.compile(r"""[!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?`~]""")


def normalize_email(email: str | None) -> str:
    """Strip and lower-case an email; raise ValidationError if missing or malformed."""
    if not email or not email.strip():
        raise ValidationError("Email is required")
    normalized = email.strip().lower()
    if not _EMAIL_RE.match(normalized):
        raise ValidationError("Invalid email format")
    return normalized


def password_problems(password: str | None) -> list[str]:
    """Return every policy violation for password (empty list = acceptable).

    Single canonical policy for all paths that set a password: at least
    PASSWORD_MIN_LENGTH characters with upper case, lower case, digit and symbol.
    """
    if not password:
        return ["Password is required"]
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        problems.append("Password must contain at least one number")
    if not _SYMBOL_RE.search(password):
        problems.append("Password must contain at least one special character")
    return problems


def validate_password(password: str | None) -> None:
    """Raise ValidationError with the first policy violation, if any."""
    problems = password_problems(password)
    if problems:
        raise ValidationError(problems[0])


def parse_workspace_role(role: str | None) -> WorkspaceRole:
    """Parse a workspace role; missing means member."""
    if role is None or not str(role).strip():
        return WorkspaceRole.MEMBER
    try:
        return WorkspaceRole(str(role).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid role: {role}") from None


def parse_uuid(value: str | UUID | None, param_name: str) -> UUID:
    """Parse a UUID parameter; raise ValidationError if missing or malformed."""
    if isinstance(value, UUID):
        return value
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing {param_name}")
    try:
        return UUID(str(value).strip())
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid {param_name}: must be a valid UUID") from None
