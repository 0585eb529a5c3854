"""Create a user account, optionally confirmed and/or superadmin.

Usage:
    python -m workspace_admin.scripts.create_user --email admin@example.com --password <password> \
        --confirmed --superadmin
"""

from __future__ import annotations

import argparse
import sys
from datetime import UTC, datetime

from sqlalchemy import select

from workspace_admin.db.session import SessionLocal
from workspace_admin.models.enums import GlobalRole
from workspace_admin.models.user import User
from workspace_admin.models.user_role import UserRole
from workspace_admin.services.errors import ValidationError
from workspace_admin.services.validation import normalize_email, validate_password


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a Workspace Admin user")
    parser.add_argument("--email", required=True, help="Email address for the new user")
    parser.add_argument("--password", required=True, help="Password for the new user")
    parser.add_argument(
        "--confirmed", action="store_true", help="Mark the email address as already confirmed"
    )
    parser.add_argument("--superadmin", action="store_true", help="Grant the superadmin role")
    args = parser.parse_args()

    try:
        email = normalize_email(args.email)
        validate_password(args.password)
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    db = SessionLocal()
    try:
        existing = db.scalar(select(User).where(User.email == email))
        if existing:
            print(f"User '{email}' already exists.")
            sys.exit(1)

        user = User(email=email, user_metadata={})
        user.set_password(args.password)
        if args.confirmed:
            user.email_confirmed_at = datetime.now(UTC)
        db.add(user)
        db.flush()
        role = GlobalRole.SUPERADMIN if args.superadmin else GlobalRole.USER
        db.add(UserRole(user_id=user.id, role=role.value))
        db.commit()
        print(f"User '{user.email}' created successfully (id={user.id}, role={role.value}).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
