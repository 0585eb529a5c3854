"""Create a workspace, optionally with an initial admin.

Usage:
    python -m workspace_admin.scripts.create_workspace --name "Acme" --admin-email admin@example.com
    python -m workspace_admin.scripts.create_workspace --name "Superadmin" --superadmin-workspace
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy import select

from workspace_admin.db.session import SessionLocal
from workspace_admin.models.user import User
from workspace_admin.services.errors import WorkspaceAdminError
from workspace_admin.services.validation import normalize_email
from workspace_admin.services.workspaces import bootstrap_workspace


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a workspace")
    parser.add_argument("--name", required=True, help="Workspace name")
    parser.add_argument("--admin-email", help="Existing user to make workspace admin")
    parser.add_argument("--default", action="store_true", help="Mark as the default workspace")
    parser.add_argument(
        "--superadmin-workspace",
        action="store_true",
        help="Mark as the single superadmin workspace",
    )
    args = parser.parse_args()

    db = SessionLocal()
    try:
        admin_id = None
        if args.admin_email:
            admin = db.scalar(select(User).where(User.email == normalize_email(args.admin_email)))
            if admin is None:
                print(f"User '{args.admin_email}' not found.", file=sys.stderr)
                sys.exit(1)
            admin_id = admin.id
        workspace = bootstrap_workspace(
            db,
            args.name,
            admin_id=admin_id,
            is_default=args.default,
            is_superadmin_workspace=args.superadmin_workspace,
        )
        print(f"Workspace '{workspace.name}' created successfully (id={workspace.id}).")
    except WorkspaceAdminError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
