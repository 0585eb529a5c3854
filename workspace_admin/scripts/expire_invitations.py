"""Expire pending invitations whose expiry has passed.

Usage:
    python -m workspace_admin.scripts.expire_invitations

Intended for cron. Exits 0 on success, 1 on failure.
"""

from __future__ import annotations

import sys

from sqlalchemy.exc import SQLAlchemyError

from workspace_admin.db.session import SessionLocal
from workspace_admin.services.invitation_ledger import expire_stale


def main() -> int:
    db = SessionLocal()
    try:
        count = expire_stale(db)
        print(f"status=completed expired={count}")
        return 0
    except SQLAlchemyError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
