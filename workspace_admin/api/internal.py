"""Internal job endpoints for cron/scripts.

These endpoints are secured with a static token (X-Internal-Token header),
NOT cookie-based auth.  They are meant for automated triggers only.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from workspace_admin.api.deps import get_db, require_internal_token
from workspace_admin.services import invitation_ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", include_in_schema=False)


@router.post("/expire_invitations")
def expire_invitations(
    db: Session = Depends(get_db),
    _token: None = Depends(require_internal_token),
) -> dict:
    """Transition every pending invitation past its expiry to expired."""
    count = invitation_ledger.expire_stale(db)
    logger.warning("service_credential_used: endpoint=expire_invitations expired=%d", count)
    return {"status": "completed", "expired": count}
