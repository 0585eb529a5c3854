"""Tests for internal job endpoints (/internal/expire_invitations)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient

from workspace_admin.models import InvitationStatus
from workspace_admin.services import invitation_ledger as ledger

VALID_TOKEN = "test-internal-token"  # matches conftest.py env setup


class TestExpireInvitations:
    def test_valid_token_expires_stale_invitations(
        self, client_with_db: TestClient, db, make_workspace
    ):
        """POST /internal/expire_invitations moves overdue pending rows to expired."""
        ws = make_workspace("Acme")
        past = datetime.now(UTC) - timedelta(days=30)
        ledger.upsert(db, ws.id, "old@example.com", "member", None, now=past)
        ledger.upsert(db, ws.id, "fresh@example.com", "member", None)

        response = client_with_db.post(
            "/internal/expire_invitations",
            headers={"X-Internal-Token": VALID_TOKEN},
        )

        assert response.status_code == 200
        assert response.json() == {"status": "completed", "expired": 1}
        assert ledger.get_by_key(db, ws.id, "old@example.com").status == InvitationStatus.EXPIRED
        assert ledger.get_by_key(db, ws.id, "fresh@example.com").status == InvitationStatus.PENDING

    @patch("workspace_admin.services.invitation_ledger.expire_stale", return_value=0)
    def test_nothing_to_expire(self, mock_expire, client_with_db: TestClient):
        response = client_with_db.post(
            "/internal/expire_invitations",
            headers={"X-Internal-Token": VALID_TOKEN},
        )
        assert response.status_code == 200
        assert response.json()["expired"] == 0
        mock_expire.assert_called_once()

    def test_missing_token_returns_403(self, client_with_db: TestClient):
        """POST without the token header returns 403."""
        response = client_with_db.post("/internal/expire_invitations")
        assert response.status_code == 403

    def test_wrong_token_returns_403(self, client_with_db: TestClient):
        """POST with a wrong token returns 403."""
        response = client_with_db.post(
            "/internal/expire_invitations",
            headers={"X-Internal-Token": "wrong-token"},
        )
        assert response.status_code == 403
