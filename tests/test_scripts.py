"""Tests for the operator CLI scripts."""

from __future__ import annotations

import sys
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from tests.test_constants import TEST_PASSWORD, TEST_PASSWORD_WEAK
from workspace_admin.models import InvitationStatus, User, Workspace, WorkspaceMember
from workspace_admin.services import invitation_ledger as ledger
from workspace_admin.services.workspace_access import is_superadmin


class TestCreateUserScript:
    def test_creates_confirmed_superadmin(self, db, capsys) -> None:
        from workspace_admin.scripts import create_user

        argv = [
            "create_user",
            "--email",
            "Root@Example.com",
            "--password",
            TEST_PASSWORD,
            "--confirmed",
            "--superadmin",
        ]
        with (
            patch.object(sys, "argv", argv),
            patch.object(create_user, "SessionLocal", return_value=db),
        ):
            create_user.main()

        user = db.scalar(select(User).where(User.email == "root@example.com"))
        assert user.email_confirmed_at is not None
        assert is_superadmin(db, user.id)
        assert "created successfully" in capsys.readouterr().out

    def test_weak_password_exits_1(self, capsys) -> None:
        from workspace_admin.scripts import create_user

        argv = ["create_user", "--email", "a@example.com", "--password", TEST_PASSWORD_WEAK]
        with patch.object(sys, "argv", argv), pytest.raises(SystemExit) as exc_info:
            create_user.main()
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err

    def test_duplicate_exits_1(self, db, make_user) -> None:
        from workspace_admin.scripts import create_user

        make_user("taken@example.com")
        argv = ["create_user", "--email", "taken@example.com", "--password", TEST_PASSWORD]
        with (
            patch.object(sys, "argv", argv),
            patch.object(create_user, "SessionLocal", return_value=db),
            pytest.raises(SystemExit) as exc_info,
        ):
            create_user.main()
        assert exc_info.value.code == 1


class TestCreateWorkspaceScript:
    def test_creates_workspace_with_admin(self, db, make_user) -> None:
        from workspace_admin.scripts import create_workspace

        admin = make_user("admin@example.com")
        argv = ["create_workspace", "--name", "Acme", "--admin-email", "admin@example.com"]
        with (
            patch.object(sys, "argv", argv),
            patch.object(create_workspace, "SessionLocal", return_value=db),
        ):
            create_workspace.main()

        ws = db.scalar(select(Workspace).where(Workspace.name == "Acme"))
        membership = db.get(WorkspaceMember, {"workspace_id": ws.id, "user_id": admin.id})
        assert membership.role == "admin"

    def test_unknown_admin_exits_1(self, db) -> None:
        from workspace_admin.scripts import create_workspace

        argv = ["create_workspace", "--name", "Acme", "--admin-email", "ghost@example.com"]
        with (
            patch.object(sys, "argv", argv),
            patch.object(create_workspace, "SessionLocal", return_value=db),
            pytest.raises(SystemExit) as exc_info,
        ):
            create_workspace.main()
        assert exc_info.value.code == 1

    def test_second_superadmin_workspace_exits_1(self, db, make_workspace, capsys) -> None:
        from workspace_admin.scripts import create_workspace

        make_workspace("Root", is_superadmin_workspace=True)
        argv = ["create_workspace", "--name", "Root 2", "--superadmin-workspace"]
        with (
            patch.object(sys, "argv", argv),
            patch.object(create_workspace, "SessionLocal", return_value=db),
            pytest.raises(SystemExit) as exc_info,
        ):
            create_workspace.main()
        assert exc_info.value.code == 1
        assert "superadmin workspace already exists" in capsys.readouterr().err


class TestExpireInvitationsScript:
    def test_expires_and_returns_0(self, db, make_workspace, capsys) -> None:
        from workspace_admin.scripts import expire_invitations

        ws = make_workspace("Acme")
        past = datetime.now(UTC) - timedelta(days=30)
        ledger.upsert(db, ws.id, "old@example.com", "member", None, now=past)

        with patch.object(expire_invitations, "SessionLocal", return_value=db):
            assert expire_invitations.main() == 0

        assert "expired=1" in capsys.readouterr().out
        assert ledger.get_by_key(db, ws.id, "old@example.com").status == InvitationStatus.EXPIRED

    def test_database_error_returns_1(self, capsys) -> None:
        from workspace_admin.scripts import expire_invitations

        mock_db = MagicMock()
        mock_db.execute.side_effect = OperationalError("update", {}, Exception("down"))
        with patch.object(expire_invitations, "SessionLocal", return_value=mock_db):
            assert expire_invitations.main() == 1
        assert "ERROR" in capsys.readouterr().err
        mock_db.close.assert_called_once()
