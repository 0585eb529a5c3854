"""Tests for workspace access control and workspace/member management."""

from __future__ import annotations

import uuid

import pytest

from workspace_admin.models import GlobalRole, Workspace, WorkspaceMember, WorkspaceRole
from workspace_admin.services import workspaces
from workspace_admin.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from workspace_admin.services.workspace_access import (
    can_manage_workspace,
    effective_role,
    get_global_role,
    list_user_workspaces,
    user_has_access_to_workspace,
)


@pytest.fixture
def root(make_user):
    return make_user("root@example.com", superadmin=True)


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com")


@pytest.fixture
def member(make_user):
    return make_user("member@example.com")


@pytest.fixture
def workspace(db, make_workspace, admin, member):
    ws = make_workspace("Acme", admin=admin)
    db.add(WorkspaceMember(workspace_id=ws.id, user_id=member.id, role="member"))
    db.commit()
    return ws


class TestAccess:
    def test_missing_role_row_means_user(self, db, admin):
        assert get_global_role(db, admin.id) == GlobalRole.USER

    def test_superadmin_is_admin_everywhere(self, db, root, workspace):
        assert effective_role(db, root.id, workspace.id) == WorkspaceRole.ADMIN
        assert can_manage_workspace(db, root.id, workspace.id)

    def test_member_cannot_manage(self, db, member, workspace):
        assert user_has_access_to_workspace(db, member.id, workspace.id)
        assert not can_manage_workspace(db, member.id, workspace.id)

    def test_outsider_has_no_access(self, db, make_user, workspace):
        outsider = make_user("outsider@example.com")
        assert effective_role(db, outsider.id, workspace.id) is None
        assert not user_has_access_to_workspace(db, outsider.id, None)

    def test_dashboard_listing(self, db, root, member, workspace, make_workspace):
        make_workspace("Zeta")
        assert [v.workspace_name for v in list_user_workspaces(db, member.id)] == ["Acme"]
        root_view = list_user_workspaces(db, root.id)
        assert [v.workspace_name for v in root_view] == ["Acme", "Zeta"]
        assert {v.role for v in root_view} == {"admin"}


class TestCreateDelete:
    def test_superadmin_creates_and_becomes_admin(self, db, root):
        ws = workspaces.create_workspace(db, root.id, "  New Team ")
        assert ws.name == "New Team"
        assert effective_role(db, root.id, ws.id) == WorkspaceRole.ADMIN
        assert db.get(WorkspaceMember, {"workspace_id": ws.id, "user_id": root.id}) is not None

    def test_non_superadmin_cannot_create(self, db, admin):
        with pytest.raises(ForbiddenError):
            workspaces.create_workspace(db, admin.id, "Nope")

    def test_name_required(self, db, root):
        with pytest.raises(ValidationError):
            workspaces.create_workspace(db, root.id, "   ")

    def test_single_superadmin_workspace(self, db):
        workspaces.bootstrap_workspace(db, "Root", is_superadmin_workspace=True)
        with pytest.raises(ConflictError):
            workspaces.bootstrap_workspace(db, "Root 2", is_superadmin_workspace=True)

    def test_delete_removes_members(self, db, root, workspace):
        workspaces.delete_workspace(db, root.id, workspace.id)
        assert db.get(Workspace, workspace.id) is None
        assert workspaces.list_members(db, root.id, workspace.id) == []

    @pytest.mark.parametrize("flag", ["is_default", "is_superadmin_workspace"])
    def test_protected_workspace_not_deleted(self, db, root, make_workspace, flag):
        ws = make_workspace("Protected", **{flag: True})
        with pytest.raises(ConflictError):
            workspaces.delete_workspace(db, root.id, ws.id)
        assert db.get(Workspace, ws.id) is not None

    def test_delete_requires_superadmin(self, db, admin, workspace):
        with pytest.raises(ForbiddenError):
            workspaces.delete_workspace(db, admin.id, workspace.id)

    def test_delete_unknown(self, db, root):
        with pytest.raises(NotFoundError):
            workspaces.delete_workspace(db, root.id, uuid.uuid4())


class TestMembers:
    def test_list_members_includes_emails(self, db, member, workspace):
        emails = {m.email for m in workspaces.list_members(db, member.id, workspace.id)}
        assert emails == {"admin@example.com", "member@example.com"}

    def test_outsider_cannot_list(self, db, make_user, workspace):
        outsider = make_user("outsider@example.com")
        with pytest.raises(ForbiddenError):
            workspaces.list_members(db, outsider.id, workspace.id)

    def test_admin_removes_member(self, db, admin, member, workspace):
        workspaces.remove_member(db, admin.id, workspace.id, member.id)
        assert not user_has_access_to_workspace(db, member.id, workspace.id)

    def test_member_cannot_remove(self, db, admin, member, workspace):
        with pytest.raises(ForbiddenError):
            workspaces.remove_member(db, member.id, workspace.id, admin.id)

    def test_remove_unknown_member(self, db, admin, workspace):
        with pytest.raises(NotFoundError):
            workspaces.remove_member(db, admin.id, workspace.id, uuid.uuid4())

    def test_update_role(self, db, admin, member, workspace):
        updated = workspaces.update_member_role(db, admin.id, workspace.id, member.id, "admin")
        assert updated.role == "admin"
        assert can_manage_workspace(db, member.id, workspace.id)
