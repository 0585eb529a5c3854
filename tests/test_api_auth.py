"""Tests for authentication, registration and confirmation routes."""

from __future__ import annotations

import uuid
from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from tests.test_constants import (
    TEST_INTERNAL_SERVICE_TOKEN,
    TEST_INVITEE_EMAIL,
    TEST_PASSWORD,
    TEST_PASSWORD_WEAK,
    TEST_PASSWORD_WRONG,
)
from workspace_admin.models import InvitationStatus, WorkspaceMember
from workspace_admin.services import invitation_issuer
from workspace_admin.services import invitation_ledger as ledger
from workspace_admin.services.invitation_links import parse_acceptance_link


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com")


@pytest.fixture
def workspace(make_workspace, admin):
    return make_workspace("Acme", admin=admin)


@pytest.fixture
def link(db, admin, workspace, mailer, provider):
    result = invitation_issuer.issue(
        db, admin.id, TEST_INVITEE_EMAIL, workspace.id, "admin", mailer=mailer, provider=provider
    )
    return parse_acceptance_link(result.link)


def _register_body(link, password=TEST_PASSWORD) -> dict:
    return {
        "email": link.email,
        "password": password,
        "workspaceId": link.workspace_id,
        "role": link.role,
        "workspaceName": link.workspace_name,
        "token": link.token,
    }


def _confirmation_token(mailer) -> str:
    text = mailer.last_to(TEST_INVITEE_EMAIL)["text"]
    url = next(part for part in text.split() if "/api/auth/confirm?" in part)
    return parse_qs(urlparse(url).query)["token"][0]


def _membership(db, workspace, user_id):
    return db.get(WorkspaceMember, {"workspace_id": workspace.id, "user_id": user_id})


# ── /api/auth/register ────────────────────────────────────────────


class TestRegister:
    def test_new_account_is_created_unconfirmed(
        self, client_with_db: TestClient, db, workspace, link
    ):
        response = client_with_db.post("/api/auth/register", json=_register_body(link))
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["state"] == "account_created"
        assert data["created"] is True
        assert "access_token" not in response.cookies

    def test_weak_password_returns_400(self, client_with_db: TestClient, link):
        response = client_with_db.post(
            "/api/auth/register", json=_register_body(link, TEST_PASSWORD_WEAK)
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_existing_account_wrong_password_returns_409(
        self, client_with_db: TestClient, link, make_user
    ):
        make_user(TEST_INVITEE_EMAIL)
        response = client_with_db.post(
            "/api/auth/register", json=_register_body(link, TEST_PASSWORD_WRONG)
        )
        assert response.status_code == 409
        assert response.json()["errorType"] == "AlreadyRegisteredError"

    def test_existing_confirmed_account_joins_and_gets_session(
        self, client_with_db: TestClient, db, workspace, link, make_user
    ):
        user = make_user(TEST_INVITEE_EMAIL)
        response = client_with_db.post("/api/auth/register", json=_register_body(link))
        data = response.json()
        assert data["state"] == "account_confirmed"
        assert data["outcome"] == "reconciled"
        assert "access_token" in response.cookies
        assert _membership(db, workspace, user.id).role == "admin"


# ── /api/auth/confirm (email link) ────────────────────────────────


def test_confirmation_link_completes_acceptance(
    client_with_db: TestClient, db, workspace, link, mailer
):
    created = client_with_db.post("/api/auth/register", json=_register_body(link)).json()
    token = _confirmation_token(mailer)

    response = client_with_db.get("/api/auth/confirm", params={"token": token})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["outcome"] == "reconciled"
    assert data["userId"] == created["userId"]
    assert data["workspaces"][0]["role"] == "admin"
    assert _membership(db, workspace, uuid.UUID(created["userId"])).role == "admin"
    inv = ledger.get_by_key(db, workspace.id, TEST_INVITEE_EMAIL)
    assert inv.status == InvitationStatus.ACCEPTED


def test_confirmation_link_bad_token(client_with_db: TestClient):
    response = client_with_db.get("/api/auth/confirm", params={"token": "garbage"})
    assert response.status_code == 400


def test_confirmation_link_missing_token(client_with_db: TestClient):
    response = client_with_db.get("/api/auth/confirm")
    assert response.status_code == 400


# ── /api/auth/confirmEmail ────────────────────────────────────────


class TestConfirmEmail:
    def test_self_call_reconciles(
        self, client_with_db: TestClient, db, workspace, admin, mailer, provider, make_user,
        auth_headers,
    ):
        user = make_user(TEST_INVITEE_EMAIL)
        invitation_issuer.issue(
            db, admin.id, TEST_INVITEE_EMAIL, workspace.id, mailer=mailer, provider=provider
        )
        response = client_with_db.post(
            "/api/auth/confirmEmail",
            json={"email": TEST_INVITEE_EMAIL, "userId": str(user.id)},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        assert response.json()["outcome"] == "reconciled"
        assert _membership(db, workspace, user.id).role == "member"

    def test_service_credential_call(self, client_with_db: TestClient, make_user):
        user = make_user(TEST_INVITEE_EMAIL)
        response = client_with_db.post(
            "/api/auth/confirmEmail",
            json={"email": TEST_INVITEE_EMAIL, "userId": str(user.id)},
            headers={"X-Internal-Token": TEST_INTERNAL_SERVICE_TOKEN},
        )
        assert response.status_code == 200
        assert response.json()["outcome"] == "no_pending_invitation"
        assert response.json()["success"] is True

    def test_other_users_account_forbidden(
        self, client_with_db: TestClient, make_user, auth_headers
    ):
        victim = make_user(TEST_INVITEE_EMAIL)
        attacker = make_user("attacker@example.com")
        response = client_with_db.post(
            "/api/auth/confirmEmail",
            json={"email": TEST_INVITEE_EMAIL, "userId": str(victim.id)},
            headers=auth_headers(attacker),
        )
        assert response.status_code == 403

    def test_anonymous_forbidden(self, client_with_db: TestClient, make_user):
        user = make_user(TEST_INVITEE_EMAIL)
        response = client_with_db.post(
            "/api/auth/confirmEmail",
            json={"email": TEST_INVITEE_EMAIL, "userId": str(user.id)},
        )
        assert response.status_code == 403

    def test_wrong_service_token_forbidden(self, client_with_db: TestClient, make_user):
        user = make_user(TEST_INVITEE_EMAIL)
        response = client_with_db.post(
            "/api/auth/confirmEmail",
            json={"email": TEST_INVITEE_EMAIL, "userId": str(user.id)},
            headers={"X-Internal-Token": "wrong-token"},
        )
        assert response.status_code == 403

    def test_unconfigured_service_token_grants_nothing(
        self, client_with_db: TestClient, make_user, monkeypatch
    ):
        monkeypatch.setattr(
            "workspace_admin.api.deps.get_settings",
            lambda: SimpleNamespace(internal_service_token=""),
        )
        user = make_user(TEST_INVITEE_EMAIL)
        response = client_with_db.post(
            "/api/auth/confirmEmail",
            json={"email": TEST_INVITEE_EMAIL, "userId": str(user.id)},
            headers={"X-Internal-Token": TEST_INTERNAL_SERVICE_TOKEN},
        )
        assert response.status_code == 403

    def test_unconfirmed_identity_is_not_success(
        self, client_with_db: TestClient, make_user, auth_headers
    ):
        user = make_user(TEST_INVITEE_EMAIL, confirmed=False)
        response = client_with_db.post(
            "/api/auth/confirmEmail",
            json={"email": TEST_INVITEE_EMAIL, "userId": str(user.id)},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["outcome"] == "not_yet_confirmed"

    def test_malformed_user_id(self, client_with_db: TestClient):
        response = client_with_db.post(
            "/api/auth/confirmEmail",
            json={"userId": "nope"},
            headers={"X-Internal-Token": TEST_INTERNAL_SERVICE_TOKEN},
        )
        assert response.status_code == 400


# ── /api/auth/login ───────────────────────────────────────────────


class TestLogin:
    def test_login_sets_cookie(self, client_with_db: TestClient, make_user):
        user = make_user("jane@example.com")
        response = client_with_db.post(
            "/api/auth/login", json={"email": "Jane@Example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["userId"] == str(user.id)
        assert data["joinedWorkspaces"] == []
        assert "access_token" in response.cookies

    def test_wrong_password_returns_401(self, client_with_db: TestClient, make_user):
        make_user("jane@example.com")
        response = client_with_db.post(
            "/api/auth/login", json={"email": "jane@example.com", "password": TEST_PASSWORD_WRONG}
        )
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_unconfirmed_returns_403(self, client_with_db: TestClient, make_user):
        make_user("jane@example.com", confirmed=False)
        response = client_with_db.post(
            "/api/auth/login", json={"email": "jane@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 403
        assert response.json()["errorType"] == "EmailNotConfirmedError"

    def test_missing_password_returns_400(self, client_with_db: TestClient):
        response = client_with_db.post("/api/auth/login", json={"email": "jane@example.com"})
        assert response.status_code == 400

    def test_login_with_invitation_params_joins(
        self, client_with_db: TestClient, db, workspace, link, make_user
    ):
        user = make_user(TEST_INVITEE_EMAIL)
        response = client_with_db.post(
            "/api/auth/login",
            json={
                "email": TEST_INVITEE_EMAIL,
                "password": TEST_PASSWORD,
                "workspace_id": link.workspace_id,
                "invite_role": link.role,
                "workspace_name": link.workspace_name,
                "invite_token": link.token,
            },
        )
        assert response.json()["joinedWorkspaces"] == [str(workspace.id)]
        assert _membership(db, workspace, user.id).role == "admin"


# ── /api/auth/me and logout ───────────────────────────────────────


def test_me_requires_auth(client_with_db: TestClient):
    assert client_with_db.get("/api/auth/me").status_code == 401


def test_me_returns_user(client_with_db: TestClient, make_user, auth_headers):
    user = make_user("root@example.com", superadmin=True)
    response = client_with_db.get("/api/auth/me", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["email"] == "root@example.com"
    assert response.json()["global_role"] == "superadmin"


def test_me_with_session_cookie(client_with_db: TestClient, make_user):
    make_user("jane@example.com")
    client_with_db.post(
        "/api/auth/login", json={"email": "jane@example.com", "password": TEST_PASSWORD}
    )
    assert client_with_db.get("/api/auth/me").json()["email"] == "jane@example.com"


def test_logout_clears_cookie(client_with_db: TestClient):
    response = client_with_db.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"detail": "Logged out"}


def test_resend_confirmation_never_reveals_account(client_with_db: TestClient, mailer):
    response = client_with_db.post(
        "/api/auth/resend-confirmation", json={"email": "ghost@example.com"}
    )
    assert response.json() == {"success": True, "error": None}
    assert mailer.sent == []
