"""Authentication, registration and email-confirmation routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.orm import Session

from workspace_admin.api.deps import (
    AUTH_COOKIE,
    error_response,
    get_current_user,
    get_db,
    get_identity_provider,
    is_service_call,
    require_auth,
)
from workspace_admin.config import get_settings
from workspace_admin.models.user import User
from workspace_admin.schemas.auth import (
    ConfirmEmailRequest,
    LoginRequest,
    RegisterRequest,
    ResendConfirmationRequest,
    UserRead,
)
from workspace_admin.services.auth import create_access_token
from workspace_admin.services.errors import (
    EmailNotConfirmedError,
    ForbiddenError,
    ValidationError,
    WorkspaceAdminError,
)
from workspace_admin.services.identity_provider import Identity, IdentityProvider
from workspace_admin.services.invitation_links import LinkParams
from workspace_admin.services.login_sweep import run_login_sweep
from workspace_admin.services.reconciler import (
    ReconcileResult,
    complete_confirmation,
    confirm_and_reconcile,
)
from workspace_admin.services.registration import RegistrationState, register
from workspace_admin.services.validation import normalize_email, parse_uuid
from workspace_admin.services.workspace_access import get_global_role

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookie(response: Response, identity: Identity) -> str:
    token = create_access_token(data={"sub": str(identity.user_id)})
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=60 * 60 * get_settings().access_token_expire_hours,
        path="/",
    )
    return token


def _reconcile_body(result: ReconcileResult) -> dict:
    return {
        "success": result.terminal,
        "error": None if result.terminal else "Email address has not been confirmed yet",
        "outcome": result.outcome.value,
        "userId": str(result.user_id),
        "workspaces": [
            {"workspaceId": str(m.workspace_id), "role": m.role, "created": m.created}
            for m in result.memberships
        ],
    }


@router.post("/register")
def api_register(
    body: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Accept an invitation: create the account, or sign in to an existing one.

    New accounts must confirm their email before joining the workspace.
    """
    link = LinkParams(
        email=body.email,
        workspace_id=body.workspace_id,
        role=body.role,
        workspace_name=body.workspace_name,
        token=body.token,
    )
    try:
        result = register(db, body.email, body.password, link, provider=provider)
    except WorkspaceAdminError as exc:
        logger.info("registration_failed: error=%s", exc)
        return error_response(exc)

    payload = {
        "success": True,
        "error": None,
        "state": result.state.value,
        "userId": str(result.user_id),
        "created": result.created,
    }
    if result.state == RegistrationState.ACCOUNT_CONFIRMED:
        identity = provider.get_identity(result.user_id)
        _set_session_cookie(response, identity)
        if result.reconcile is not None:
            payload["outcome"] = result.reconcile.outcome.value
    return payload


@router.post("/confirmEmail")
def api_confirm_email(
    body: ConfirmEmailRequest,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
    current_user: User | None = Depends(get_current_user),
    x_internal_token: str | None = Header(None),
):
    """Reconcile a confirmed identity's pending invitations.

    Callable by the signed-in user for their own account, or by a trusted
    server holding the service credential. Service calls are audited.
    """
    try:
        user_id = parse_uuid(body.user_id, "userId")
        if is_service_call(x_internal_token):
            logger.warning(
                "service_credential_used: endpoint=confirmEmail user_id=%s email=%s",
                user_id,
                body.email,
            )
        elif current_user is None or current_user.id != user_id:
            raise ForbiddenError("Not authorized to confirm this account")
        email = normalize_email(body.email) if body.email else None
        result = complete_confirmation(db, user_id, email, provider=provider)
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return _reconcile_body(result)


@router.get("/confirm")
def api_confirm_link(
    token: str | None = None,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Target of the confirmation email link: confirm, then reconcile immediately."""
    try:
        if not token:
            raise ValidationError("Missing confirmation token")
        result = confirm_and_reconcile(db, token, provider=provider)
    except WorkspaceAdminError as exc:
        return error_response(exc)
    return _reconcile_body(result)


@router.post("/resend-confirmation")
def api_resend_confirmation(
    body: ResendConfirmationRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Resend the confirmation email. The response never reveals whether the email exists."""
    try:
        email = normalize_email(body.email)
    except ValidationError as exc:
        return error_response(exc)
    sent = provider.send_confirmation(email)
    logger.info("confirmation_resend_requested: email=%s sent=%s", email, sent)
    return {"success": True, "error": None}


@router.post("/login")
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Authenticate, run the invitation sweep, and start a session.

    Also sets an httponly cookie for browser sessions.
    """
    try:
        email = normalize_email(body.email)
        if not body.password:
            raise ValidationError("Password is required")
        identity = provider.sign_in(email, body.password)
        if not identity.email_confirmed:
            raise EmailNotConfirmedError("Please confirm your email address before signing in")
    except WorkspaceAdminError as exc:
        return error_response(exc)

    link = LinkParams(
        email=email,
        workspace_id=body.workspace_id,
        role=body.invite_role,
        workspace_name=body.workspace_name,
        token=body.invite_token,
    )
    sweep = run_login_sweep(db, identity, link, provider=provider)
    token = _set_session_cookie(response, identity)
    return {
        "success": True,
        "error": None,
        "access_token": token,
        "token_type": "bearer",
        "userId": str(identity.user_id),
        "joinedWorkspaces": [str(ws) for ws in sweep.joined_workspaces],
    }


@router.post("/logout")
def logout(response: Response) -> dict:
    """Clear the authentication cookie."""
    response.delete_cookie(key=AUTH_COOKIE, path="/")
    return {"detail": "Logged out"}


@router.get("/me", response_model=UserRead)
def me(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> UserRead:
    """Return the currently authenticated user's information."""
    return UserRead(
        id=current_user.id,
        email=current_user.email,
        email_confirmed_at=current_user.email_confirmed_at,
        global_role=get_global_role(db, current_user.id).value,
    )

