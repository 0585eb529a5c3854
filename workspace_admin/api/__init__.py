"""API routes."""

from workspace_admin.api.auth import router as auth_router
from workspace_admin.api.internal import router as internal_router
from workspace_admin.api.invitations import router as invitations_router
from workspace_admin.api.workspaces import router as workspaces_router

__all__ = ["auth_router", "internal_router", "invitations_router", "workspaces_router"]
