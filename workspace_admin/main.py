"""
Workspace Admin FastAPI application entry point.

Flow: invite → accept (register / sign in) → confirm email → reconcile membership
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from workspace_admin import __version__
from workspace_admin.config import get_settings
from workspace_admin.db.session import check_db_connection, engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("Workspace Admin starting")
    try:
        try:
            check_db_connection()
            logger.info("Database connection verified")
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise
        settings = get_settings()
        if not settings.secret_key:
            logger.warning("SECRET_KEY is not set; tokens cannot be issued securely")
        if not settings.internal_service_token:
            logger.info("INTERNAL_SERVICE_TOKEN not set; service-credential endpoints disabled")

        yield
    finally:
        logger.info("Workspace Admin shutting down")
        engine.dispose()
        logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    from workspace_admin.api import (
        auth_router,
        internal_router,
        invitations_router,
        workspaces_router,
    )

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(invitations_router, prefix="/api/invitations", tags=["invitations"])
    app.include_router(workspaces_router, prefix="/api/workspaces", tags=["workspaces"])

    # Internal job endpoints (cron/scripts, token-authenticated)
    app.include_router(internal_router, tags=["internal"])

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint. Confirms DB connectivity."""
        from sqlalchemy import text

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                "status": "ok",
                "version": __version__,
                "database": "connected",
            }
        except Exception:
            from fastapi.responses import JSONResponse

            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "version": __version__,
                    "database": "disconnected",
                },
            )

    return app


app = create_app()
