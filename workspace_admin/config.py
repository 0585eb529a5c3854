"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "Workspace Admin"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3; sqlite:// accepted for local runs)
    database_url: str = "postgresql+psycopg://localhost:5432/workspace_admin_dev"
    db_connect_timeout: int = 10  # seconds

    # Security
    secret_key: str = ""
    # Service credential for trusted server-to-server calls (X-Internal-Token).
    # Empty = service path disabled; there is no fallback to elevated access.
    internal_service_token: str = ""
    access_token_expire_hours: int = 24

    # Invitations
    public_base_url: str = "http://localhost:3000"
    invitation_expiry_days: int = 7
    email_confirmation_expiry_hours: int = 48

    # SMTP / Email
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    mail_brand_name: str = "Workspace Admin"

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'workspace_admin_dev')}"
        )
        raw_url = os.getenv("DATABASE_URL", default_url)
        # Ensure psycopg3 driver if URL uses generic postgresql://
        if raw_url.startswith("postgresql://") and not raw_url.startswith("postgresql+psycopg"):
            raw_url = raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
        self.database_url = raw_url
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))

        self.secret_key = os.getenv("SECRET_KEY", "")
        self.internal_service_token = os.getenv("INTERNAL_SERVICE_TOKEN", "")
        self.access_token_expire_hours = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", str(self.access_token_expire_hours))
        )

        self.public_base_url = os.getenv("PUBLIC_BASE_URL", self.public_base_url).rstrip("/")
        self.invitation_expiry_days = int(
            os.getenv("INVITATION_EXPIRY_DAYS", str(self.invitation_expiry_days))
        )
        self.email_confirmation_expiry_hours = int(
            os.getenv(
                "EMAIL_CONFIRMATION_EXPIRY_HOURS",
                str(self.email_confirmation_expiry_hours),
            )
        )

        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.smtp_from = os.getenv("SMTP_FROM", "")
        self.mail_brand_name = os.getenv("MAIL_BRAND_NAME", self.mail_brand_name)
