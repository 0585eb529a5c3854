"""Email delivery — invitation and email-confirmation messages over SMTP."""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from workspace_admin.config import get_settings
from workspace_admin.services.errors import MailDeliveryError

logger = logging.getLogger(__name__)

_BUTTON_STYLE = (
    "background-color:#faad14;color:white;padding:12px 24px;"
    "text-decoration:none;border-radius:4px;font-weight:bold;"
)


class Mailer(Protocol):
    """Mail delivery collaborator. Raises MailDeliveryError on failure."""

    def send(self, to: str, subject: str, html_body: str, text_body: str) -> None: ...


class SmtpMailer:
    """Deliver multipart (text + HTML) mail through the configured SMTP relay."""

    def __init__(self, settings=None) -> None:
        self.settings = settings if settings is not None else get_settings()

    def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        if not to:
            logger.warning("email_send_skipped: no recipient")
            raise MailDeliveryError("No recipient")

        smtp_host = getattr(self.settings, "smtp_host", "")
        if not smtp_host:
            logger.warning("email_send_skipped: SMTP host not configured")
            raise MailDeliveryError("SMTP host not configured")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = getattr(self.settings, "smtp_from", "")
        msg["To"] = to
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(smtp_host, getattr(self.settings, "smtp_port", 587)) as server:
                server.starttls()
                smtp_user = getattr(self.settings, "smtp_user", "")
                smtp_password = getattr(self.settings, "smtp_password", "")
                if smtp_user:
                    server.login(smtp_user, smtp_password)
                server.sendmail(msg["From"], [to], msg.as_string())
        except smtplib.SMTPAuthenticationError as exc:
            logger.error("email_auth_failed: could not authenticate with SMTP server")
            raise MailDeliveryError("Could not authenticate with SMTP server") from exc
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("email_send_failed: recipient=%s error=%s", to, exc)
            raise MailDeliveryError(f"Failed to send email: {exc}") from exc
        logger.info("email_sent: recipient=%s subject=%r", to, subject)


def get_mailer() -> Mailer:
    """FastAPI dependency returning the configured mailer."""
    return SmtpMailer()


def _wrap_html(heading: str, body: str) -> str:
    return (
        '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">'
        '<div style="background-color:#faad14;padding:20px;text-align:center;color:white;">'
        f"<h1>{heading}</h1></div>"
        '<div style="padding:20px;border:1px solid #e8e8e8;border-top:none;">'
        f"{body}</div></div>"
    )


def _button(link: str, label: str) -> str:
    href = html.escape(link, quote=True)
    return (
        '<div style="text-align:center;margin:30px 0;">'
        f'<a href="{href}" style="{_BUTTON_STYLE}">{label}</a></div>'
    )


def build_invitation_email(
    *,
    workspace_name: str,
    role: str,
    link: str,
    existing_user: bool,
    expiry_days: int,
    brand: str,
) -> tuple[str, str, str]:
    """Return (subject, html, text) for an invitation.

    Existing accounts are asked to sign in and join; new addresses get the
    two-step setup copy (set password, then confirm email).
    """
    ws = html.escape(workspace_name)
    role_html = html.escape(role)
    brand_html = html.escape(brand)
    if existing_user:
        subject = f"You've been invited to join {workspace_name}"
        body = (
            "<p>Hello,</p>"
            f"<p>You've been invited to join the <strong>{ws}</strong> workspace "
            f"as a <strong>{role_html}</strong>.</p>"
            "<p>You already have an account. Click the button below and sign in "
            "to accept the invitation:</p>"
            + _button(link, "Accept Invitation")
            + f"<p>This link will expire in {expiry_days} days.</p>"
            f"<p>Best regards,<br>The {brand_html} Team</p>"
        )
        text = (
            f"You've been invited to join {workspace_name} as a {role}. "
            f"Sign in to accept the invitation: {link}\n"
            f"This link will expire in {expiry_days} days."
        )
        return subject, _wrap_html(f"Join {ws}", body), text

    subject = f"Set Up Your Password for {workspace_name}"
    body = (
        "<p>Hello,</p>"
        f"<p>You've been invited to join the <strong>{ws}</strong> workspace "
        f"as a <strong>{role_html}</strong>.</p>"
        "<p>This is step 1 of 2 in the account setup process:</p>"
        "<ol><li><strong>Set up your password</strong> (this email)</li>"
        "<li>Confirm your email address (you'll receive another email after "
        "completing step 1)</li></ol>"
        + _button(link, "Set Up Password")
        + f"<p>This link will expire in {expiry_days} days.</p>"
        "<p>If you have any questions, please contact your workspace administrator.</p>"
        f"<p>Best regards,<br>The {brand_html} Team</p>"
    )
    text = (
        f"You've been invited to join {workspace_name} as a {role}. "
        f"Click the link to set up your password: {link}\n"
        "After setting your password, you'll receive a second email to confirm "
        f"your email address. This link will expire in {expiry_days} days."
    )
    return subject, _wrap_html(f"Set Up Your {brand_html} Account", body), text


def build_confirmation_email(*, link: str, expiry_hours: int, brand: str) -> tuple[str, str, str]:
    """Return (subject, html, text) for the email-address confirmation message."""
    subject = f"Confirm your email for {brand}"
    body = (
        "<p>Hello,</p>"
        "<p>Please confirm your email address to finish setting up your account.</p>"
        + _button(link, "Confirm Email")
        + f"<p>This link will expire in {expiry_hours} hours.</p>"
    )
    text = (
        f"Confirm your email address to finish setting up your account: {link}\n"
        f"This link will expire in {expiry_hours} hours."
    )
    return subject, _wrap_html("Confirm Your Email", body), text
