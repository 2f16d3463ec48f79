"""
app/services/email_service.py

Purpose: Member emails over SMTP

- Gmail / Outlook presets or a custom SMTP server, read from library settings
- {{variable}} substitution in the admin-editable templates
- Welcome, due reminder, payment confirmation and test emails
"""

import aiosmtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Dict, Any, Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.models.library_settings import LibrarySettings
from app.models.user import User
from utils.constants import (
    SMTP_PRESETS,
    EMAIL_SUBJECT_WELCOME,
    EMAIL_SUBJECT_DUE_REMINDER,
    EMAIL_SUBJECT_PAYMENT_CONFIRMATION,
    EMAIL_SUBJECT_TEST,
    EMAIL_TEST_BODY,
)
from utils.time_utils import format_date

logger = get_logger(__name__)


@dataclass
class SmtpConfig:
    host: str
    port: int
    secure: bool
    user: str
    password: str


def resolve_smtp_config(library_settings: LibrarySettings) -> Optional[SmtpConfig]:
    """
    SMTP connection for the configured provider, or None when email is not set up.
    """
    if not library_settings.has_email_config:
        return None

    provider = library_settings.email_provider
    if provider in SMTP_PRESETS:
        preset = SMTP_PRESETS[provider]
        host, port, secure = preset["host"], preset["port"], preset["secure"]
    else:
        if not library_settings.smtp_host or library_settings.smtp_port is None:
            return None
        host = library_settings.smtp_host
        port = library_settings.smtp_port
        secure = bool(library_settings.smtp_secure)

    return SmtpConfig(
        host=host,
        port=port,
        secure=secure,
        user=library_settings.email_user,
        password=library_settings.email_password,
    )


def render_template(template: str, variables: Dict[str, Any]) -> str:
    """Replaces every {{key}}; unknown placeholders are left as written."""
    rendered = template
    for key, value in variables.items():
        rendered = rendered.replace(f"{{{{{key}}}}}", "" if value is None else str(value))
    return rendered


def template_variables(user: User, **extra) -> Dict[str, Any]:
    variables = {
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "address": user.address,
        "seatNumber": user.seat_number,
        "slot": user.slot,
        "idType": user.id_type or "N/A",
        "validTill": format_date(user.next_due_date),
    }
    variables.update(extra)
    return variables


class EmailService:
    """SMTP email sender configured from library settings on every call"""

    def __init__(self):
        self.timeout = settings.SMTP_TIMEOUT_SECONDS

    async def send_email(
        self,
        library_settings: LibrarySettings,
        to_email: str,
        subject: str,
        body: str
    ) -> Dict[str, Any]:
        """
        Sends a plain text email.

        Returns:
            {"success": True/False, "error": "Optional error message"}
        """
        config = resolve_smtp_config(library_settings)
        if config is None:
            logger.debug("Email service not configured, skipping email send")
            return {"success": False, "error": "Email service not configured", "skipped": True}

        message = MIMEText(body, "plain", "utf-8")
        message["From"] = config.user
        message["To"] = to_email
        message["Subject"] = subject

        try:
            await aiosmtplib.send(
                message,
                hostname=config.host,
                port=config.port,
                username=config.user,
                password=config.password,
                use_tls=config.secure,
                start_tls=not config.secure,
                timeout=self.timeout
            )
            logger.info(f"📧 Email sent to {to_email}: {subject}")
            return {"success": True}

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return {"success": False, "error": str(e)}

    async def send_welcome_email(self, library_settings: LibrarySettings, user: User) -> Dict[str, Any]:
        body = render_template(library_settings.welcome_email_template, template_variables(user))
        return await self.send_email(library_settings, user.email, EMAIL_SUBJECT_WELCOME, body)

    async def send_due_date_reminder(self, library_settings: LibrarySettings, user: User, due_date) -> Dict[str, Any]:
        body = render_template(
            library_settings.due_date_email_template,
            template_variables(user, dueDate=format_date(due_date))
        )
        return await self.send_email(library_settings, user.email, EMAIL_SUBJECT_DUE_REMINDER, body)

    async def send_payment_confirmation(self, library_settings: LibrarySettings, user: User, amount: int) -> Dict[str, Any]:
        body = render_template(
            library_settings.payment_confirmation_email_template,
            template_variables(user, amount=amount)
        )
        return await self.send_email(library_settings, user.email, EMAIL_SUBJECT_PAYMENT_CONFIRMATION, body)

    async def send_test_email(self, library_settings: LibrarySettings, to_email: str) -> Dict[str, Any]:
        return await self.send_email(library_settings, to_email, EMAIL_SUBJECT_TEST, EMAIL_TEST_BODY)


# Singleton instance
email_service = EmailService()
