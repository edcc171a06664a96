"""
Email Service - SMTP delivery for verification codes, password resets and support mail
"""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from config.settings import settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    Sends transactional email over SMTP.

    When SMTP_HOST is not configured the message is logged instead of sent,
    which keeps registration and login usable in local development.
    """

    def __init__(self):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = settings.smtp_from

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    def _send_sync(self, to: str, subject: str, text_body: str, html_body: str = None) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.attach(MIMEText(text_body, "plain"))
        if html_body:
            msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(self.host, self.port, timeout=15) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg)

    async def send_email(self, to: str, subject: str, text_body: str, html_body: str = None) -> bool:
        """
        Send an email without blocking the event loop.

        Returns:
            True if the message was handed to the SMTP server, False otherwise
        """
        if not self.is_configured:
            logger.info(f"SMTP not configured; email to {to} not sent. Subject: {subject}")
            return False

        try:
            await asyncio.to_thread(self._send_sync, to, subject, text_body, html_body)
            logger.info(f"Email sent to {to}: {subject}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}", exc_info=True)
            return False

    async def send_verification_code(self, to: str, code: str) -> bool:
        return await self.send_email(
            to,
            "Verify your WillTank email",
            f"Your WillTank verification code is {code}. It expires in 30 minutes.",
        )

    async def send_login_code(self, to: str, code: str) -> bool:
        return await self.send_email(
            to,
            "Your WillTank sign-in code",
            f"Your WillTank sign-in code is {code}. It expires in 10 minutes. "
            "If you did not try to sign in, change your password.",
        )

    async def send_password_reset(self, to: str, token: str) -> bool:
        reset_url = f"{settings.frontend_url}/auth/reset-password?token={token}"
        return await self.send_email(
            to,
            "Reset your WillTank password",
            f"Use this link to choose a new password: {reset_url}\n"
            "The link expires in 60 minutes. If you did not request a reset, ignore this email.",
        )

    async def send_enterprise_inquiry(self, inquiry: dict) -> bool:
        lines = [f"{key}: {value}" for key, value in inquiry.items() if value]
        return await self.send_email(
            settings.support_email,
            f"Enterprise plan inquiry from {inquiry.get('name')}",
            "\n".join(lines),
        )
