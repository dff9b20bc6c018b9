"""Email notifications: verification codes and welcome mail."""

import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import aiosmtplib
import httpx

from gatehouse.config import Settings

logger = logging.getLogger(__name__)


class EmailBackend(ABC):
    """Abstract base class for email backends."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address
            subject: Email subject
            html: HTML content
            text: Plain text content (optional)

        Returns:
            True if sent successfully
        """


class ConsoleEmailBackend(EmailBackend):
    """Email backend that logs to console (for development)."""

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        logger.info(
            f"\n{'=' * 60}\n"
            f"EMAIL (console backend - not sent)\n"
            f"To: {to}\n"
            f"Subject: {subject}\n"
            f"{'=' * 60}\n"
            f"{text or html}\n"
            f"{'=' * 60}\n"
        )
        return True


class SMTPEmailBackend(EmailBackend):
    """Email backend using SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        if text:
            message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email via SMTP to {to}: {e!r}")
            return False
        logger.info(f"Email sent via SMTP to {to}")
        return True


class ResendEmailBackend(EmailBackend):
    """Email backend using the Resend API."""

    api_url = "https://api.resend.com/emails"

    def __init__(self, api_key: str, from_address: str, timeout: float = 30.0):
        self.api_key = api_key
        self.from_address = from_address
        self.timeout = timeout

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.from_address,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                        "text": text,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Resend API error: {e.response.status_code} - {e.response.text}")
                return False
            except httpx.HTTPError as e:
                logger.error(f"Failed to send email via Resend to {to}: {e!r}")
                return False
        logger.info(f"Email sent via Resend to {to}")
        return True


def get_email_backend(settings: Settings) -> EmailBackend:
    """Build the configured email backend."""
    if settings.email_backend == "console":
        return ConsoleEmailBackend()
    if settings.email_backend == "smtp":
        return SMTPEmailBackend(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.email_from,
        )
    if settings.email_backend == "resend":
        return ResendEmailBackend(
            api_key=settings.resend_api_key,
            from_address=settings.email_from,
        )
    raise ValueError(f"Unknown email backend: {settings.email_backend}")


class EmailService:
    """Sends the service's transactional emails."""

    def __init__(self, backend: EmailBackend, settings: Settings):
        self.backend = backend
        self.settings = settings

    async def send_otp_code(self, email: str, code: str) -> bool:
        """Send a verification code used before account creation."""
        minutes = self.settings.otp_expiration_minutes
        subject = "Your verification code"
        html = f"""
<div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h2 style="margin-top: 0;">Verify your email</h2>
    <p>Enter this code to finish creating your account:</p>
    <p style="font-size: 32px; font-weight: 600; letter-spacing: 6px; text-align: center;">{code}</p>
    <p style="color: #666; font-size: 14px;">The code expires in {minutes} minutes. If you didn't request it, you can ignore this email.</p>
</div>
"""
        text = (
            f"Your verification code is: {code}\n\n"
            f"The code expires in {minutes} minutes. "
            "If you didn't request it, you can ignore this email.\n"
        )
        return await self.backend.send(to=email, subject=subject, html=html, text=text)

    async def send_welcome(self, email: str, username: str) -> bool:
        """Send the welcome email after registration."""
        app_url = self.settings.app_url
        subject = "Welcome aboard"
        html = f"""
<div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h2 style="margin-top: 0;">Welcome, {escape(username)}!</h2>
    <p>Your account is ready. Sign in any time at <a href="{app_url}">{app_url}</a>.</p>
</div>
"""
        text = f"Welcome, {username}!\n\nYour account is ready. Sign in any time at {app_url}.\n"
        return await self.backend.send(to=email, subject=subject, html=html, text=text)
