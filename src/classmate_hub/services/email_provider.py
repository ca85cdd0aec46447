"""
Email Provider Service
Adapter pattern for sending emails (dev logging vs production SMTP)
"""
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from urllib.parse import quote

from .email_templates import PasswordResetEmailTemplate, VerificationEmailTemplate

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    """Email message structure"""
    to: str
    subject: str
    html_body: str
    text_body: Optional[str] = None
    from_address: Optional[str] = None


class EmailProvider(ABC):
    """
    Abstract email provider interface

    Implementations:
    - DevEmailProvider: Logs emails to console (development)
    - SMTPEmailProvider: Sends via SMTP (production)
    """

    @abstractmethod
    def send(self, message: EmailMessage) -> bool:
        """
        Send an email

        Args:
            message: Email message to send

        Returns:
            True if sent successfully, False otherwise
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is configured and ready to send"""
        pass


class DevEmailProvider(EmailProvider):
    """Development email provider - logs emails instead of sending"""

    def send(self, message: EmailMessage) -> bool:
        logger.info("=" * 60)
        logger.info("EMAIL (DEV MODE - NOT ACTUALLY SENT)")
        logger.info("=" * 60)
        logger.info(f"To: {message.to}")
        logger.info(f"From: {message.from_address or 'noreply@example.com'}")
        logger.info(f"Subject: {message.subject}")
        logger.info("-" * 60)
        logger.info(f"Text Body:\n{message.text_body or message.html_body}")
        logger.info("=" * 60)
        return True

    def is_available(self) -> bool:
        return True


class SMTPEmailProvider(EmailProvider):
    """
    SMTP email provider for production

    Port 465 uses implicit TLS (SMTP_SSL); any other port upgrades with STARTTLS.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        from_address: str,
        timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_address = from_address
        self.timeout = timeout

    def _build(self, message: EmailMessage) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = message.subject
        msg['From'] = message.from_address or self.from_address
        msg['To'] = message.to
        if message.text_body:
            msg.attach(MIMEText(message.text_body, 'plain'))
        msg.attach(MIMEText(message.html_body, 'html'))
        return msg

    def send(self, message: EmailMessage) -> bool:
        """Send email via SMTP"""
        msg = self._build(message)
        try:
            if self.port == 465:
                server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
                server.starttls()
            with server:
                server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{message.subject}': {type(e).__name__}: {e}")
            return False

        logger.info(f"Email sent: {message.subject}")
        return True

    def is_available(self) -> bool:
        return all([self.host, self.port, self.user, self.password, self.from_address])


def build_email_provider(settings) -> EmailProvider:
    """
    SMTPEmailProvider when SMTP_HOST, SMTP_USER and SMTP_PASSWORD are set,
    otherwise DevEmailProvider
    """
    if settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD:
        logger.info(f"Email provider: SMTP ({settings.SMTP_HOST}:{settings.SMTP_PORT})")
        return SMTPEmailProvider(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            from_address=settings.SMTP_FROM_ADDRESS,
        )

    if not settings.is_dev and settings.ENV != "test":
        logger.warning("SMTP is not configured; emails will only be logged")
    else:
        logger.info("Email provider: DevEmailProvider (logs to console only)")
    return DevEmailProvider()


def _send_templated(provider: EmailProvider, template: type, to: str, url: str,
                    name: Optional[str], from_address: Optional[str]) -> bool:
    message = EmailMessage(
        to=to,
        subject=template.subject,
        html_body=template.render_html(url, name=name),
        text_body=template.render_plain_text(url, name=name),
        from_address=from_address,
    )
    return provider.send(message)


def send_verification_email(provider: EmailProvider, email: str, token: str, app_url: str,
                            name: Optional[str] = None, from_address: Optional[str] = None) -> bool:
    """
    Send the email verification link

    Returns:
        True if the provider accepted the message
    """
    url = f"{app_url.rstrip('/')}/verify-email?token={quote(token, safe='')}"
    return _send_templated(provider, VerificationEmailTemplate, email, url, name, from_address)


def send_password_reset_email(provider: EmailProvider, email: str, token: str, app_url: str,
                              name: Optional[str] = None, from_address: Optional[str] = None) -> bool:
    """Send the password reset link"""
    url = f"{app_url.rstrip('/')}/reset-password?token={quote(token, safe='')}"
    return _send_templated(provider, PasswordResetEmailTemplate, email, url, name, from_address)
