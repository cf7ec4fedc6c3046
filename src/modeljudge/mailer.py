"""
Mailer - verification and password-reset emails over SMTP
"""

import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from .settings import Settings

logger = logging.getLogger(__name__)


class Mailer:
    """Fire-and-forget SMTP sender; failures are logged, never raised"""

    def __init__(self, host: str, port: int, user: Optional[str] = None,
                 password: Optional[str] = None, use_ssl: bool = True,
                 app_name: str = "AI Model Judge", timeout: float = 30.0,
                 reset_ttl_minutes: int = 60):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_ssl = use_ssl
        self.app_name = app_name
        self.timeout = timeout
        self.reset_ttl_minutes = reset_ttl_minutes

    @classmethod
    def from_settings(cls, config: Settings) -> "Mailer":
        return cls(
            config.smtp_host,
            config.smtp_port,
            config.smtp_user,
            config.smtp_password,
            use_ssl=config.smtp_use_ssl,
            app_name=config.app_name,
            reset_ttl_minutes=config.reset_token_ttl_minutes,
        )

    @property
    def reset_expiry_text(self) -> str:
        minutes = self.reset_ttl_minutes
        if minutes % 60 == 0:
            hours = minutes // 60
            return f"{hours} hour" if hours == 1 else f"{hours} hours"
        return f"{minutes} minutes"

    @property
    def is_configured(self) -> bool:
        return bool(self.user and self.password)

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        smtp.starttls()
        return smtp

    def send(self, to_address: str, subject: str, body: str, html_body: Optional[str] = None) -> bool:
        if not self.is_configured:
            logger.warning(f"SMTP credentials not configured, dropping email to {to_address}")
            return False

        message = EmailMessage()
        message["From"] = f'"{self.app_name}" <{self.user}>'
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content(body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        try:
            with self._connect() as smtp:
                smtp.login(self.user, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_address}: {e}")
            return False

        logger.info(f"Sent '{subject}' to {to_address}")
        return True

    def send_verification_email(self, to_address: str, name: str, verify_url: str) -> bool:
        subject = f"Verify your email for {self.app_name}"
        body = (
            f"Hi {name},\n\n"
            f"Please verify your email to activate your {self.app_name} account.\n\n"
            f"Click this link (or paste it in your browser):\n{verify_url}\n\n"
            "If you did not try to sign up, you can ignore this email.\n\n"
            f"Best,\n{self.app_name} Team"
        )
        # name is user supplied
        safe_name = html.escape(name)
        safe_url = html.escape(verify_url)
        html_body = (
            f"<h2>Verify your email, {safe_name}</h2>"
            f"<p>Thanks for signing up for <strong>{html.escape(self.app_name)}</strong>.</p>"
            f'<p><a href="{safe_url}">Verify my email</a></p>'
            f"<p>Or copy and paste this link into your browser:<br/>{safe_url}</p>"
        )
        return self.send(to_address, subject, body, html_body)

    def send_password_reset_email(self, to_address: str, name: str, reset_url: str) -> bool:
        subject = f"Reset your {self.app_name} password"
        expiry = self.reset_expiry_text
        body = (
            f"Hello {name},\n\n"
            "You requested to reset your password. Open this link to choose a new one:\n"
            f"{reset_url}\n\n"
            f"This link will expire in {expiry}."
        )
        html_body = (
            f"<h2>Hello {html.escape(name)},</h2>"
            "<p>You requested to reset your password.</p>"
            f'<p><a href="{html.escape(reset_url)}">Reset Password</a></p>'
            f"<p>This link will expire in {expiry}.</p>"
        )
        return self.send(to_address, subject, body, html_body)
