"""
Outbound e-mail delivery.

Sends through SMTP when a host is configured; otherwise logs the message and
reports success so local development is not blocked. SMTP calls are blocking
and run in a worker thread to keep the event loop free.
"""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Send notification e-mails; ``send`` never raises."""

    def __init__(
        self,
        smtp_host: str = "",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        use_tls: bool = True,
        from_email: str = "noreply@nexucomm.com",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.use_tls = use_tls
        self.from_email = from_email

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "EmailNotifier":
        config = config or default_settings
        return cls(
            smtp_host=config.SMTP_HOST,
            smtp_port=config.SMTP_PORT,
            smtp_user=config.SMTP_USER,
            smtp_password=config.SMTP_PASSWORD,
            use_tls=config.SMTP_USE_TLS,
            from_email=config.EMAIL_FROM,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def _build_message(self, to_email: str, subject: str, text_body: str, html_body: Optional[str]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body or text_body, "html", "utf-8"))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
            if self.use_tls:
                server.starttls()
            if self.smtp_user and self.smtp_password:
                server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

    async def send(self, to_email: str, subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
        """
        Send an e-mail. Returns True on success, False on delivery failure.
        """
        if not self.is_configured:
            logger.info(f"[DEV MODE] Email would be sent to {to_email}: {subject}")
            logger.debug(f"[DEV MODE] Email body: {text_body[:200]}")
            return True

        msg = self._build_message(to_email, subject, text_body, html_body)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"Email sent to {to_email}: {subject}")
        return True
