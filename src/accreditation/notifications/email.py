"""Notification adapters.

LoggingNotifier is the development default: it renders the message and logs
the subject. SmtpNotifier sends plain-text email through an SMTP relay.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, List, Optional, Tuple

from ..config import Settings
from .ports import NotificationError, NotificationPort
from .templates import render

logger = logging.getLogger(__name__)


class LoggingNotifier(NotificationPort):
    """Renders and logs messages without sending them."""

    def notify(self, email: str, template: str, params: Dict[str, Any]) -> None:
        message = render(template, params)
        logger.info(f"Notification [{template}] to {email}: {message.subject}")


class SmtpNotifier(NotificationPort):
    """Sends rendered templates over SMTP (STARTTLS by default)."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: str = "noreply@accreditation.local",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def notify(self, email: str, template: str, params: Dict[str, Any]) -> None:
        rendered = render(template, params)

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = email
        msg["Subject"] = rendered.subject
        msg.set_content(rendered.text)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery to {email} failed: {e}") from e

        logger.info(f"Notification [{template}] sent to {email}")


class RecordingNotifier(NotificationPort):
    """Keeps sent notifications in memory. Used by tests and local tooling."""

    def __init__(self, fail: bool = False):
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []
        self.fail = fail

    def notify(self, email: str, template: str, params: Dict[str, Any]) -> None:
        if self.fail:
            raise NotificationError("Notification sink unavailable")
        render(template, params)
        self.sent.append((email, template, dict(params)))


def build_notifier(settings: Settings) -> NotificationPort:
    """SMTP when SMTP_HOST is configured, logging otherwise."""
    if settings.SMTP_HOST:
        return SmtpNotifier(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            sender=settings.EMAIL_FROM,
        )
    logger.warning("SMTP_HOST not set, notifications will only be logged")
    return LoggingNotifier()
