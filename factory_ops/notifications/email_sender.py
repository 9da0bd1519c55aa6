from __future__ import annotations

import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Any, Mapping


logger = logging.getLogger("factory_ops.notifications.email")


class EmailDeliveryError(RuntimeError):
    pass


class EmailSender(ABC):
    """Transport contract used by the notification service."""

    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one message or raise EmailDeliveryError."""


class LogEmailSender(EmailSender):
    """Development transport: writes the message to the log instead of sending it."""

    def __init__(self, sender: str) -> None:
        self.sender = sender

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info(
            "email_logged",
            extra={
                "email_from": self.sender,
                "email_to": to,
                "email_subject": subject,
                "email_body_chars": len(body or ""),
            },
        )


class SmtpEmailSender(EmailSender):
    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout_seconds: int = 20,
    ) -> None:
        self.host = host
        self.port = int(port)
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = bool(use_tls)
        self.timeout_seconds = int(timeout_seconds)

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def send(self, to: str, subject: str, body: str) -> None:
        message = self._build_message(to, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as client:
                if self.use_tls:
                    client.starttls(context=ssl.create_default_context())
                if self.username:
                    client.login(self.username, self.password or "")
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"Falha SMTP ({self.host}:{self.port}): {exc}") from exc


def build_email_sender(config: Mapping[str, Any]) -> EmailSender:
    mode = str(config.get("EMAIL_MODE") or "log").strip().lower()
    sender = str(config.get("EMAIL_FROM") or "").strip()
    if mode == "log":
        return LogEmailSender(sender)
    if mode != "smtp":
        raise EmailDeliveryError(f"EMAIL_MODE invalido: {mode}")
    return SmtpEmailSender(
        host=str(config.get("SMTP_HOST") or "localhost"),
        port=int(config.get("SMTP_PORT") or 587),
        sender=sender,
        username=config.get("SMTP_USERNAME") or None,
        password=config.get("SMTP_PASSWORD") or None,
        use_tls=bool(config.get("SMTP_USE_TLS", True)),
        timeout_seconds=int(config.get("SMTP_TIMEOUT_SECONDS") or 20),
    )
