from __future__ import annotations

import logging

from factory_ops.domain.contracts import NotificationResult
from factory_ops.errors import ValidationError
from factory_ops.notifications.email_sender import EmailSender
from factory_ops.observability import observe_notification


logger = logging.getLogger("factory_ops.notifications")


class NotificationService:
    def __init__(self, sender: EmailSender) -> None:
        self.sender = sender

    def notify(self, to: str | None, subject: str | None, body: str | None, *, kind: str = "generic") -> NotificationResult:
        """Send one email and report the outcome.

        Blank fields are a caller bug and raise ValidationError. Transport
        failures never propagate: they are logged and returned as
        ``sent=False`` so state already committed by the caller stands.
        """
        recipient = str(to or "").strip()
        subject_text = str(subject or "").strip()
        body_text = str(body or "").strip()
        if not recipient or not subject_text or not body_text:
            raise ValidationError(
                code="notification_fields_required",
                details=f"notification {kind} missing recipient, subject or body",
            )

        try:
            self.sender.send(recipient, subject_text, body_text)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "notification_failed",
                extra={"notification_kind": kind, "email_to": recipient},
            )
            observe_notification(kind, "failed")
            return NotificationResult(sent=False, error=str(exc) or exc.__class__.__name__)

        logger.info("notification_sent", extra={"notification_kind": kind, "email_to": recipient})
        observe_notification(kind, "sent")
        return NotificationResult(sent=True)
