from .email_sender import (
    EmailDeliveryError,
    EmailSender,
    LogEmailSender,
    SmtpEmailSender,
    build_email_sender,
)
from .notification_service import NotificationService

__all__ = [
    "EmailDeliveryError",
    "EmailSender",
    "LogEmailSender",
    "NotificationService",
    "SmtpEmailSender",
    "build_email_sender",
]
