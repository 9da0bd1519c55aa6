from __future__ import annotations

from typing import Any, Dict

from factory_ops.ui_strings import error_message


class AppError(Exception):
    """Base of every error the API turns into a JSON response.

    ``code`` is the machine-readable identifier sent as ``error``; it also
    picks the user-facing message from ``ui_strings`` unless ``message_key``
    overrides it. ``payload`` is merged into the response body.
    """

    default_code = "system_error"
    default_http_status = 500
    default_critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        self.code = (code or self.default_code).strip()
        self.message_key = (message_key or self.code).strip()
        self.http_status = int(http_status or self.default_http_status)
        self.critical = self.default_critical if critical is None else bool(critical)
        self.details = (details or "").strip() or None
        self.payload = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        return error_message(self.message_key, error_message("unexpected_error"))

    def to_response_payload(self, request_id: str) -> Dict[str, Any]:
        body: Dict[str, Any] = dict(self.payload)
        body.update(error=self.code, message=self.user_message(), request_id=request_id)
        return body


class ValidationError(AppError):
    default_code = "validation_error"
    default_http_status = 400
    default_critical = False


class NotFoundError(AppError):
    default_code = "not_found"
    default_http_status = 404
    default_critical = False


class ConflictError(AppError):
    """Illegal state transition or a resource already finalised."""

    default_code = "state_conflict"
    default_http_status = 409
    default_critical = False


class UnauthorizedError(AppError):
    default_code = "token_invalid"
    default_http_status = 401
    default_critical = False


class NotificationError(AppError):
    """The notification cannot be addressed, e.g. the supplier has no email."""

    default_code = "notification_failed"
    default_http_status = 422
    default_critical = False


class SystemError(AppError):
    default_code = "system_error"
    default_http_status = 500
    default_critical = True
