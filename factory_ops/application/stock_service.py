from __future__ import annotations

import logging
from typing import Any, Dict

from factory_ops.domain.contracts import NotificationResult
from factory_ops.errors import NotFoundError, ValidationError
from factory_ops.infrastructure.repositories.procurement import ReferenceRepository
from factory_ops.notifications import NotificationService
from factory_ops.ui_strings import render_email


logger = logging.getLogger("factory_ops.stock")


class StockService:
    """Watches raw material and product stock after every decrease."""

    def __init__(
        self,
        notifications: NotificationService,
        *,
        recipient: str,
        threshold: int = 10,
        references: ReferenceRepository | None = None,
    ) -> None:
        self.notifications = notifications
        self.recipient = str(recipient or "").strip()
        self.threshold = int(threshold)
        self.references = references or ReferenceRepository()

    @staticmethod
    def _validate_id(entity_id: int) -> int:
        try:
            value = int(entity_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError(code="stock_id_invalid", details=f"id={entity_id!r}") from exc
        if value <= 0:
            raise ValidationError(code="stock_id_invalid", details=f"id={value}")
        return value

    def _is_critical(self, current: int, previous: int) -> bool:
        return current < self.threshold and current < int(previous)

    def _alert(self, subject: str, body: str, *, kind: str) -> NotificationResult:
        if not self.recipient:
            logger.warning("stock_alert_skipped", extra={"notification_kind": kind})
            return NotificationResult.skipped("stock_alert_recipient_missing")
        return self.notifications.notify(self.recipient, subject, body, kind=kind)

    def check_critical(self, db, material_id: int, previous_quantity: int) -> NotificationResult | None:
        material_id = self._validate_id(material_id)
        material = self.references.get_raw_material(db, material_id)
        if material is None:
            return None
        current = int(material.get("quantity") or 0)
        if not self._is_critical(current, previous_quantity):
            return None

        subject, body = render_email("raw_material_low_stock", name=material.get("name"), quantity=current)
        logger.warning(
            "stock_critical",
            extra={"raw_material_id": material_id, "quantity": current, "previous_quantity": previous_quantity},
        )
        return self._alert(subject, body, kind="raw_material_low_stock")

    def check_critical_product(self, db, product_id: int, previous_quantity: int) -> NotificationResult | None:
        product_id = self._validate_id(product_id)
        product = self.references.get_product(db, product_id)
        if product is None:
            return None
        current = int(product.get("quantity") or 0)
        if not self._is_critical(current, previous_quantity):
            return None

        subject, body = render_email("product_low_stock", name=product.get("name"), quantity=current)
        logger.warning(
            "stock_critical",
            extra={"product_id": product_id, "quantity": current, "previous_quantity": previous_quantity},
        )
        return self._alert(subject, body, kind="product_low_stock")

    @staticmethod
    def _validate_quantity(quantity: Any) -> int:
        try:
            value = int(quantity)
        except (TypeError, ValueError) as exc:
            raise ValidationError(code="stock_quantity_invalid", details=f"quantity={quantity!r}") from exc
        if value < 0:
            raise ValidationError(code="stock_quantity_invalid", details=f"quantity={value}")
        return value

    def adjust_raw_material_quantity(self, db, material_id: int, quantity: Any) -> Dict[str, Any]:
        material_id = self._validate_id(material_id)
        new_quantity = self._validate_quantity(quantity)
        material = self.references.get_raw_material(db, material_id)
        if material is None:
            raise NotFoundError(code="raw_material_not_found", details=f"raw_material_id={material_id}")

        previous = int(material.get("quantity") or 0)
        with db.transaction():
            self.references.set_raw_material_quantity(db, material_id, new_quantity)

        notification = self.check_critical(db, material_id, previous)
        return {
            "id": material_id,
            "quantity": new_quantity,
            "previous_quantity": previous,
            "notification_sent": bool(notification and notification.sent),
        }

    def adjust_product_quantity(self, db, product_id: int, quantity: Any) -> Dict[str, Any]:
        product_id = self._validate_id(product_id)
        new_quantity = self._validate_quantity(quantity)
        product = self.references.get_product(db, product_id)
        if product is None:
            raise NotFoundError(code="product_not_found", details=f"product_id={product_id}")

        previous = int(product.get("quantity") or 0)
        with db.transaction():
            self.references.set_product_quantity(db, product_id, new_quantity)

        notification = self.check_critical_product(db, product_id, previous)
        return {
            "id": product_id,
            "quantity": new_quantity,
            "previous_quantity": previous,
            "notification_sent": bool(notification and notification.sent),
        }
