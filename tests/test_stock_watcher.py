import unittest

from factory_ops.application.stock_service import StockService
from factory_ops.errors import NotFoundError, ValidationError
from tests.helpers.fakes import FailingEmailSender
from tests.helpers.service_case import ServiceTestCase


class StockCriticalityTest(ServiceTestCase):
    sandbox_prefix = "stock_watch"

    def _set_quantity(self, key: str, quantity: int) -> None:
        with self.db.transaction():
            self.db.execute("UPDATE raw_materials SET quantity = ? WHERE id = ?", (quantity, self.ids[key]))

    def test_non_positive_id_is_rejected(self) -> None:
        for material_id in (0, -3):
            with self.subTest(material_id=material_id):
                with self.assertRaises(ValidationError) as ctx:
                    self.stock.check_critical(self.db, material_id, 50)
                self.assertEqual(ctx.exception.code, "stock_id_invalid")

    def test_absent_material_returns_none(self) -> None:
        self.assertIsNone(self.stock.check_critical(self.db, 999, 50))
        self.assertEqual(self.sender.sent, [])

    def test_decrease_below_threshold_sends_one_alert(self) -> None:
        self._set_quantity("steel", 4)

        result = self.stock.check_critical(self.db, self.ids["steel"], 20)

        self.assertTrue(result.sent)
        self.assertEqual(len(self.sender.sent), 1)
        email = self.sender.sent[0]
        self.assertEqual(email["to"], "stock@factory.local")
        self.assertIn("Chapa de aco", email["subject"])
        self.assertIn("4", email["body"])

    def test_no_alert_when_quantity_did_not_drop(self) -> None:
        self._set_quantity("bolt", 5)
        self.assertIsNone(self.stock.check_critical(self.db, self.ids["bolt"], 5))
        self.assertIsNone(self.stock.check_critical(self.db, self.ids["bolt"], 2))
        self.assertEqual(self.sender.sent, [])

    def test_threshold_is_strict(self) -> None:
        self._set_quantity("steel", 10)
        self.assertIsNone(self.stock.check_critical(self.db, self.ids["steel"], 30))

    def test_product_alert_uses_product_wording(self) -> None:
        result = self.stock.adjust_product_quantity(self.db, self.ids["product"], 3)

        self.assertTrue(result["notification_sent"])
        self.assertEqual(result["previous_quantity"], 12)
        self.assertIn("Produto Suporte", self.sender.sent[0]["subject"])


class StockAdjustmentTest(ServiceTestCase):
    sandbox_prefix = "stock_adjust"

    def test_adjust_commits_then_alerts(self) -> None:
        result = self.stock.adjust_raw_material_quantity(self.db, self.ids["steel"], 2)

        self.assertEqual(result, {"id": self.ids["steel"], "quantity": 2, "previous_quantity": 20, "notification_sent": True})
        row = self.row("SELECT quantity FROM raw_materials WHERE id = ?", (self.ids["steel"],))
        self.assertEqual(row["quantity"], 2)

    def test_increase_does_not_alert(self) -> None:
        result = self.stock.adjust_raw_material_quantity(self.db, self.ids["bolt"], 8)
        self.assertFalse(result["notification_sent"])
        self.assertEqual(self.sender.sent, [])

    def test_alert_failure_keeps_new_quantity(self) -> None:
        self.build_services(FailingEmailSender())
        result = self.stock.adjust_raw_material_quantity(self.db, self.ids["steel"], 1)

        self.assertFalse(result["notification_sent"])
        row = self.row("SELECT quantity FROM raw_materials WHERE id = ?", (self.ids["steel"],))
        self.assertEqual(row["quantity"], 1)

    def test_blank_recipient_skips_alert_and_keeps_edit(self) -> None:
        self.stock = StockService(self.notifications, recipient="  ", threshold=10)

        with self.assertLogs("factory_ops.stock", level="WARNING"):
            result = self.stock.adjust_raw_material_quantity(self.db, self.ids["steel"], 2)

        self.assertFalse(result["notification_sent"])
        self.assertEqual(self.sender.sent, [])
        row = self.row("SELECT quantity FROM raw_materials WHERE id = ?", (self.ids["steel"],))
        self.assertEqual(row["quantity"], 2)

    def test_blank_recipient_reported_on_check(self) -> None:
        self.stock = StockService(self.notifications, recipient="", threshold=10)
        self.stock.adjust_product_quantity(self.db, self.ids["product"], 1)

        result = self.stock.check_critical_product(self.db, self.ids["product"], 12)

        self.assertFalse(result.sent)
        self.assertEqual(result.error, "stock_alert_recipient_missing")

    def test_negative_quantity_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.stock.adjust_raw_material_quantity(self.db, self.ids["steel"], -1)
        self.assertEqual(ctx.exception.code, "stock_quantity_invalid")

    def test_unknown_ids(self) -> None:
        with self.assertRaises(NotFoundError):
            self.stock.adjust_raw_material_quantity(self.db, 999, 1)
        with self.assertRaises(NotFoundError):
            self.stock.adjust_product_quantity(self.db, 999, 1)


if __name__ == "__main__":
    unittest.main()
