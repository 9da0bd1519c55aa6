import unittest

from factory_ops.domain.contracts import PurchaseRequestCreateInput, RequestLineInput
from factory_ops.errors import ValidationError
from tests.helpers.service_case import ServiceTestCase


class PurchaseRequestCreateTest(ServiceTestCase):
    sandbox_prefix = "pr_create"

    def _count(self, table: str) -> int:
        return int(self.row(f"SELECT COUNT(*) AS total FROM {table}")["total"])

    def test_create_persists_header_lines_and_audit(self) -> None:
        request_id = self.create_request()

        header = self.row("SELECT * FROM purchase_requests WHERE id = ?", (request_id,))
        self.assertEqual(header["state"], "open")
        self.assertEqual(header["description"], "Material para linha 2")
        self.assertTrue(header["opened_at"].startswith("2026-10-19T09:00"))
        self.assertIsNone(header["closed_at"])
        self.assertEqual(self._count("purchase_request_lines"), 2)

        event = self.row("SELECT * FROM status_events WHERE entity = 'purchase_request' AND entity_id = ?", (request_id,))
        self.assertIsNone(event["from_state"])
        self.assertEqual(event["to_state"], "open")

    def test_blank_description_is_checked_first(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.service.create_request(
                self.db,
                PurchaseRequestCreateInput(description="   ", requester_id=999, lines=[]),
            )
        self.assertEqual(ctx.exception.code, "description_required")

    def test_missing_requester(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.service.create_request(
                self.db,
                PurchaseRequestCreateInput(
                    description="Pedido",
                    requester_id=999,
                    lines=[RequestLineInput(self.ids["steel"], 1)],
                ),
            )
        self.assertEqual(ctx.exception.code, "requester_not_found")

    def test_lines_required(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.create_request(lines=[])
        self.assertEqual(ctx.exception.code, "lines_required")

    def test_non_positive_quantity_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.create_request(lines=[RequestLineInput(self.ids["steel"], 0)])
        self.assertEqual(ctx.exception.code, "quantity_invalid")

    def test_missing_materials_are_aggregated_in_order(self) -> None:
        lines = [
            RequestLineInput(555, 1),
            RequestLineInput(self.ids["steel"], 1),
            RequestLineInput(444, 1),
            RequestLineInput(555, 2),
        ]
        with self.assertRaises(ValidationError) as ctx:
            self.create_request(lines=lines)
        self.assertEqual(ctx.exception.code, "materials_not_found")
        self.assertEqual(ctx.exception.payload["missing_material_ids"], [555, 444])
        self.assertIn("555, 444", ctx.exception.details)

    def test_failed_validation_persists_nothing(self) -> None:
        with self.assertRaises(ValidationError):
            self.create_request(lines=[RequestLineInput(777, 1)])
        self.assertEqual(self._count("purchase_requests"), 0)
        self.assertEqual(self._count("purchase_request_lines"), 0)


class PurchaseRequestQueryTest(ServiceTestCase):
    sandbox_prefix = "pr_query"

    def test_list_by_state_filters(self) -> None:
        first = self.create_request(description="Primeiro")
        second = self.create_request(description="Segundo")
        self.service.dispatch_quotation(self.db, second, self.ids["supplier"])

        open_items = self.service.list_by_state(self.db, "open")
        self.assertEqual([item["id"] for item in open_items], [first])
        self.assertEqual(open_items[0]["requester_name"], "Rita Sousa")
        self.assertEqual(open_items[0]["state_label"], "Aberto")

        quoted = self.service.list_by_state(self.db, "being_quoted")
        self.assertEqual([item["id"] for item in quoted], [second])

    def test_unknown_or_empty_filter_returns_everything(self) -> None:
        self.create_request()
        self.create_request()
        self.assertEqual(len(self.service.list_by_state(self.db, "whatever")), 2)
        self.assertEqual(len(self.service.list_by_state(self.db, "")), 2)
        self.assertEqual(len(self.service.list_by_state(self.db, None)), 2)

    def test_get_detail_includes_lines(self) -> None:
        request_id = self.create_request()
        detail = self.service.get_detail(self.db, request_id)
        self.assertEqual(detail["requester_name"], "Rita Sousa")
        self.assertEqual(
            [(line["material_name"], line["quantity"]) for line in detail["lines"]],
            [("Chapa de aco", 10), ("Parafuso M6", 200)],
        )

    def test_get_detail_absent_returns_none(self) -> None:
        self.assertIsNone(self.service.get_detail(self.db, 4242))


if __name__ == "__main__":
    unittest.main()
