import unittest

from factory_ops.domain.contracts import BudgetLineInput
from factory_ops.errors import ConflictError, NotFoundError, ValidationError
from tests.helpers.service_case import ServiceTestCase


class BudgetIngestTest(ServiceTestCase):
    sandbox_prefix = "budget_ingest"

    def test_first_line_moves_quotation_and_request(self) -> None:
        request_id, result = self.dispatch()
        line_id = self.add_line(result.quotation_id)

        self.assertGreater(line_id, 0)
        self.assertEqual(self.row("SELECT state FROM quotations WHERE id = ?", (result.quotation_id,))["state"], "has_budgets")
        self.assertEqual(self.row("SELECT state FROM purchase_requests WHERE id = ?", (request_id,))["state"], "has_budgets")
        budget = self.row("SELECT * FROM budgets WHERE quotation_id = ?", (result.quotation_id,))
        self.assertEqual(budget["state"], "responded")

    def test_following_lines_reuse_open_budget_and_keep_duplicates(self) -> None:
        _, result = self.dispatch()
        self.add_line(result.quotation_id, "steel", 10, 12.0)
        self.add_line(result.quotation_id, "steel", 10, 12.0)

        budgets = self.db.execute("SELECT id FROM budgets WHERE quotation_id = ?", (result.quotation_id,)).fetchall()
        self.assertEqual(len(budgets), 1)
        lines = self.db.execute("SELECT * FROM budget_lines WHERE budget_id = ?", (budgets[0]["id"],)).fetchall()
        self.assertEqual(len(lines), 2)

    def test_explicit_budget_receives_line(self) -> None:
        _, result = self.dispatch()
        first = self.service.create_budget(self.db, result.quotation_id)
        second = self.service.create_budget(self.db, result.quotation_id)
        self.add_line(result.quotation_id, budget_id=first)

        self.assertEqual(len(self.service.get_budget(self.db, first)["lines"]), 1)
        self.assertEqual(self.service.get_budget(self.db, second)["lines"], [])

    def test_budget_from_other_quotation_is_not_found(self) -> None:
        _, first = self.dispatch()
        _, second = self.dispatch()
        foreign = self.service.create_budget(self.db, second.quotation_id)
        with self.assertRaises(NotFoundError) as ctx:
            self.add_line(first.quotation_id, budget_id=foreign)
        self.assertEqual(ctx.exception.code, "budget_not_found")

    def test_line_validation(self) -> None:
        _, result = self.dispatch()
        cases = {
            "quantity_invalid": BudgetLineInput(self.ids["steel"], 0, 1.0),
            "unit_price_invalid": BudgetLineInput(self.ids["steel"], 1, -0.01),
            "raw_material_not_found": BudgetLineInput(999, 1, 1.0),
        }
        for code, line in cases.items():
            with self.subTest(code=code):
                with self.assertRaises(ValidationError) as ctx:
                    self.service.add_budget_line(self.db, result.quotation_id, line)
                self.assertEqual(ctx.exception.code, code)

    def test_zero_price_is_allowed(self) -> None:
        _, result = self.dispatch()
        self.assertGreater(self.add_line(result.quotation_id, price=0.0), 0)

    def test_missing_quotation(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.service.add_budget_line(self.db, 999, BudgetLineInput(self.ids["steel"], 1, 1.0))
        self.assertEqual(ctx.exception.code, "quotation_not_found")

    def test_finalized_quotation_rejects_lines_and_budgets(self) -> None:
        _, result = self.dispatch()
        self.add_line(result.quotation_id)
        budget = self.row("SELECT id FROM budgets WHERE quotation_id = ?", (result.quotation_id,))
        self.service.accept_budget(self.db, budget["id"])

        with self.assertRaises(ConflictError) as ctx:
            self.add_line(result.quotation_id)
        self.assertEqual(ctx.exception.code, "quotation_finalized")
        with self.assertRaises(ConflictError):
            self.service.create_budget(self.db, result.quotation_id)

    def test_get_budget_reports_total(self) -> None:
        _, result = self.dispatch()
        self.add_line(result.quotation_id, "steel", 10, 12.0)
        self.add_line(result.quotation_id, "bolt", 200, 0.05)
        budget = self.row("SELECT id FROM budgets WHERE quotation_id = ?", (result.quotation_id,))

        payload = self.service.get_budget(self.db, budget["id"])
        self.assertAlmostEqual(payload["total_value"], 130.0)
        self.assertEqual(payload["lines"][0]["material_name"], "Chapa de aco")

    def test_get_budget_missing(self) -> None:
        with self.assertRaises(NotFoundError):
            self.service.get_budget(self.db, 999)


if __name__ == "__main__":
    unittest.main()
