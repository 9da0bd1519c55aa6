import unittest

from factory_ops.errors import ConflictError, NotFoundError
from tests.helpers.service_case import ServiceTestCase


class BudgetAcceptanceTest(ServiceTestCase):
    sandbox_prefix = "budget_accept"

    def _two_budgets(self):
        request_id, result = self.dispatch()
        chosen = self.service.create_budget(self.db, result.quotation_id)
        other = self.service.create_budget(self.db, result.quotation_id)
        self.add_line(result.quotation_id, "steel", 10, 12.0, budget_id=chosen)
        self.add_line(result.quotation_id, "bolt", 200, 0.05, budget_id=chosen)
        self.add_line(result.quotation_id, "steel", 10, 11.0, budget_id=other)
        return request_id, result.quotation_id, chosen, other

    def test_accept_generates_note_and_closes_everything(self) -> None:
        request_id, quotation_id, chosen, other = self._two_budgets()

        note_id = self.service.accept_budget(self.db, chosen)

        self.assertEqual(self.row("SELECT state FROM budgets WHERE id = ?", (chosen,))["state"], "accepted")
        self.assertEqual(self.row("SELECT state FROM budgets WHERE id = ?", (other,))["state"], "rejected")
        self.assertEqual(self.row("SELECT state FROM quotations WHERE id = ?", (quotation_id,))["state"], "finalized")

        request_row = self.row("SELECT * FROM purchase_requests WHERE id = ?", (request_id,))
        self.assertEqual(request_row["state"], "closed")
        self.assertIsNotNone(request_row["closed_at"])

        note = self.service.get_delivery_note(self.db, note_id)
        self.assertEqual(note["state"], "pending")
        self.assertEqual(note["budget_id"], chosen)
        self.assertAlmostEqual(note["total_value"], 130.0)
        self.assertEqual(
            [(line["material_id"], line["quantity"], line["unit_price"]) for line in note["lines"]],
            [(self.ids["steel"], 10, 12.0), (self.ids["bolt"], 200, 0.05)],
        )

    def test_accept_writes_audit_trail(self) -> None:
        _, quotation_id, chosen, other = self._two_budgets()
        self.service.accept_budget(self.db, chosen)

        reasons = {
            (row["entity"], row["entity_id"], row["to_state"])
            for row in self.db.execute("SELECT * FROM status_events").fetchall()
        }
        self.assertIn(("budget", chosen, "accepted"), reasons)
        self.assertIn(("budget", other, "rejected"), reasons)
        self.assertIn(("quotation", quotation_id, "finalized"), reasons)

    def test_request_without_lines_can_still_close(self) -> None:
        request_id, result = self.dispatch()
        budget_id = self.service.create_budget(self.db, result.quotation_id)
        note_id = self.service.accept_budget(self.db, budget_id)

        self.assertEqual(self.row("SELECT state FROM purchase_requests WHERE id = ?", (request_id,))["state"], "closed")
        self.assertAlmostEqual(self.service.get_delivery_note(self.db, note_id)["total_value"], 0.0)

    def test_second_acceptance_is_a_conflict(self) -> None:
        _, _, chosen, other = self._two_budgets()
        self.service.accept_budget(self.db, chosen)

        with self.assertRaises(ConflictError):
            self.service.accept_budget(self.db, chosen)
        with self.assertRaises(ConflictError) as ctx:
            self.service.accept_budget(self.db, other)
        self.assertEqual(ctx.exception.code, "quotation_finalized")

        notes = self.db.execute("SELECT id FROM delivery_notes").fetchall()
        self.assertEqual(len(notes), 1)

    def test_missing_budget(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.service.accept_budget(self.db, 999)
        self.assertEqual(ctx.exception.code, "budget_not_found")


if __name__ == "__main__":
    unittest.main()
