import unittest

from factory_ops.domain.states import (
    ENTITY_STATES,
    TRANSITIONS,
    BudgetState,
    DeliveryNoteState,
    PurchaseRequestState,
    QuotationState,
    can_transition,
    parse_state,
    required_states,
    transition,
)
from factory_ops.errors import ConflictError


class StateTransitionTableTest(unittest.TestCase):
    def test_every_transition_uses_known_states(self) -> None:
        for entity, pairs in TRANSITIONS.items():
            values = {member.value for member in ENTITY_STATES[entity]}
            for source, target in pairs:
                self.assertIn(source, values, f"{entity}: {source}")
                self.assertIn(target, values, f"{entity}: {target}")

    def test_purchase_request_happy_path(self) -> None:
        path = ["open", "being_quoted", "has_budgets", "closed", "received"]
        for current, target in zip(path, path[1:]):
            self.assertTrue(can_transition("purchase_request", current, target), f"{current}->{target}")

    def test_purchase_request_can_close_without_budget_lines(self) -> None:
        self.assertTrue(can_transition("purchase_request", "being_quoted", "closed"))

    def test_purchase_request_cannot_skip_quotation(self) -> None:
        self.assertFalse(can_transition("purchase_request", PurchaseRequestState.OPEN, PurchaseRequestState.CLOSED))
        self.assertFalse(can_transition("purchase_request", "received", "open"))

    def test_quotation_accepts_repeated_budget_lines_until_finalized(self) -> None:
        self.assertTrue(can_transition("quotation", QuotationState.HAS_BUDGETS, QuotationState.HAS_BUDGETS))
        self.assertTrue(can_transition("quotation", QuotationState.ISSUED, QuotationState.FINALIZED))
        self.assertFalse(can_transition("quotation", QuotationState.FINALIZED, QuotationState.HAS_BUDGETS))

    def test_budget_decisions_are_terminal(self) -> None:
        self.assertFalse(can_transition("budget", BudgetState.ACCEPTED, BudgetState.REJECTED))
        self.assertFalse(can_transition("budget", BudgetState.REJECTED, BudgetState.ACCEPTED))

    def test_delivery_note_redelivery_only_from_disputed(self) -> None:
        self.assertTrue(can_transition("delivery_note", DeliveryNoteState.DISPUTED, DeliveryNoteState.REDELIVERED))
        self.assertFalse(can_transition("delivery_note", DeliveryNoteState.PENDING, DeliveryNoteState.REDELIVERED))
        self.assertFalse(can_transition("delivery_note", DeliveryNoteState.RECEIVED, DeliveryNoteState.DISPUTED))


class TransitionFunctionTest(unittest.TestCase):
    def test_returns_target_member(self) -> None:
        result = transition("delivery_note", "pending", "received")
        self.assertIs(result, DeliveryNoteState.RECEIVED)

    def test_illegal_move_raises_conflict_with_states(self) -> None:
        with self.assertRaises(ConflictError) as ctx:
            transition("purchase_request", "closed", PurchaseRequestState.BEING_QUOTED)
        exc = ctx.exception
        self.assertEqual(exc.http_status, 409)
        self.assertEqual(exc.payload["current_state"], "closed")
        self.assertEqual(exc.payload["required_states"], ["open"])

    def test_custom_code_is_kept(self) -> None:
        with self.assertRaises(ConflictError) as ctx:
            transition("delivery_note", "received", "disputed", code="delivery_note_processed")
        self.assertEqual(ctx.exception.code, "delivery_note_processed")

    def test_unknown_entity_is_a_programming_error(self) -> None:
        with self.assertRaises(KeyError):
            transition("invoice", "open", "closed")

    def test_required_states_for_finalized(self) -> None:
        self.assertEqual(required_states("quotation", "finalized"), ["has_budgets", "issued"])


class ParseStateTest(unittest.TestCase):
    def test_known_value_is_case_insensitive(self) -> None:
        self.assertIs(parse_state("purchase_request", " Being_Quoted "), PurchaseRequestState.BEING_QUOTED)

    def test_unknown_value_returns_none(self) -> None:
        self.assertIsNone(parse_state("delivery_note", "lost"))
        self.assertIsNone(parse_state("delivery_note", None))


if __name__ == "__main__":
    unittest.main()
