from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from factory_ops.domain.contracts import (
    BudgetLineInput,
    DispatchResult,
    NotificationResult,
    PurchaseRequestCreateInput,
    ReceiptResult,
)
from factory_ops.domain.states import (
    BudgetState,
    DeliveryNoteState,
    PurchaseRequestState,
    QuotationState,
    can_transition,
    parse_state,
    transition,
)
from factory_ops.errors import (
    AppError,
    ConflictError,
    NotFoundError,
    NotificationError,
    UnauthorizedError,
    ValidationError,
)
from factory_ops.infrastructure.repositories.procurement import (
    BudgetRepository,
    DeliveryNoteRepository,
    PurchaseRequestRepository,
    QuotationRepository,
    ReferenceRepository,
    StatusEventRepository,
)
from factory_ops.notifications import NotificationService
from factory_ops.observability import observe_transition
from factory_ops.ui_strings import render_email, status_label


logger = logging.getLogger("factory_ops.procurement")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_access_token() -> str:
    return secrets.token_hex(16)


def _tokens_match(supplied: str | None, stored: str | None) -> bool:
    left = str(supplied or "").strip().lower()
    right = str(stored or "").strip().lower()
    if not left or not right:
        return False
    return secrets.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


def _money(value: Any) -> float:
    return float(value or 0)


class ProcurementService:
    def __init__(
        self,
        notifications: NotificationService,
        *,
        portal_url: str,
        clock: Callable[[], datetime] | None = None,
        token_factory: Callable[[], str] | None = None,
        purchase_requests: PurchaseRequestRepository | None = None,
        quotations: QuotationRepository | None = None,
        budgets: BudgetRepository | None = None,
        delivery_notes: DeliveryNoteRepository | None = None,
        references: ReferenceRepository | None = None,
        status_events: StatusEventRepository | None = None,
    ) -> None:
        self.notifications = notifications
        self.portal_url = str(portal_url or "").rstrip("/")
        self.clock = clock or _utc_now
        self.token_factory = token_factory or _new_access_token
        self.purchase_requests = purchase_requests or PurchaseRequestRepository()
        self.quotations = quotations or QuotationRepository()
        self.budgets = budgets or BudgetRepository()
        self.delivery_notes = delivery_notes or DeliveryNoteRepository()
        self.references = references or ReferenceRepository()
        self.status_events = status_events or StatusEventRepository()

    def _now(self) -> str:
        return self.clock().isoformat()

    def _record_transition(
        self,
        db,
        entity: str,
        entity_id: int,
        from_state: str | None,
        to_state: str,
        reason: str,
    ) -> None:
        self.status_events.add_event(
            db,
            entity=entity,
            entity_id=entity_id,
            from_state=from_state,
            to_state=to_state,
            reason=reason,
        )
        observe_transition(entity, to_state)

    # Purchase requests

    def create_request(self, db, create_input: PurchaseRequestCreateInput) -> int:
        description = str(create_input.description or "").strip()
        if not description:
            raise ValidationError(code="description_required")

        requester = None
        if create_input.requester_id:
            requester = self.references.get_user(db, int(create_input.requester_id))
        if requester is None:
            raise ValidationError(
                code="requester_not_found",
                details=f"requester_id={create_input.requester_id}",
            )

        lines = list(create_input.lines or [])
        if not lines:
            raise ValidationError(code="lines_required")
        if any(int(line.quantity) <= 0 for line in lines):
            raise ValidationError(code="quantity_invalid")

        missing = self.references.find_missing_raw_materials(db, [int(line.material_id) for line in lines])
        if missing:
            raise ValidationError(
                code="materials_not_found",
                details=f"missing raw materials: {', '.join(str(item) for item in missing)}",
                payload={"missing_material_ids": missing},
            )

        with db.transaction():
            purchase_request_id = self.purchase_requests.create(
                db,
                description=description,
                requester_id=int(requester["id"]),
                opened_at=self._now(),
                state=PurchaseRequestState.OPEN.value,
            )
            for line in lines:
                self.purchase_requests.add_line(
                    db,
                    purchase_request_id=purchase_request_id,
                    material_id=int(line.material_id),
                    quantity=int(line.quantity),
                )
            self._record_transition(
                db,
                "purchase_request",
                purchase_request_id,
                None,
                PurchaseRequestState.OPEN.value,
                "purchase_request_created",
            )

        logger.info(
            "purchase_request_created",
            extra={"purchase_request_id": purchase_request_id, "lines": len(lines)},
        )
        return purchase_request_id

    def list_by_state(self, db, state: str | None = None) -> List[dict]:
        # Unknown or empty filters fall back to the full list.
        parsed = parse_state("purchase_request", state) if state else None
        items = self.purchase_requests.list_summary(db, state=parsed.value if parsed else None)
        for item in items:
            item["state_label"] = status_label("purchase_request", item.get("state"))
        return items

    def get_detail(self, db, purchase_request_id: int) -> dict | None:
        summary = self.purchase_requests.get_summary(db, purchase_request_id)
        if summary is None:
            return None
        summary["state_label"] = status_label("purchase_request", summary.get("state"))
        summary["lines"] = self.purchase_requests.list_lines(db, purchase_request_id)
        return summary

    # Quotations

    def dispatch_quotation(self, db, purchase_request_id: int, supplier_id: int | None) -> DispatchResult:
        if not supplier_id:
            raise ValidationError(code="supplier_id_required")

        purchase_request = self.purchase_requests.get_by_id(db, purchase_request_id)
        if purchase_request is None:
            raise NotFoundError(
                code="purchase_request_not_found",
                details=f"purchase_request_id={purchase_request_id}",
            )
        previous_state = purchase_request["state"]
        transition(
            "purchase_request",
            previous_state,
            PurchaseRequestState.BEING_QUOTED,
            code="purchase_request_state_invalid",
        )

        supplier = self.references.get_supplier(db, int(supplier_id))
        if supplier is None:
            raise NotFoundError(code="supplier_not_found", details=f"supplier_id={supplier_id}")

        with db.transaction():
            self.purchase_requests.update_state(db, purchase_request_id, PurchaseRequestState.BEING_QUOTED.value)
            self._record_transition(
                db,
                "purchase_request",
                purchase_request_id,
                previous_state,
                PurchaseRequestState.BEING_QUOTED.value,
                "quotation_dispatched",
            )

        token = self.token_factory()
        with db.transaction():
            quotation_id = self.quotations.create(
                db,
                description=purchase_request["description"],
                created_at=self._now(),
                supplier_id=int(supplier["id"]),
                access_token=token,
                purchase_request_id=purchase_request_id,
                state=QuotationState.ISSUED.value,
            )
            self._record_transition(
                db,
                "quotation",
                quotation_id,
                None,
                QuotationState.ISSUED.value,
                "quotation_dispatched",
            )

        logger.info(
            "quotation_dispatched",
            extra={
                "purchase_request_id": purchase_request_id,
                "quotation_id": quotation_id,
                "supplier_id": supplier["id"],
            },
        )
        notification = self._send_quotation_email(supplier, quotation_id, token)
        return DispatchResult(quotation_id=quotation_id, token=token, notification=notification)

    def quotation_link(self, quotation_id: int, token: str) -> str:
        return f"{self.portal_url}/supplier/quotations/{quotation_id}?token={token}"

    def _send_quotation_email(self, supplier: dict, quotation_id: int, token: str) -> NotificationResult:
        email = str(supplier.get("email") or "").strip()
        if not email:
            logger.warning(
                "quotation_email_skipped",
                extra={"quotation_id": quotation_id, "supplier_id": supplier.get("id")},
            )
            return NotificationResult.skipped("supplier_email_missing")

        subject, body = render_email(
            "quotation_request",
            supplier_name=supplier.get("name") or "",
            link=self.quotation_link(quotation_id, token),
        )
        return self.notifications.notify(email, subject, body, kind="quotation_request")

    def _load_quotation(self, db, quotation_id: int) -> dict:
        quotation = self.quotations.get_by_id(db, quotation_id)
        if quotation is None:
            raise NotFoundError(code="quotation_not_found", details=f"quotation_id={quotation_id}")
        return quotation

    @staticmethod
    def _quotation_header(quotation: dict) -> Dict[str, Any]:
        return {
            "id": quotation["id"],
            "description": quotation["description"],
            "created_at": quotation["created_at"],
            "state": quotation["state"],
            "state_label": status_label("quotation", quotation["state"]),
            "supplier_id": quotation["supplier_id"],
            "purchase_request_id": quotation["purchase_request_id"],
        }

    def _budget_header(self, budget: dict) -> Dict[str, Any]:
        return {
            "id": budget["id"],
            "created_at": budget["created_at"],
            "state": budget["state"],
            "state_label": status_label("budget", budget["state"]),
            "quotation_id": budget["quotation_id"],
        }

    def get_for_supplier(self, db, quotation_id: int, token: str | None) -> Dict[str, Any]:
        quotation = self._load_quotation(db, quotation_id)
        if not _tokens_match(token, quotation.get("access_token")):
            raise UnauthorizedError(details=f"quotation_id={quotation_id}")

        items: List[dict] = []
        if quotation.get("purchase_request_id"):
            for line in self.purchase_requests.list_lines(db, int(quotation["purchase_request_id"])):
                items.append(
                    {
                        "material_id": line["material_id"],
                        "material_name": line["material_name"],
                        "quantity": line["quantity"],
                        "unit_price": 0,
                        "lead_time_days": 0,
                    }
                )

        payload = self._quotation_header(quotation)
        payload["budgets"] = [self._budget_header(budget) for budget in self.budgets.list_for_quotation(db, quotation_id)]
        payload["items"] = items
        return payload

    def get_for_admin(self, db, quotation_id: int) -> Dict[str, Any]:
        quotation = self._load_quotation(db, quotation_id)
        budgets: List[dict] = []
        items: List[dict] = []
        for budget in self.budgets.list_for_quotation(db, quotation_id):
            lines = self.budgets.list_lines(db, int(budget["id"]))
            header = self._budget_header(budget)
            header["lines"] = lines
            budgets.append(header)
            items.extend(lines)

        payload = self._quotation_header(quotation)
        payload["budgets"] = budgets
        payload["items"] = items
        return payload

    def latest_quotation_for_request(self, db, purchase_request_id: int) -> dict | None:
        quotation = self.quotations.latest_for_request(db, purchase_request_id)
        if quotation is None:
            return None
        return self._quotation_header(quotation)

    # Budgets

    def _ensure_quotation_open(self, quotation: dict) -> None:
        if quotation["state"] == QuotationState.FINALIZED.value:
            raise ConflictError(
                code="quotation_finalized",
                details=f"quotation_id={quotation['id']}",
                payload={"current_state": quotation["state"]},
            )

    def create_budget(self, db, quotation_id: int) -> int:
        quotation = self._load_quotation(db, quotation_id)
        self._ensure_quotation_open(quotation)
        with db.transaction():
            budget_id = self._create_budget(db, quotation_id)
        logger.info("budget_created", extra={"quotation_id": quotation_id, "budget_id": budget_id})
        return budget_id

    def _create_budget(self, db, quotation_id: int) -> int:
        budget_id = self.budgets.create(
            db,
            quotation_id=quotation_id,
            created_at=self._now(),
            state=BudgetState.RESPONDED.value,
        )
        self._record_transition(db, "budget", budget_id, None, BudgetState.RESPONDED.value, "budget_created")
        return budget_id

    def _validate_budget_line(self, db, line: BudgetLineInput) -> None:
        if int(line.quantity) <= 0:
            raise ValidationError(code="quantity_invalid")
        if float(line.unit_price) < 0:
            raise ValidationError(code="unit_price_invalid")
        if self.references.get_raw_material(db, int(line.material_id)) is None:
            raise ValidationError(
                code="raw_material_not_found",
                details=f"raw_material_id={line.material_id}",
                payload={"missing_material_ids": [line.material_id]},
            )

    def add_budget_line(self, db, quotation_id: int, line: BudgetLineInput, budget_id: int | None = None) -> int:
        quotation = self._load_quotation(db, quotation_id)
        self._ensure_quotation_open(quotation)
        self._validate_budget_line(db, line)

        budget = None
        if budget_id is not None:
            budget = self.budgets.get_by_id(db, budget_id)
            if budget is None or int(budget["quotation_id"]) != int(quotation_id):
                raise NotFoundError(code="budget_not_found", details=f"budget_id={budget_id}")
            if budget["state"] != BudgetState.RESPONDED.value:
                raise ConflictError(code="budget_not_open", payload={"current_state": budget["state"]})

        quotation_state = quotation["state"]
        transition("quotation", quotation_state, QuotationState.HAS_BUDGETS, code="quotation_finalized")

        purchase_request = None
        if quotation.get("purchase_request_id"):
            purchase_request = self.purchase_requests.get_by_id(db, int(quotation["purchase_request_id"]))

        with db.transaction():
            if budget is None:
                budget = self.budgets.latest_responded(db, quotation_id)
            target_budget_id = int(budget["id"]) if budget else self._create_budget(db, quotation_id)

            line_id = self.budgets.add_line(
                db,
                budget_id=target_budget_id,
                material_id=int(line.material_id),
                quantity=int(line.quantity),
                unit_price=float(line.unit_price),
                lead_time_days=None if line.lead_time_days is None else int(line.lead_time_days),
            )

            if quotation_state != QuotationState.HAS_BUDGETS.value:
                self.quotations.update_state(db, quotation_id, QuotationState.HAS_BUDGETS.value)
                self._record_transition(
                    db,
                    "quotation",
                    quotation_id,
                    quotation_state,
                    QuotationState.HAS_BUDGETS.value,
                    "budget_line_added",
                )

            if purchase_request and purchase_request["state"] == PurchaseRequestState.BEING_QUOTED.value:
                self.purchase_requests.update_state(
                    db, int(purchase_request["id"]), PurchaseRequestState.HAS_BUDGETS.value
                )
                self._record_transition(
                    db,
                    "purchase_request",
                    int(purchase_request["id"]),
                    purchase_request["state"],
                    PurchaseRequestState.HAS_BUDGETS.value,
                    "budget_line_added",
                )

        logger.info(
            "budget_line_added",
            extra={"quotation_id": quotation_id, "budget_id": target_budget_id, "budget_line_id": line_id},
        )
        return line_id

    def get_budget(self, db, budget_id: int) -> Dict[str, Any]:
        budget = self.budgets.get_by_id(db, budget_id)
        if budget is None:
            raise NotFoundError(code="budget_not_found", details=f"budget_id={budget_id}")
        lines = self.budgets.list_lines(db, budget_id)
        payload = self._budget_header(budget)
        payload["lines"] = lines
        payload["total_value"] = sum(int(item["quantity"]) * _money(item["unit_price"]) for item in lines)
        return payload

    # Acceptance

    def accept_budget(self, db, budget_id: int) -> int:
        budget = self.budgets.get_by_id(db, budget_id)
        if budget is None:
            raise NotFoundError(code="budget_not_found", details=f"budget_id={budget_id}")
        quotation = self.quotations.get_by_id(db, int(budget["quotation_id"]))
        if quotation is None:
            raise NotFoundError(code="budget_quotation_missing", details=f"budget_id={budget_id}")

        self._ensure_quotation_open(quotation)
        transition("budget", budget["state"], BudgetState.ACCEPTED, code="budget_not_open")
        transition("quotation", quotation["state"], QuotationState.FINALIZED, code="quotation_finalized")

        lines = self.budgets.list_lines(db, budget_id)
        total_value = sum(int(item["quantity"]) * _money(item["unit_price"]) for item in lines)

        purchase_request = None
        if quotation.get("purchase_request_id"):
            purchase_request = self.purchase_requests.get_by_id(db, int(quotation["purchase_request_id"]))

        now = self._now()
        with db.transaction():
            self.budgets.update_state(db, budget_id, BudgetState.ACCEPTED.value)
            self._record_transition(
                db, "budget", budget_id, budget["state"], BudgetState.ACCEPTED.value, "budget_accepted"
            )

            for sibling in self.budgets.list_for_quotation(db, int(quotation["id"])):
                if int(sibling["id"]) == int(budget_id):
                    continue
                if not can_transition("budget", sibling["state"], BudgetState.REJECTED):
                    continue
                self.budgets.update_state(db, int(sibling["id"]), BudgetState.REJECTED.value)
                self._record_transition(
                    db,
                    "budget",
                    int(sibling["id"]),
                    sibling["state"],
                    BudgetState.REJECTED.value,
                    "sibling_budget_accepted",
                )

            self.quotations.update_state(db, int(quotation["id"]), QuotationState.FINALIZED.value)
            self._record_transition(
                db,
                "quotation",
                int(quotation["id"]),
                quotation["state"],
                QuotationState.FINALIZED.value,
                "budget_accepted",
            )

            if purchase_request:
                self._close_purchase_request(db, purchase_request, PurchaseRequestState.CLOSED, now, "budget_accepted")

            delivery_note_id = self.delivery_notes.create(
                db,
                budget_id=budget_id,
                issued_at=now,
                total_value=total_value,
                state=DeliveryNoteState.PENDING.value,
            )
            for line in lines:
                self.delivery_notes.add_line(
                    db,
                    delivery_note_id=delivery_note_id,
                    material_id=int(line["material_id"]),
                    quantity=int(line["quantity"]),
                    unit_price=_money(line["unit_price"]),
                )
            self._record_transition(
                db,
                "delivery_note",
                delivery_note_id,
                None,
                DeliveryNoteState.PENDING.value,
                "budget_accepted",
            )

        logger.info(
            "budget_accepted",
            extra={
                "budget_id": budget_id,
                "quotation_id": quotation["id"],
                "delivery_note_id": delivery_note_id,
                "total_value": total_value,
            },
        )
        return delivery_note_id

    def _close_purchase_request(
        self,
        db,
        purchase_request: dict,
        target: PurchaseRequestState,
        closed_at: str,
        reason: str,
    ) -> None:
        current = purchase_request["state"]
        if not can_transition("purchase_request", current, target):
            logger.warning(
                "purchase_request_transition_skipped",
                extra={
                    "purchase_request_id": purchase_request["id"],
                    "current_state": current,
                    "target_state": target.value,
                },
            )
            return
        self.purchase_requests.update_state(db, int(purchase_request["id"]), target.value, closed_at=closed_at)
        self._record_transition(db, "purchase_request", int(purchase_request["id"]), current, target.value, reason)

    # Delivery notes

    def _note_payload(self, db, note: dict) -> Dict[str, Any]:
        payload = dict(note)
        payload["total_value"] = _money(note.get("total_value"))
        payload["state_label"] = status_label("delivery_note", note.get("state"))
        payload["lines"] = self.delivery_notes.list_lines(db, int(note["id"]))
        return payload

    def _load_note(self, db, delivery_note_id: int) -> dict:
        note = self.delivery_notes.get_by_id(db, delivery_note_id)
        if note is None:
            raise NotFoundError(code="delivery_note_not_found", details=f"delivery_note_id={delivery_note_id}")
        return note

    def get_delivery_note(self, db, delivery_note_id: int) -> Dict[str, Any]:
        return self._note_payload(db, self._load_note(db, delivery_note_id))

    def get_note_by_budget(self, db, budget_id: int) -> Dict[str, Any] | None:
        note = self.delivery_notes.latest_for_budget(db, budget_id)
        if note is None:
            return None
        return self._note_payload(db, note)

    def list_notes_by_state(self, db, state: str | None = None) -> List[dict]:
        parsed = parse_state("delivery_note", state) if state else None
        notes = self.delivery_notes.list_by_state(db, state=parsed.value if parsed else None)
        return [self._note_payload(db, note) for note in notes]

    def list_pending_notes(self, db) -> List[dict]:
        return self.list_notes_by_state(db, DeliveryNoteState.PENDING.value)

    def list_pending_notes_for_material(self, db, material_id: int) -> List[dict]:
        notes = self.delivery_notes.list_pending_for_material(db, material_id)
        return [self._note_payload(db, note) for note in notes]

    def receive_delivery(self, db, delivery_note_id: int, in_good_condition: bool) -> ReceiptResult:
        if not isinstance(in_good_condition, bool):
            raise ValidationError(code="in_good_condition_required")

        note = self._load_note(db, delivery_note_id)
        target = DeliveryNoteState.RECEIVED if in_good_condition else DeliveryNoteState.DISPUTED
        transition("delivery_note", note["state"], target, code="delivery_note_processed")

        if not in_good_condition:
            with db.transaction():
                self.delivery_notes.update_state(db, delivery_note_id, DeliveryNoteState.DISPUTED.value)
                self._record_transition(
                    db,
                    "delivery_note",
                    delivery_note_id,
                    note["state"],
                    DeliveryNoteState.DISPUTED.value,
                    "delivery_disputed",
                )
            logger.info("delivery_disputed", extra={"delivery_note_id": delivery_note_id})
            notification = self._notify_dispute_best_effort(db, delivery_note_id)
            return ReceiptResult(
                note_id=delivery_note_id,
                state=DeliveryNoteState.DISPUTED.value,
                notification=notification,
            )

        lines = self.delivery_notes.list_lines(db, delivery_note_id)
        purchase_request = self.delivery_notes.get_request_for_note(db, delivery_note_id)
        with db.transaction():
            self.delivery_notes.update_state(db, delivery_note_id, DeliveryNoteState.RECEIVED.value)
            self._record_transition(
                db,
                "delivery_note",
                delivery_note_id,
                note["state"],
                DeliveryNoteState.RECEIVED.value,
                "delivery_received",
            )
            for line in lines:
                self.references.increment_raw_material_quantity(db, int(line["material_id"]), int(line["quantity"]))
            if purchase_request and purchase_request["state"] != PurchaseRequestState.RECEIVED.value:
                self._close_purchase_request(
                    db,
                    purchase_request,
                    PurchaseRequestState.RECEIVED,
                    self._now(),
                    "delivery_received",
                )

        logger.info(
            "delivery_received",
            extra={"delivery_note_id": delivery_note_id, "lines": len(lines)},
        )
        return ReceiptResult(note_id=delivery_note_id, state=DeliveryNoteState.RECEIVED.value)

    def _notify_dispute_best_effort(self, db, delivery_note_id: int) -> NotificationResult:
        try:
            return self.notify_supplier_of_dispute(db, delivery_note_id)
        except AppError as exc:
            logger.warning(
                "dispute_notification_failed",
                extra={"delivery_note_id": delivery_note_id, "error_code": exc.code, "details": exc.details},
            )
            return NotificationResult(sent=False, error=exc.code)
        except Exception as exc:  # noqa: BLE001
            logger.exception("dispute_notification_failed", extra={"delivery_note_id": delivery_note_id})
            return NotificationResult(sent=False, error=str(exc) or exc.__class__.__name__)

    def redelivery_link(self, delivery_note_id: int) -> str:
        return f"{self.portal_url}/supplier/redelivery/{delivery_note_id}"

    def notify_supplier_of_dispute(self, db, delivery_note_id: int) -> NotificationResult:
        note = self._load_note(db, delivery_note_id)
        if note["state"] != DeliveryNoteState.DISPUTED.value:
            raise ConflictError(
                code="delivery_note_not_disputed",
                payload={"current_state": note["state"], "required_states": [DeliveryNoteState.DISPUTED.value]},
            )
        pending = self.delivery_notes.count_pending_for_budget(
            db, int(note["budget_id"]), exclude_note_id=delivery_note_id
        )
        if pending > 0:
            raise ConflictError(code="redelivery_in_progress", details=f"budget_id={note['budget_id']}")

        supplier = self.delivery_notes.get_supplier_for_note(db, delivery_note_id)
        email = str((supplier or {}).get("email") or "").strip()
        if not email:
            raise NotificationError(
                code="supplier_email_missing",
                details=f"delivery_note_id={delivery_note_id}",
            )

        subject, body = render_email(
            "delivery_dispute",
            supplier_name=supplier.get("name") or "",
            note_id=delivery_note_id,
            link=self.redelivery_link(delivery_note_id),
        )
        return self.notifications.notify(email, subject, body, kind="delivery_dispute")

    def confirm_redelivery(self, db, delivery_note_id: int) -> int:
        note = self._load_note(db, delivery_note_id)
        transition("delivery_note", note["state"], DeliveryNoteState.REDELIVERED, code="delivery_note_not_disputed")

        lines = self.delivery_notes.list_lines(db, delivery_note_id)
        with db.transaction():
            self.delivery_notes.update_state(db, delivery_note_id, DeliveryNoteState.REDELIVERED.value)
            self._record_transition(
                db,
                "delivery_note",
                delivery_note_id,
                note["state"],
                DeliveryNoteState.REDELIVERED.value,
                "redelivery_confirmed",
            )
            new_note_id = self.delivery_notes.create(
                db,
                budget_id=int(note["budget_id"]),
                issued_at=self._now(),
                total_value=_money(note["total_value"]),
                state=DeliveryNoteState.PENDING.value,
            )
            for line in lines:
                self.delivery_notes.add_line(
                    db,
                    delivery_note_id=new_note_id,
                    material_id=int(line["material_id"]),
                    quantity=int(line["quantity"]),
                    unit_price=_money(line["unit_price"]),
                )
            self._record_transition(
                db,
                "delivery_note",
                new_note_id,
                None,
                DeliveryNoteState.PENDING.value,
                "redelivery_confirmed",
            )

        logger.info(
            "redelivery_confirmed",
            extra={"delivery_note_id": delivery_note_id, "new_delivery_note_id": new_note_id},
        )
        return new_note_id
