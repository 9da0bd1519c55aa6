from __future__ import annotations

from typing import List

from flask import Blueprint, current_app, jsonify, request

from factory_ops.application.procurement_service import ProcurementService
from factory_ops.db import get_db
from factory_ops.domain.contracts import BudgetLineInput, PurchaseRequestCreateInput, RequestLineInput
from factory_ops.errors import NotFoundError, ValidationError
from factory_ops.ui_strings import success_message


procurement_bp = Blueprint("procurement", __name__)


def _service() -> ProcurementService:
    return current_app.extensions["factory_ops.procurement"]


def _ok(key: str, fallback: str | None = None) -> str:
    return success_message(key, fallback)


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _parse_optional_int(value) -> int | None:
    if value in (None, "") or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_optional_float(value) -> float | None:
    if value in (None, "") or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text:
        return None
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return None


def _first(payload: dict, *keys: str):
    for key in keys:
        if key in payload:
            return payload.get(key)
    return None


def _parse_request_lines(raw_lines) -> List[RequestLineInput]:
    if not isinstance(raw_lines, list):
        return []
    lines: List[RequestLineInput] = []
    for raw in raw_lines:
        if not isinstance(raw, dict):
            raise ValidationError(details="purchase request line must be an object")
        material_id = _parse_optional_int(_first(raw, "material_id", "raw_material_id", "materialId"))
        if material_id is None:
            raise ValidationError(code="materials_not_found", details="line without material id")
        quantity = _parse_optional_int(raw.get("quantity"))
        if quantity is None:
            raise ValidationError(code="quantity_invalid")
        lines.append(RequestLineInput(material_id=material_id, quantity=quantity))
    return lines


def _parse_budget_line(payload: dict) -> BudgetLineInput:
    material_id = _parse_optional_int(_first(payload, "material_id", "raw_material_id", "materialId"))
    if material_id is None:
        raise ValidationError(code="raw_material_not_found", details="budget line without material id")
    quantity = _parse_optional_int(payload.get("quantity"))
    if quantity is None:
        raise ValidationError(code="quantity_invalid")
    unit_price = _parse_optional_float(_first(payload, "unit_price", "unitPrice"))
    if unit_price is None:
        raise ValidationError(code="unit_price_invalid")
    lead_time = _parse_optional_int(_first(payload, "lead_time_days", "leadTimeDays"))
    return BudgetLineInput(
        material_id=material_id,
        quantity=quantity,
        unit_price=unit_price,
        lead_time_days=lead_time,
    )


@procurement_bp.route("/api/purchase-requests", methods=["GET", "POST"])
def purchase_requests_api():
    db = get_db()
    if request.method == "POST":
        payload = _payload()
        requester_id = _parse_optional_int(_first(payload, "requester_id", "requesterId"))
        create_input = PurchaseRequestCreateInput(
            description=str(payload.get("description") or ""),
            requester_id=requester_id or 0,
            lines=_parse_request_lines(_first(payload, "lines", "items")),
        )
        purchase_request_id = _service().create_request(db, create_input)
        return jsonify({"id": purchase_request_id, "message": _ok("purchase_request_created")}), 201

    items = _service().list_by_state(db, request.args.get("state"))
    return jsonify({"items": items})


@procurement_bp.route("/api/purchase-requests/<int:purchase_request_id>", methods=["GET"])
def purchase_request_detail_api(purchase_request_id: int):
    detail = _service().get_detail(get_db(), purchase_request_id)
    if detail is None:
        raise NotFoundError(code="purchase_request_not_found")
    return jsonify(detail)


@procurement_bp.route("/api/purchase-requests/<int:purchase_request_id>/quotation", methods=["GET", "POST"])
def purchase_request_quotation_api(purchase_request_id: int):
    db = get_db()
    if request.method == "GET":
        quotation = _service().latest_quotation_for_request(db, purchase_request_id)
        if quotation is None:
            raise NotFoundError(code="quotation_not_found")
        return jsonify(quotation)

    supplier_id = _parse_optional_int(
        request.args.get("supplierId") or request.args.get("supplier_id") or _first(_payload(), "supplier_id", "supplierId")
    )
    if supplier_id is None:
        raise ValidationError(code="supplier_id_required")
    result = _service().dispatch_quotation(db, purchase_request_id, supplier_id)
    return (
        jsonify(
            {
                "quotation_id": result.quotation_id,
                "token": result.token,
                "notification_sent": result.notification.sent,
                "message": _ok("quotation_dispatched"),
            }
        ),
        201,
    )


@procurement_bp.route("/api/quotations/<int:quotation_id>", methods=["GET"])
def quotation_admin_api(quotation_id: int):
    return jsonify(_service().get_for_admin(get_db(), quotation_id))


@procurement_bp.route("/api/quotations/<int:quotation_id>/supplier", methods=["GET"])
def quotation_supplier_api(quotation_id: int):
    return jsonify(_service().get_for_supplier(get_db(), quotation_id, request.args.get("token")))


@procurement_bp.route("/api/quotations/<int:quotation_id>/budgets", methods=["POST"])
def quotation_budget_create_api(quotation_id: int):
    budget_id = _service().create_budget(get_db(), quotation_id)
    return jsonify({"budget_id": budget_id, "message": _ok("budget_created")}), 201


@procurement_bp.route("/api/budgets/<int:quotation_id>/items", methods=["POST"])
def budget_line_create_api(quotation_id: int):
    payload = _payload()
    line = _parse_budget_line(payload)
    budget_id = _parse_optional_int(_first(payload, "budget_id", "budgetId"))
    line_id = _service().add_budget_line(get_db(), quotation_id, line, budget_id=budget_id)
    return jsonify({"budget_line_id": line_id, "message": _ok("budget_line_added")}), 201


@procurement_bp.route("/api/budgets/<int:budget_id>", methods=["GET"])
def budget_detail_api(budget_id: int):
    return jsonify(_service().get_budget(get_db(), budget_id))


@procurement_bp.route("/api/budgets/<int:budget_id>/accept", methods=["POST"])
def budget_accept_api(budget_id: int):
    delivery_note_id = _service().accept_budget(get_db(), budget_id)
    return jsonify({"delivery_note_id": delivery_note_id, "message": _ok("budget_accepted")})


@procurement_bp.route("/api/delivery-notes", methods=["GET"])
def delivery_notes_api():
    return jsonify({"items": _service().list_notes_by_state(get_db(), request.args.get("state"))})


@procurement_bp.route("/api/delivery-notes/pending", methods=["GET"])
def delivery_notes_pending_api():
    return jsonify({"items": _service().list_pending_notes(get_db())})


@procurement_bp.route("/api/delivery-notes/pending/by-material/<int:material_id>", methods=["GET"])
def delivery_notes_pending_by_material_api(material_id: int):
    return jsonify({"items": _service().list_pending_notes_for_material(get_db(), material_id)})


@procurement_bp.route("/api/delivery-notes/<int:delivery_note_id>", methods=["GET"])
def delivery_note_detail_api(delivery_note_id: int):
    return jsonify(_service().get_delivery_note(get_db(), delivery_note_id))


@procurement_bp.route("/api/delivery-notes/by-budget/<int:budget_id>", methods=["GET"])
def delivery_note_by_budget_api(budget_id: int):
    note = _service().get_note_by_budget(get_db(), budget_id)
    if note is None:
        raise NotFoundError(code="delivery_note_not_found")
    return jsonify(note)


@procurement_bp.route("/api/delivery-notes/<int:delivery_note_id>/receive", methods=["PATCH"])
def delivery_note_receive_api(delivery_note_id: int):
    payload = _payload()
    in_good_condition = _first(payload, "in_good_condition", "inGoodCondition")
    result = _service().receive_delivery(get_db(), delivery_note_id, in_good_condition)
    body = {
        "delivery_note_id": result.note_id,
        "state": result.state,
        "message": _ok("delivery_received" if result.state == "received" else "delivery_disputed"),
    }
    if result.notification is not None:
        body["notification_sent"] = result.notification.sent
        if result.notification.error:
            body["notification_error"] = result.notification.error
    return jsonify(body)


@procurement_bp.route("/api/delivery-notes/<int:delivery_note_id>/dispute-email", methods=["POST"])
def delivery_note_dispute_email_api(delivery_note_id: int):
    result = _service().notify_supplier_of_dispute(get_db(), delivery_note_id)
    body = {"sent": result.sent}
    if result.sent:
        body["message"] = _ok("dispute_email_sent")
    return jsonify(body)


@procurement_bp.route("/api/delivery-notes/<int:delivery_note_id>/redeliver", methods=["POST"])
def delivery_note_redeliver_api(delivery_note_id: int):
    new_note_id = _service().confirm_redelivery(get_db(), delivery_note_id)
    return jsonify({"delivery_note_id": new_note_id, "message": _ok("redelivery_confirmed")})
