from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from factory_ops.application.stock_service import StockService
from factory_ops.db import get_db
from factory_ops.ui_strings import success_message


stock_bp = Blueprint("stock", __name__)


def _service() -> StockService:
    return current_app.extensions["factory_ops.stock"]


def _quantity_from_body():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None
    return payload.get("quantity")


@stock_bp.route("/api/raw-materials/<int:material_id>/stock", methods=["PATCH"])
def raw_material_stock_api(material_id: int):
    result = _service().adjust_raw_material_quantity(get_db(), material_id, _quantity_from_body())
    result["message"] = success_message("stock_updated")
    return jsonify(result)


@stock_bp.route("/api/products/<int:product_id>/stock", methods=["PATCH"])
def product_stock_api(product_id: int):
    result = _service().adjust_product_quantity(get_db(), product_id, _quantity_from_body())
    result["message"] = success_message("stock_updated")
    return jsonify(result)
