# Overview: Flask API routes for stock intake, withdrawal and movement history.

from flask import Blueprint, jsonify, request, current_app

from ..services import inventory_service, products_service
from ..validation import coerce_int
from .responses import HANDLED_ERRORS, error_response, date_arg, json_body


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _product_from(data: dict):
    product_id = data.get("product_id")
    if product_id is None:
        return None
    return products_service.get_product(coerce_int(product_id, "product_id"))


@inventory_bp.post("/intake")
def intake_route():
    """
    Receive stock.

    Body: {"product_id": int, "amount": int, "supplier"?: str, "supplier_id"?: int, "note"?: str}
    """
    try:
        data = json_body()
        product = inventory_service.add_stock(
            _product_from(data),
            data.get("amount"),
            supplier=data.get("supplier"),
            supplier_id=data.get("supplier_id"),
            note=data.get("note"),
        )
        return jsonify(product.to_dict()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/withdraw")
def withdraw_route():
    try:
        data = json_body()
        product = inventory_service.withdraw_stock(
            _product_from(data),
            data.get("amount"),
            note=data.get("note"),
        )
        return jsonify(product.to_dict()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to withdraw stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/movements")
def movements_route():
    try:
        movements = inventory_service.list_movements(
            product_id=request.args.get("product_id", type=int),
            movement_type=request.args.get("movement_type") or None,
            supplier_id=request.args.get("supplier_id", type=int),
            date_from=date_arg("date_from"),
            date_to=date_arg("date_to"),
        )
        return jsonify(movements), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@inventory_bp.get("/stats")
def stats_route():
    try:
        stats = inventory_service.movement_stats(
            date_from=date_arg("date_from"),
            date_to=date_arg("date_to"),
        )
        return jsonify(stats), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
