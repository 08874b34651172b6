# Overview: Flask API routes for recorded purchases; parses input and returns JSON responses.

from flask import Blueprint, jsonify, current_app

from ..services import sales_service
from .responses import HANDLED_ERRORS, error_response, date_arg


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales_route():
    """Purchases newest first. Query: date_from, date_to (YYYY-MM-DD, inclusive)."""
    try:
        purchases = sales_service.list_purchases(
            date_from=date_arg("date_from"),
            date_to=date_arg("date_to"),
        )
        return jsonify([p.to_dict() for p in purchases]), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@sales_bp.get("/stats")
def sales_stats_route():
    try:
        stats = sales_service.sale_stats(
            date_from=date_arg("date_from"),
            date_to=date_arg("date_to"),
        )
        return jsonify(stats), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@sales_bp.delete("/<int:purchase_id>")
def delete_sale_route(purchase_id: int):
    """Cancel a purchase; sold units go back into stock."""
    try:
        deleted = sales_service.delete_purchase(purchase_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete purchase %s", purchase_id)
        return jsonify({"error": "Internal server error"}), 500

    if not deleted:
        return jsonify({"error": "Purchase not found"}), 404
    return jsonify({"ok": True}), 200
