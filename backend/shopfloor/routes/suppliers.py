# Overview: Flask API routes for supplier contacts.

from flask import Blueprint, jsonify, request, current_app

from ..services import supplier_service
from .responses import HANDLED_ERRORS, error_response, json_body


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
def list_suppliers():
    """Ordered by name. Query: search (name, email or phone substring)."""
    try:
        suppliers = supplier_service.list_suppliers(search=request.args.get("search"))
        return jsonify([s.to_dict() for s in suppliers]), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@suppliers_bp.post("")
def create_supplier():
    """Body: {"name", "email"?, "phone"?, "note"?}"""
    try:
        supplier = supplier_service.create_supplier(json_body())
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(supplier.to_dict()), 201


@suppliers_bp.get("/<int:supplier_id>")
def get_supplier(supplier_id: int):
    try:
        supplier = supplier_service.get_supplier(supplier_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if supplier is None:
        return jsonify({"error": "Supplier not found"}), 404
    return jsonify(supplier.to_dict()), 200


@suppliers_bp.put("/<int:supplier_id>")
def update_supplier(supplier_id: int):
    try:
        supplier = supplier_service.update_supplier(supplier_id, json_body())
    except HANDLED_ERRORS as e:
        return error_response(e)
    if supplier is None:
        return jsonify({"error": "Supplier not found"}), 404
    return jsonify(supplier.to_dict()), 200


@suppliers_bp.delete("/<int:supplier_id>")
def delete_supplier(supplier_id: int):
    try:
        deleted = supplier_service.delete_supplier(supplier_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if not deleted:
        return jsonify({"error": "Supplier not found"}), 404
    return jsonify({"ok": True}), 200
