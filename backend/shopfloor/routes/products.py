# Overview: Flask API routes for the product catalog and categories; parses input and returns JSON responses.

# backend/shopfloor/routes/products.py
from flask import Blueprint, request, jsonify, current_app

from ..models import Product
from ..services import products_service, forecast_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from .responses import HANDLED_ERRORS, error_response, bool_arg, json_body

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "code", "name", "description", "quantity", "critical_quantity", "price_cents", "photo_url",
    },
    required_on_create={"code", "name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


def _split_payload(payload: dict) -> tuple[dict, list | None]:
    payload = dict(payload)
    category_ids = payload.pop("category_ids", None)
    if category_ids is not None and not isinstance(category_ids, list):
        raise ValidationError("category_ids must be a list of integers")
    return payload, category_ids


@products_bp.get("")
def list_products():
    """
    Query params (all optional):
    - search: substring of name, code or description
    - category_id: int
    - in_stock: true/false
    - min_price_cents / max_price_cents: int
    """
    try:
        products = products_service.list_products(
            search=request.args.get("search"),
            category_id=request.args.get("category_id", type=int),
            in_stock=bool_arg("in_stock"),
            min_price_cents=request.args.get("min_price_cents", type=int),
            max_price_cents=request.args.get("max_price_cents", type=int),
        )
        return jsonify(products), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@products_bp.get("/low-stock")
def low_stock():
    try:
        return jsonify(products_service.list_low_stock()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if product is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200


@products_bp.post("")
def create_product_route():
    try:
        payload, category_ids = _split_payload(json_body())
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch, category_ids=category_ids)
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    try:
        payload, category_ids = _split_payload(json_body())
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(
            product_id=product_id, patch=patch, category_ids=category_ids
        )
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500

    if not updated:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(updated), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        deleted = products_service.delete_product(product_id=product_id)
    except HANDLED_ERRORS as e:
        return error_response(e)

    if not deleted:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"ok": True}), 200


@products_bp.get("/<int:product_id>/forecast")
def product_forecast(product_id: int):
    """Next-period sales estimate from imported sales history."""
    try:
        if products_service.get_product(product_id) is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify(forecast_service.forecast_sales(product_id)), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@categories_bp.get("")
def list_categories():
    try:
        return jsonify(products_service.list_categories()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@categories_bp.post("")
def create_category():
    try:
        category = products_service.create_category(json_body().get("name"))
    except HANDLED_ERRORS as e:
        return error_response(e)
    return jsonify(category), 201


@categories_bp.put("/<int:category_id>")
def rename_category(category_id: int):
    try:
        category = products_service.rename_category(category_id, json_body().get("name"))
    except HANDLED_ERRORS as e:
        return error_response(e)
    if category is None:
        return jsonify({"error": "Category not found"}), 404
    return jsonify(category), 200


@categories_bp.delete("/<int:category_id>")
def delete_category(category_id: int):
    try:
        deleted = products_service.delete_category(category_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if not deleted:
        return jsonify({"error": "Category not found"}), 404
    return jsonify({"ok": True}), 200
