# Overview: Flask API routes for the session cart and checkout.

"""
Cart Routes

The cart lives in the signed Flask session cookie between requests; every
route loads it, applies one operation and stores it back, even when the
operation fails (a failed checkout leaves the cart in FAILED state).
"""

from flask import Blueprint, jsonify, session, current_app

from ..services import products_service, sales_service
from ..services.sales_service import Cart
from ..validation import coerce_int
from .responses import HANDLED_ERRORS, error_response, json_body


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")

SESSION_KEY = "cart"


def _load_cart() -> Cart:
    return Cart.from_session(session.get(SESSION_KEY))


def _save_cart(cart: Cart) -> None:
    session[SESSION_KEY] = cart.to_session()


@cart_bp.get("")
def get_cart():
    return jsonify(_load_cart().to_dict()), 200


@cart_bp.post("/lines")
def add_line_route():
    """Add one unit. Body: {"product_id": int}"""
    cart = _load_cart()
    try:
        product_id = json_body().get("product_id")
        product = products_service.get_product(coerce_int(product_id, "product_id")) if product_id is not None else None
        cart.add(product)
    except HANDLED_ERRORS as e:
        return error_response(e)
    _save_cart(cart)
    return jsonify(cart.to_dict()), 200


@cart_bp.put("/lines/<int:product_id>")
def update_line_route(product_id: int):
    """Body: {"quantity": int}; checked against the product's live stock."""
    cart = _load_cart()
    try:
        product = products_service.get_product(product_id)
        stock = product.quantity if product is not None else 0
        cart.update_line_quantity(product_id, json_body().get("quantity"), stock=stock)
    except HANDLED_ERRORS as e:
        return error_response(e)
    _save_cart(cart)
    return jsonify(cart.to_dict()), 200


@cart_bp.delete("/lines/<int:product_id>")
def remove_line_route(product_id: int):
    cart = _load_cart()
    try:
        cart.remove_line(product_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    _save_cart(cart)
    return jsonify(cart.to_dict()), 200


@cart_bp.delete("")
def clear_cart_route():
    cart = _load_cart()
    cart.clear()
    _save_cart(cart)
    return jsonify(cart.to_dict()), 200


@cart_bp.post("/checkout")
def checkout_route():
    """Body: {"payment_mode": str}. Returns the receipt."""
    cart = _load_cart()
    try:
        receipt = sales_service.checkout(cart, json_body().get("payment_mode"))
    except HANDLED_ERRORS as e:
        _save_cart(cart)
        return error_response(e)
    except Exception:
        current_app.logger.exception("Checkout failed")
        cart.status = sales_service.CART_FAILED
        _save_cart(cart)
        return jsonify({"error": "Internal server error"}), 500

    _save_cart(cart)
    return jsonify(receipt), 201
