# Overview: Flask API routes for VAT rates.

from flask import Blueprint, jsonify, request

from ..models import VatRate
from ..services import vat_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload, enforce_rules_vat
from .responses import HANDLED_ERRORS, error_response, date_arg, json_body
from shopfloor.time_utils import utcnow

VAT_POLICY = ModelValidationPolicy(
    writable_fields={"effective_date", "rate_bps"},
    required_on_create={"effective_date", "rate_bps"},
)

vat_bp = Blueprint("vat", __name__, url_prefix="/api/vat")


@vat_bp.get("")
def list_rates():
    try:
        return jsonify([r.to_dict() for r in vat_service.list_rates()]), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@vat_bp.get("/applicable")
def applicable_rate():
    """Rate in force on ?date=YYYY-MM-DD (default: today)."""
    try:
        on_date = date_arg("date") or utcnow().date()
        rate = vat_service.applicable_rate(on_date)
    except HANDLED_ERRORS as e:
        return error_response(e)
    return jsonify({"date": on_date.isoformat(), "rate": rate.to_dict() if rate else None}), 200


@vat_bp.get("/quote")
def quote():
    """VAT on a net amount: ?price_cents=int&date=YYYY-MM-DD"""
    try:
        price = request.args.get("price_cents", type=int)
        if price is None or price < 0:
            raise ValidationError("price_cents must be a non-negative integer")
        on_date = date_arg("date") or utcnow().date()
        rate = vat_service.applicable_rate(on_date)
    except HANDLED_ERRORS as e:
        return error_response(e)
    rate_bps = rate.rate_bps if rate else None
    return jsonify({
        "price_cents": price,
        "rate_bps": rate_bps,
        "vat_cents": vat_service.vat_amount(price, rate_bps),
        "price_with_vat_cents": vat_service.price_with_vat(price, rate_bps),
    }), 200


@vat_bp.post("")
def add_rate():
    try:
        patch = validate_payload(model=VatRate, payload=json_body(), policy=VAT_POLICY, partial=False)
        enforce_rules_vat(patch)
        rate = vat_service.add_rate(patch["effective_date"], patch["rate_bps"])
    except HANDLED_ERRORS as e:
        return error_response(e)
    return jsonify(rate.to_dict()), 201


@vat_bp.put("/<int:rate_id>")
def update_rate(rate_id: int):
    try:
        patch = validate_payload(model=VatRate, payload=json_body(), policy=VAT_POLICY, partial=True)
        enforce_rules_vat(patch)
        rate = vat_service.update_rate(rate_id, patch)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if rate is None:
        return jsonify({"error": "VAT rate not found"}), 404
    return jsonify(rate.to_dict()), 200


@vat_bp.delete("/<int:rate_id>")
def delete_rate(rate_id: int):
    try:
        deleted = vat_service.delete_rate(rate_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if not deleted:
        return jsonify({"error": "VAT rate not found"}), 404
    return jsonify({"ok": True}), 200
