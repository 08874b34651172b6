# Overview: Shared error-to-response mapping and query-string helpers for the API blueprints.

from __future__ import annotations

from flask import current_app, jsonify, request

from ..errors import ConfigurationError, InsufficientStockError, StorageError
from ..services.gateway import DataAccessError
from ..validation import ConflictError, ValidationError
from shopfloor.time_utils import parse_date

HANDLED_ERRORS = (
    ValidationError,
    ConflictError,
    InsufficientStockError,
    StorageError,
    ConfigurationError,
    DataAccessError,
)


def error_response(exc: Exception):
    """Translate a workflow error into (json, status)."""
    if isinstance(exc, InsufficientStockError):
        return jsonify(exc.to_dict()), 409
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, StorageError):
        current_app.logger.warning("Storage failure: %s", exc)
        return jsonify(exc.to_dict()), 500
    if isinstance(exc, ConfigurationError):
        current_app.logger.error("Configuration error: %s", exc)
        return jsonify({"error": str(exc)}), 500
    if isinstance(exc, DataAccessError):
        current_app.logger.warning("Data access failure on %s: %s", exc.table, exc)
        return jsonify({"error": "Storage error", "failed_step": exc.operation}), 500
    current_app.logger.exception("Unhandled error")
    return jsonify({"error": "Internal server error"}), 500


def date_arg(name: str):
    """Optional YYYY-MM-DD query parameter."""
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data
