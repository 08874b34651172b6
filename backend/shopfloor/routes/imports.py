# Overview: Flask API routes for spreadsheet imports; parses uploads and returns JSON responses.

"""
Import Routes

Supports CSV and Excel (.xlsx) uploads. The upload is parsed and validated
in full before anything is written.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import import_service
from ..validation import ValidationError
from .responses import HANDLED_ERRORS, error_response


imports_bp = Blueprint("imports", __name__, url_prefix="/api/imports")


def _uploaded_rows() -> list[dict]:
    if "file" not in request.files:
        raise ValidationError("file is required")
    file = request.files["file"]
    return import_service.parse_spreadsheet(file.stream, file.filename or "")


@imports_bp.post("")
def run_import_route():
    """
    Multipart form: file=<.xlsx|.csv>, per_row=true to commit row by row
    (default: all-or-nothing).
    """
    per_row = (request.form.get("per_row") or "").strip().lower() in {"1", "true", "yes", "on"}
    try:
        rows = _uploaded_rows()
        result = import_service.run_import(rows, atomic=not per_row)
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to import spreadsheet")
        return jsonify({"error": "Failed to import file"}), 500

    status = 207 if result.errors else 201
    return jsonify(result.to_dict()), status


@imports_bp.post("/validate")
def validate_import_route():
    """Dry run: parse and validate, write nothing."""
    try:
        rows = import_service.validate_rows(_uploaded_rows())
    except HANDLED_ERRORS as e:
        return error_response(e)
    return jsonify({"valid": True, "rows": len(rows)}), 200
