# Overview: Flask routes for product image upload, listing, deletion and serving.

from flask import Blueprint, jsonify, request, send_file, current_app

from ..services.blob_storage import BlobStorage
from ..validation import ValidationError
from .responses import HANDLED_ERRORS, error_response, json_body


media_bp = Blueprint("media", __name__, url_prefix="/api/media")
# Serves objects at BLOB_PUBLIC_BASE_URL when it is the default local path
media_files_bp = Blueprint("media_files", __name__)


@media_bp.post("")
def upload_image():
    """Multipart form: file=<image>. Returns {"url": ...}."""
    try:
        if "file" not in request.files:
            raise ValidationError("file is required")
        file = request.files["file"]
        storage = BlobStorage.from_app()
        url = storage.upload(file.read(), file.filename, file.mimetype)
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Image upload failed")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"url": url}), 201


@media_bp.get("")
def list_images():
    try:
        storage = BlobStorage.from_app()
        return jsonify({"container": storage.container, "objects": storage.list()}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@media_bp.delete("")
def delete_image():
    """Body: {"url": str}"""
    try:
        deleted = BlobStorage.from_app().delete(json_body().get("url"))
    except HANDLED_ERRORS as e:
        return error_response(e)
    if not deleted:
        return jsonify({"error": "Image not found"}), 404
    return jsonify({"ok": True}), 200


@media_files_bp.get("/media/<container>/<name>")
def serve_image(container: str, name: str):
    try:
        storage = BlobStorage.from_app()
    except HANDLED_ERRORS as e:
        return error_response(e)
    if container != storage.container:
        return jsonify({"error": "Not found"}), 404
    try:
        path = storage.open_path(name)
    except FileNotFoundError:
        return jsonify({"error": "Not found"}), 404
    return send_file(path)
