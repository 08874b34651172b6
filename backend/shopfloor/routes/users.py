# Overview: Flask API routes for staff user records.

from flask import Blueprint, jsonify, current_app

from ..services import store_service, user_service
from .responses import HANDLED_ERRORS, error_response, json_body


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
def list_users():
    try:
        return jsonify([u.to_dict() for u in user_service.list_users()]), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@users_bp.post("")
def create_user():
    """Body: {"email", "password", "name"?, "role"?}"""
    try:
        data = json_body()
        user = user_service.create_user(
            data.get("email"),
            data.get("password"),
            name=data.get("name"),
            role=data.get("role"),
        )
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(user.to_dict()), 201


@users_bp.get("/<int:user_id>")
def get_user(user_id: int):
    try:
        user = user_service.get_user(user_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user.to_dict()), 200


@users_bp.put("/<int:user_id>")
def update_user(user_id: int):
    try:
        user = user_service.update_user(user_id, json_body())
    except HANDLED_ERRORS as e:
        return error_response(e)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user.to_dict()), 200


@users_bp.put("/<int:user_id>/password")
def set_password(user_id: int):
    try:
        updated = user_service.set_password(user_id, json_body().get("password"))
    except HANDLED_ERRORS as e:
        return error_response(e)
    if not updated:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"ok": True}), 200


@users_bp.delete("/<int:user_id>")
def delete_user(user_id: int):
    try:
        deleted = user_service.delete_user(user_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if not deleted:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"ok": True}), 200


@users_bp.get("/<int:user_id>/stores")
def user_stores(user_id: int):
    try:
        stores = store_service.stores_for_user(user_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    return jsonify([s.to_dict() for s in stores]), 200
