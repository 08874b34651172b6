# Overview: Flask API routes for stores and their user/product assignments.

"""
Every write returns the full, freshly re-read store list so the client can
replace its copy wholesale. Creating a store answers 201; link writes change
an existing store and answer 200.
"""

from flask import Blueprint, jsonify

from ..services import store_service
from .responses import HANDLED_ERRORS, error_response, json_body


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


def _store_list(stores):
    return jsonify([store.to_dict() for store in stores])


@stores_bp.get("")
def list_stores():
    try:
        return _store_list(store_service.list_stores()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@stores_bp.get("/<int:store_id>")
def get_store(store_id: int):
    try:
        store = store_service.get_store(store_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    if not store:
        return jsonify({"error": "Store not found"}), 404
    return jsonify(store.to_dict()), 200


@stores_bp.post("")
def create_store():
    try:
        stores = store_service.create_store(json_body().get("location"))
    except HANDLED_ERRORS as e:
        return error_response(e)
    return _store_list(stores), 201


@stores_bp.put("/<int:store_id>")
def update_store(store_id: int):
    try:
        stores = store_service.update_store(store_id, json_body().get("location"))
    except HANDLED_ERRORS as e:
        return error_response(e)
    return _store_list(stores), 200


@stores_bp.delete("/<int:store_id>")
def delete_store(store_id: int):
    try:
        stores = store_service.delete_store(store_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    return _store_list(stores), 200


@stores_bp.post("/<int:store_id>/users")
def assign_user(store_id: int):
    """Body: {"user_id": int}"""
    try:
        stores = store_service.assign_user(store_id, json_body().get("user_id"))
    except HANDLED_ERRORS as e:
        return error_response(e)
    return _store_list(stores), 200


@stores_bp.delete("/<int:store_id>/users/<int:user_id>")
def remove_user(store_id: int, user_id: int):
    try:
        stores = store_service.remove_user(store_id, user_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    return _store_list(stores), 200


@stores_bp.post("/<int:store_id>/products")
def add_product(store_id: int):
    """Body: {"product_id": int, "quantity"?: int}"""
    try:
        data = json_body()
        stores = store_service.add_product_to_store(
            store_id, data.get("product_id"), data.get("quantity", 0)
        )
    except HANDLED_ERRORS as e:
        return error_response(e)
    return _store_list(stores), 200


@stores_bp.put("/<int:store_id>/products/<int:product_id>")
def update_product(store_id: int, product_id: int):
    try:
        stores = store_service.update_product_in_store(
            store_id, product_id, json_body().get("quantity")
        )
    except HANDLED_ERRORS as e:
        return error_response(e)
    return _store_list(stores), 200


@stores_bp.delete("/<int:store_id>/products/<int:product_id>")
def remove_product(store_id: int, product_id: int):
    try:
        stores = store_service.remove_product_from_store(store_id, product_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
    return _store_list(stores), 200
