from __future__ import annotations

from flask import current_app

from ..models import Product, Store, StoreProduct, StoreUser, User
from ..validation import ConflictError, ValidationError, coerce_int
from ..errors import StorageError
from . import gateway
from .gateway import DataAccessError
"""
Store assignment

Every mutating operation does exactly one write, then re-reads the whole
store collection (users and products embedded) and returns it, so callers
always render what the database holds.

- write fails   -> StorageError, no re-read
- re-read fails -> StorageError(stale=True); the write itself is durable
"""

STORE_JOINS = ("users", "product_links")


def _fetch_all() -> list[Store]:
    return gateway.select(Store, order_by="location", joins=STORE_JOINS)


def list_stores() -> list[Store]:
    try:
        return _fetch_all()
    except DataAccessError as exc:
        raise StorageError(f"Could not load stores: {exc}", failed_step="select_stores") from exc


def _refetch(step: str) -> list[Store]:
    try:
        return _fetch_all()
    except DataAccessError as exc:
        current_app.logger.warning("Store refetch after %s failed: %s", step, exc)
        raise StorageError(
            f"Change saved but the store list could not be reloaded: {exc}",
            failed_step="refetch_stores",
            committed_steps=(step,),
            stale=True,
        ) from exc


def _write(step: str, fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except DataAccessError as exc:
        current_app.logger.warning("Store write %s failed: %s", step, exc)
        raise StorageError(f"Could not save store change: {exc}", failed_step=step) from exc


def _location(value) -> int:
    if value is None:
        raise ValidationError("location is required")
    return coerce_int(value, "location")


def _require_store(store_id: int) -> Store:
    store = gateway.get_by_id(Store, store_id)
    if store is None:
        raise ValidationError(f"Store {store_id} not found")
    return store


def _store_quantity(value) -> int:
    qty = coerce_int(value, "quantity")
    if qty < 0:
        raise ValidationError("quantity must be >= 0")
    return qty


def get_store(store_id: int) -> Store | None:
    return gateway.get_by_id(Store, store_id, joins=STORE_JOINS)


def create_store(location) -> list[Store]:
    loc = _location(location)
    _write("insert_store", gateway.insert, Store, {"location": loc})
    return _refetch("insert_store")


def update_store(store_id: int, location) -> list[Store]:
    loc = _location(location)
    _require_store(store_id)
    _write("update_store", gateway.update_by_id, Store, store_id, {"location": loc})
    return _refetch("update_store")


def delete_store(store_id: int) -> list[Store]:
    """User and product links are removed with the store."""
    _require_store(store_id)
    _write("delete_store", gateway.delete_by_id, Store, store_id)
    return _refetch("delete_store")


def assign_user(store_id: int, user_id: int) -> list[Store]:
    _require_store(store_id)
    if gateway.get_by_id(User, user_id) is None:
        raise ValidationError(f"User {user_id} not found")
    if gateway.first(StoreUser, store_id=store_id, user_id=user_id) is not None:
        raise ConflictError("User is already assigned to this store.")
    _write("insert_store_user", gateway.insert, StoreUser, {"store_id": store_id, "user_id": user_id})
    return _refetch("insert_store_user")


def remove_user(store_id: int, user_id: int) -> list[Store]:
    _require_store(store_id)
    _write("delete_store_user", gateway.delete_where, StoreUser, store_id=store_id, user_id=user_id)
    return _refetch("delete_store_user")


def add_product_to_store(store_id: int, product_id: int, quantity=0) -> list[Store]:
    _require_store(store_id)
    if gateway.get_by_id(Product, product_id) is None:
        raise ValidationError(f"Product {product_id} not found")
    qty = _store_quantity(quantity)
    if gateway.first(StoreProduct, store_id=store_id, product_id=product_id) is not None:
        raise ConflictError("Product is already stocked in this store.")
    _write(
        "insert_store_product",
        gateway.insert,
        StoreProduct,
        {"store_id": store_id, "product_id": product_id, "quantity": qty},
    )
    return _refetch("insert_store_product")


def update_product_in_store(store_id: int, product_id: int, quantity) -> list[Store]:
    qty = _store_quantity(quantity)
    link = gateway.first(StoreProduct, store_id=store_id, product_id=product_id)
    if link is None:
        raise ValidationError("Product is not stocked in this store")
    _write("update_store_product", gateway.update_by_id, StoreProduct, link.id, {"quantity": qty})
    return _refetch("update_store_product")


def remove_product_from_store(store_id: int, product_id: int) -> list[Store]:
    _require_store(store_id)
    _write(
        "delete_store_product",
        gateway.delete_where,
        StoreProduct,
        store_id=store_id,
        product_id=product_id,
    )
    return _refetch("delete_store_product")


def stores_for_user(user_id: int) -> list[Store]:
    try:
        links = gateway.select(StoreUser, filters={"user_id": user_id})
        store_ids = [link.store_id for link in links]
        if not store_ids:
            return []
        return gateway.select(
            Store,
            where=(Store.id.in_(store_ids),),
            order_by="location",
            joins=STORE_JOINS,
        )
    except DataAccessError as exc:
        raise StorageError(f"Could not load stores: {exc}", failed_step="select_stores") from exc
