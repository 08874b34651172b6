# backend/shopfloor/services/supplier_service.py
"""
Supplier Service

Suppliers are contacts stock is received from. Intake movements may point at
one through supplier_id; deleting a supplier keeps those movements and only
clears the reference (the free-text supplier name stays on the movement).
"""
from __future__ import annotations

import re

from ..models import StockMovement, Supplier
from ..validation import ValidationError
from ..errors import StorageError
from . import gateway
from .gateway import DataAccessError

SUPPLIER_MUTABLE_FIELDS = {"name", "email", "phone", "note"}

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean(patch: dict, *, partial: bool) -> dict:
    unknown = set(patch) - SUPPLIER_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}")

    values = {}
    for key, raw in patch.items():
        if raw is not None and not isinstance(raw, str):
            raise ValidationError(f"{key} must be a string")
        values[key] = (raw or "").strip() or None

    if not partial or "name" in values:
        if not values.get("name"):
            raise ValidationError("name is required")
    if values.get("email"):
        values["email"] = values["email"].lower()
        if not EMAIL_PATTERN.match(values["email"]):
            raise ValidationError("email is not a valid address")
    return values


def list_suppliers(*, search: str | None = None) -> list[Supplier]:
    """
    All suppliers ordered by name.

    search matches a substring of name, email or phone, case-insensitively.
    """
    try:
        suppliers = gateway.select(Supplier, order_by="name")
    except DataAccessError as exc:
        raise StorageError(f"Could not load suppliers: {exc}", failed_step="select_suppliers") from exc

    needle = (search or "").strip().lower()
    if needle:
        suppliers = [
            s for s in suppliers
            if needle in s.name.lower()
            or needle in (s.email or "").lower()
            or needle in (s.phone or "").lower()
        ]
    return suppliers


def get_supplier(supplier_id: int) -> Supplier | None:
    try:
        return gateway.get_by_id(Supplier, supplier_id)
    except DataAccessError as exc:
        raise StorageError(f"Could not load supplier: {exc}", failed_step="select_supplier") from exc


def create_supplier(patch: dict) -> Supplier:
    values = _clean(patch, partial=False)
    try:
        return gateway.insert(Supplier, values)
    except DataAccessError as exc:
        raise StorageError(f"Could not create supplier: {exc}", failed_step="insert_supplier") from exc


def update_supplier(supplier_id: int, patch: dict) -> Supplier | None:
    values = _clean(patch, partial=True)
    try:
        return gateway.update_by_id(Supplier, supplier_id, values)
    except DataAccessError as exc:
        raise StorageError(f"Could not update supplier: {exc}", failed_step="update_supplier") from exc


def delete_supplier(supplier_id: int) -> bool:
    try:
        with gateway.atomic():
            gateway.update_where(StockMovement, {"supplier_id": None}, commit=False, supplier_id=supplier_id)
            deleted = gateway.delete_by_id(Supplier, supplier_id, commit=False)
    except DataAccessError as exc:
        raise StorageError(f"Could not delete supplier: {exc}", failed_step="delete_supplier") from exc
    return deleted
