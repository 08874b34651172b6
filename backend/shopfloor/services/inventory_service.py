# Overview: Stock intake, manual withdrawal and stock movement history.

from __future__ import annotations

from datetime import date, datetime, time

from flask import current_app

from ..models import Product, StockMovement, Supplier
from ..models.inventory import (
    MOVEMENT_INTAKE,
    MOVEMENT_MANUAL_WITHDRAWAL,
    MOVEMENT_SALE,
    MOVEMENT_DELETION,
    MOVEMENT_TYPES,
)
from ..validation import ValidationError, coerce_int, enforce_positive_quantity
from ..errors import InsufficientStockError, StorageError
from . import gateway
from .gateway import DataAccessError
from shopfloor.time_utils import utcnow
"""
Stock invariants (authoritative)

- Product.quantity is never negative after a workflow completes.
- Quantity changes are single conditional UPDATE statements
  (quantity = quantity + delta [WHERE quantity + delta >= 0]); the caller's
  snapshot is never written back, so concurrent intakes cannot lose updates.
- Every change appends a StockMovement in the same transaction.
"""


def _movement(product: Product, movement_type: str, quantity: int, **extra) -> dict:
    values = {
        "product_id": product.id,
        "product_code": product.code,
        "product_name": product.name,
        "movement_type": movement_type,
        "quantity": quantity,
        "occurred_at": utcnow(),
    }
    values.update(extra)
    return values


def add_stock(
    product: Product | None,
    amount,
    *,
    supplier: str | None = None,
    supplier_id: int | None = None,
    note: str | None = None,
) -> Product:
    """
    Add amount units to product's on-hand quantity.

    No writes are attempted when the input is invalid. The increment is
    applied by the database, so the result is product.quantity + amount
    whenever no other session touched the row in between.

    Raises:
        ValidationError: product is None, amount is not a positive integer,
            or supplier_id names no supplier
        StorageError: the update failed or the product row no longer exists
    """
    if product is None:
        raise ValidationError("A product must be selected")
    qty = enforce_positive_quantity(amount, "amount")

    supplier_name = (supplier or "").strip() or None
    if supplier_id is not None:
        linked = gateway.get_by_id(Supplier, coerce_int(supplier_id, "supplier_id"))
        if linked is None:
            raise ValidationError(f"Supplier {supplier_id} not found")
        supplier_id = linked.id
        supplier_name = supplier_name or linked.name

    try:
        with gateway.atomic():
            matched = gateway.adjust_by_id(Product, product.id, "quantity", qty, commit=False)
            if not matched:
                raise StorageError(
                    f"Product {product.id} no longer exists",
                    failed_step="update_quantity",
                )
            gateway.insert(
                StockMovement,
                _movement(
                    product,
                    MOVEMENT_INTAKE,
                    qty,
                    supplier=supplier_name,
                    supplier_id=supplier_id,
                    note=(note or "").strip() or None,
                ),
                commit=False,
            )
    except DataAccessError as exc:
        current_app.logger.warning("Stock intake rolled back for product %s: %s", product.id, exc)
        raise StorageError(f"Could not add stock: {exc}", failed_step="update_quantity") from exc

    return gateway.get_by_id(Product, product.id)


def withdraw_stock(product: Product | None, amount, *, note: str | None = None) -> Product:
    """
    Remove units by hand (breakage, theft, internal use).

    Raises:
        ValidationError: product is None or amount is not a positive integer
        InsufficientStockError: fewer than amount units on hand
        StorageError: the update failed
    """
    if product is None:
        raise ValidationError("A product must be selected")
    qty = enforce_positive_quantity(amount, "amount")

    try:
        with gateway.atomic():
            matched = gateway.adjust_by_id(Product, product.id, "quantity", -qty, minimum=0, commit=False)
            if not matched:
                current = gateway.get_by_id(Product, product.id)
                if current is None:
                    raise StorageError(
                        f"Product {product.id} no longer exists",
                        failed_step="update_quantity",
                    )
                raise InsufficientStockError(
                    f"Only {current.quantity} unit(s) of {current.name} in stock",
                    product_id=product.id,
                    requested=qty,
                    available=current.quantity,
                )
            gateway.insert(
                StockMovement,
                _movement(product, MOVEMENT_MANUAL_WITHDRAWAL, qty, note=(note or "").strip() or None),
                commit=False,
            )
    except DataAccessError as exc:
        current_app.logger.warning("Stock withdrawal rolled back for product %s: %s", product.id, exc)
        raise StorageError(f"Could not withdraw stock: {exc}", failed_step="update_quantity") from exc

    return gateway.get_by_id(Product, product.id)


def _day_bounds(date_from: date | None, date_to: date | None) -> tuple:
    start = datetime.combine(date_from, time.min) if date_from else None
    end = datetime.combine(date_to, time.max) if date_to else None
    return start, end


def list_movements(
    *,
    product_id: int | None = None,
    movement_type: str | None = None,
    supplier_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[dict]:
    """Stock history, newest first. Date bounds are inclusive calendar days."""
    if movement_type is not None and movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"movement_type must be one of: {', '.join(MOVEMENT_TYPES)}")

    filters = {}
    if product_id is not None:
        filters["product_id"] = product_id
    if movement_type is not None:
        filters["movement_type"] = movement_type
    if supplier_id is not None:
        filters["supplier_id"] = supplier_id

    start, end = _day_bounds(date_from, date_to)
    where = []
    if start is not None:
        where.append(StockMovement.occurred_at >= start)
    if end is not None:
        where.append(StockMovement.occurred_at <= end)

    try:
        rows = gateway.select(
            StockMovement,
            filters=filters,
            where=where,
            order_by="occurred_at",
            descending=True,
        )
    except DataAccessError as exc:
        raise StorageError(f"Could not load stock history: {exc}", failed_step="select_movements") from exc
    return [m.to_dict() for m in rows]


def movement_stats(*, date_from: date | None = None, date_to: date | None = None) -> dict:
    movements = list_movements(date_from=date_from, date_to=date_to)
    totals = {t: 0 for t in MOVEMENT_TYPES}
    for m in movements:
        totals[m["movement_type"]] += m["quantity"]
    return {
        "total_intake": totals[MOVEMENT_INTAKE],
        "total_sales": totals[MOVEMENT_SALE],
        "total_withdrawals": totals[MOVEMENT_MANUAL_WITHDRAWAL],
        "total_deleted": totals[MOVEMENT_DELETION],
        "operation_count": len(movements),
    }
