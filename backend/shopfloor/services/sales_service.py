"""
Sales Service - cart building and checkout

Cart lifecycle: EMPTY -> BUILDING -> SUBMITTING -> (COMMITTED | FAILED).

A cart is a transient snapshot held by the caller (the HTTP layer keeps it
in the Flask session). Checkout writes the purchase header, its lines and
the stock decrements in ONE database transaction: either every step is
durable or none is, and a failed checkout leaves the cart intact for retry.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime, time

from flask import current_app

from ..models import Product, Purchase, PurchaseLine, StockMovement
from ..models.inventory import MOVEMENT_INTAKE, MOVEMENT_SALE
from ..validation import ValidationError, enforce_positive_quantity
from ..errors import InsufficientStockError, StorageError
from . import gateway, vat_service
from .gateway import DataAccessError
from shopfloor.time_utils import utcnow


CART_EMPTY = "EMPTY"
CART_BUILDING = "BUILDING"
CART_SUBMITTING = "SUBMITTING"
CART_COMMITTED = "COMMITTED"
CART_FAILED = "FAILED"

MAX_PAYMENT_MODE_LENGTH = 32


@dataclass
class CartLine:
    product_id: int
    name: str
    unit_price_cents: int
    quantity: int
    stock: int  # live stock when the line was last touched

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        data = asdict(self)
        data["line_total_cents"] = self.line_total_cents
        return data


class Cart:
    """In-memory cart. Every failed operation leaves lines and status untouched."""

    def __init__(self, lines: list[CartLine] | None = None, status: str | None = None):
        self.lines: dict[int, CartLine] = {line.product_id: line for line in lines or []}
        self.status = status or (CART_BUILDING if self.lines else CART_EMPTY)

    @property
    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines.values())

    def _ensure_editable(self) -> None:
        if self.status == CART_SUBMITTING:
            raise ValidationError("Cart is being submitted")

    def _settle(self) -> None:
        self.status = CART_BUILDING if self.lines else CART_EMPTY

    def add(self, product: Product) -> CartLine:
        """
        Add one unit of product.

        Raises:
            ValidationError: product is None
            InsufficientStockError: product has no stock, or the line would
                exceed the product's live stock
        """
        self._ensure_editable()
        if product is None:
            raise ValidationError("A product must be selected")
        if product.quantity <= 0:
            raise InsufficientStockError(
                f"{product.name} is out of stock",
                product_id=product.id,
                requested=1,
                available=product.quantity,
            )

        line = self.lines.get(product.id)
        if line is not None:
            requested = line.quantity + 1
            if requested > product.quantity:
                raise InsufficientStockError(
                    f"Only {product.quantity} unit(s) of {product.name} in stock",
                    product_id=product.id,
                    requested=requested,
                    available=product.quantity,
                )
            line.quantity = requested
            line.stock = product.quantity
        else:
            line = CartLine(
                product_id=product.id,
                name=product.name,
                unit_price_cents=product.price_cents,
                quantity=1,
                stock=product.quantity,
            )
            self.lines[product.id] = line

        self._settle()
        return line

    def update_line_quantity(self, product_id: int, quantity, *, stock: int | None = None) -> CartLine:
        """
        Replace a line's quantity.

        stock is the product's live stock; when omitted, the stock seen when
        the line was last touched is used.
        """
        self._ensure_editable()
        line = self.lines.get(product_id)
        if line is None:
            raise ValidationError(f"Product {product_id} is not in the cart")
        qty = enforce_positive_quantity(quantity)
        available = line.stock if stock is None else stock
        if qty > available:
            raise InsufficientStockError(
                f"Only {available} unit(s) of {line.name} in stock",
                product_id=product_id,
                requested=qty,
                available=available,
            )
        line.quantity = qty
        line.stock = available
        self._settle()
        return line

    def remove_line(self, product_id: int) -> None:
        self._ensure_editable()
        self.lines.pop(product_id, None)
        self._settle()

    def clear(self) -> None:
        self.lines.clear()
        self.status = CART_EMPTY

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "lines": [line.to_dict() for line in self.lines.values()],
            "total_cents": self.total_cents,
        }

    def to_session(self) -> dict:
        return {
            "status": self.status,
            "lines": [asdict(line) for line in self.lines.values()],
        }

    @classmethod
    def from_session(cls, data: dict | None) -> "Cart":
        data = data or {}
        lines = [CartLine(**raw) for raw in data.get("lines", [])]
        status = data.get("status")
        # A request that died mid-checkout must not lock the cart forever
        if status == CART_SUBMITTING:
            status = CART_FAILED
        return cls(lines, status=status)


def _validate_payment_mode(payment_mode: str | None) -> str:
    mode = (payment_mode or "").strip()
    if not mode:
        raise ValidationError("payment_mode is required")
    if len(mode) > MAX_PAYMENT_MODE_LENGTH:
        raise ValidationError(f"payment_mode exceeds max length {MAX_PAYMENT_MODE_LENGTH}")
    return mode


def checkout(cart: Cart, payment_mode: str, *, purchased_at: datetime | None = None) -> dict:
    """
    Record the sale in one transaction:

    1. insert the purchase header (timestamp, payment mode, applicable VAT rate)
    2. insert one purchase line per cart line (cart price snapshot)
    3. decrement each product's stock with a guarded UPDATE
       (quantity - n WHERE quantity >= n) and log a SALE movement

    Any failure rolls back all three steps. On success the cart is cleared
    and a receipt is returned with refreshed product snapshots.

    Raises:
        ValidationError: empty cart, missing payment mode, checkout in progress
        InsufficientStockError: stock dropped below a line quantity since the
            cart was built (nothing written)
        StorageError: a write failed (nothing written; failed_step says where)
    """
    if cart.status == CART_SUBMITTING:
        raise ValidationError("Checkout already in progress")
    if not cart.lines:
        raise ValidationError("Cannot checkout an empty cart")
    mode = _validate_payment_mode(payment_mode)

    purchased_at = purchased_at or utcnow()
    rate = vat_service.applicable_rate(purchased_at.date())
    rate_bps = rate.rate_bps if rate else None

    lines = list(cart.lines.values())
    cart.status = CART_SUBMITTING
    step = "insert_purchase"
    try:
        with gateway.atomic():
            purchase = gateway.insert(
                Purchase,
                {"purchased_at": purchased_at, "payment_mode": mode, "vat_rate_bps": rate_bps},
                commit=False,
            )

            step = "insert_purchase_lines"
            gateway.insert_many(
                PurchaseLine,
                [
                    {
                        "purchase_id": purchase.id,
                        "product_id": line.product_id,
                        "quantity": line.quantity,
                        "unit_price_cents": line.unit_price_cents,
                    }
                    for line in lines
                ],
                commit=False,
            )

            step = "decrement_stock"
            for line in lines:
                matched = gateway.adjust_by_id(
                    Product, line.product_id, "quantity", -line.quantity, minimum=0, commit=False
                )
                product = gateway.get_by_id(Product, line.product_id)
                if not matched:
                    available = product.quantity if product is not None else 0
                    raise InsufficientStockError(
                        f"Only {available} unit(s) of {line.name} in stock",
                        product_id=line.product_id,
                        requested=line.quantity,
                        available=available,
                    )
                gateway.insert(
                    StockMovement,
                    {
                        "product_id": product.id,
                        "product_code": product.code,
                        "product_name": product.name,
                        "movement_type": MOVEMENT_SALE,
                        "quantity": line.quantity,
                        "purchase_id": purchase.id,
                        "occurred_at": purchased_at,
                    },
                    commit=False,
                )
    except InsufficientStockError as exc:
        cart.status = CART_FAILED
        current_app.logger.warning("Checkout rolled back: %s", exc)
        raise
    except DataAccessError as exc:
        cart.status = CART_FAILED
        current_app.logger.warning("Checkout rolled back at %s: %s", step, exc)
        raise StorageError(
            f"Checkout failed, nothing was recorded: {exc}",
            failed_step=step,
            committed_steps=(),
        ) from exc

    purchase = gateway.get_by_id(Purchase, purchase.id, joins=("lines",))
    products = [gateway.get_by_id(Product, line.product_id) for line in lines]
    total = purchase.total_cents

    cart.clear()
    return {
        "status": CART_COMMITTED,
        "purchase": purchase.to_dict(),
        "total_cents": total,
        "vat_rate_bps": rate_bps,
        "vat_included_cents": vat_service.vat_included(total, rate_bps),
        "products": [p.to_dict() for p in products if p is not None],
    }


def list_purchases(*, date_from: date | None = None, date_to: date | None = None) -> list[Purchase]:
    """Purchases newest first, with lines and their products embedded."""
    where = []
    if date_from is not None:
        where.append(Purchase.purchased_at >= datetime.combine(date_from, time.min))
    if date_to is not None:
        where.append(Purchase.purchased_at <= datetime.combine(date_to, time.max))
    try:
        return gateway.select(
            Purchase,
            where=where,
            order_by="purchased_at",
            descending=True,
            joins=("lines",),
        )
    except DataAccessError as exc:
        raise StorageError(f"Could not load purchases: {exc}", failed_step="select_purchases") from exc


def sale_stats(*, date_from: date | None = None, date_to: date | None = None) -> dict:
    purchases = list_purchases(date_from=date_from, date_to=date_to)
    lines = [line for p in purchases for line in p.lines]
    return {
        "purchase_count": len(purchases),
        "line_count": len(lines),
        "revenue_cents": sum(line.line_total_cents for line in lines),
        "units_sold": sum(line.quantity for line in lines),
        "date_range": {
            "start": date_from.isoformat() if date_from else None,
            "end": date_to.isoformat() if date_to else None,
        },
    }


def delete_purchase(purchase_id: int) -> bool:
    """
    Cancel a purchase and put its units back on the shelf, atomically.

    Sale movements are kept (unlinked) and an INTAKE movement per line
    records the restock.
    """
    purchase = gateway.get_by_id(Purchase, purchase_id, joins=("lines",))
    if purchase is None:
        return False

    restocks = [(line.product_id, line.quantity) for line in purchase.lines]
    try:
        with gateway.atomic():
            gateway.update_where(StockMovement, {"purchase_id": None}, commit=False, purchase_id=purchase_id)
            for product_id, qty in restocks:
                if not gateway.adjust_by_id(Product, product_id, "quantity", qty, commit=False):
                    continue
                product = gateway.get_by_id(Product, product_id)
                gateway.insert(
                    StockMovement,
                    {
                        "product_id": product.id,
                        "product_code": product.code,
                        "product_name": product.name,
                        "movement_type": MOVEMENT_INTAKE,
                        "quantity": qty,
                        "note": f"Purchase {purchase_id} cancelled",
                        "occurred_at": utcnow(),
                    },
                    commit=False,
                )
            gateway.delete_by_id(Purchase, purchase_id, commit=False)
    except DataAccessError as exc:
        current_app.logger.warning("Purchase %s deletion rolled back: %s", purchase_id, exc)
        raise StorageError(f"Could not delete purchase: {exc}", failed_step="delete_purchase") from exc
    return True
