from datetime import datetime

import pytest

from shopfloor.errors import InsufficientStockError, StorageError
from shopfloor.models import Product, Purchase, PurchaseLine, StockMovement
from shopfloor.services import gateway, inventory_service, sales_service
from shopfloor.services.gateway import DataAccessError
from shopfloor.services.sales_service import (
    Cart,
    CART_BUILDING,
    CART_EMPTY,
    CART_FAILED,
    CART_COMMITTED,
)
from shopfloor.validation import ValidationError


def _count(model) -> int:
    return len(gateway.select(model))


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------

def test_add_creates_line_with_price_snapshot(db_session, product_a1):
    cart = Cart()
    assert cart.status == CART_EMPTY

    line = cart.add(product_a1)

    assert cart.status == CART_BUILDING
    assert line.quantity == 1
    assert line.unit_price_cents == 500
    assert cart.total_cents == 500


def test_add_out_of_stock_product_leaves_cart_empty(db_session, make_product):
    empty = make_product(quantity=0)
    cart = Cart()

    with pytest.raises(InsufficientStockError):
        cart.add(empty)

    assert cart.lines == {}
    assert cart.status == CART_EMPTY


def test_add_never_exceeds_live_stock(db_session, make_product):
    product = make_product(quantity=2)
    cart = Cart()
    cart.add(product)
    cart.add(product)

    with pytest.raises(InsufficientStockError) as exc:
        cart.add(product)

    assert exc.value.requested == 3
    assert exc.value.available == 2
    assert cart.lines[product.id].quantity == 2


def test_add_none_is_validation_error(db_session):
    with pytest.raises(ValidationError):
        Cart().add(None)


def test_update_line_quantity(db_session, product_a1):
    cart = Cart()
    cart.add(product_a1)

    cart.update_line_quantity(product_a1.id, 4)
    assert cart.lines[product_a1.id].quantity == 4

    with pytest.raises(InsufficientStockError):
        cart.update_line_quantity(product_a1.id, 11)
    with pytest.raises(ValidationError):
        cart.update_line_quantity(product_a1.id, 0)
    with pytest.raises(ValidationError):
        cart.update_line_quantity(9999, 1)

    assert cart.lines[product_a1.id].quantity == 4


def test_update_line_quantity_uses_live_stock_when_given(db_session, product_a1):
    cart = Cart()
    cart.add(product_a1)

    with pytest.raises(InsufficientStockError):
        cart.update_line_quantity(product_a1.id, 5, stock=3)


def test_remove_line_returns_to_empty(db_session, product_a1):
    cart = Cart()
    cart.add(product_a1)
    cart.remove_line(product_a1.id)
    cart.remove_line(product_a1.id)

    assert cart.lines == {}
    assert cart.status == CART_EMPTY


def test_session_round_trip_keeps_lines(db_session, product_a1):
    cart = Cart()
    cart.add(product_a1)
    cart.add(product_a1)

    restored = Cart.from_session(cart.to_session())

    assert restored.total_cents == 1000
    assert restored.status == CART_BUILDING


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

def test_checkout_scenario_a1(db_session, product_a1):
    cart = Cart()
    for _ in range(3):
        cart.add(product_a1)

    receipt = sales_service.checkout(cart, "cash")

    assert gateway.get_by_id(Product, product_a1.id).quantity == 7
    assert receipt["status"] == CART_COMMITTED
    assert receipt["total_cents"] == 1500

    purchases = gateway.select(Purchase)
    assert len(purchases) == 1
    lines = gateway.select(PurchaseLine)
    assert len(lines) == 1
    assert lines[0].quantity == 3
    assert lines[0].unit_price_cents == 500
    assert purchases[0].payment_mode == "cash"

    assert cart.status == CART_EMPTY
    assert cart.lines == {}

    sale_moves = gateway.select(StockMovement, filters={"movement_type": "SALE"})
    assert [(m.quantity, m.purchase_id) for m in sale_moves] == [(3, purchases[0].id)]


def test_checkout_multiple_lines_decrements_each(db_session, make_product):
    a = make_product(quantity=5, price_cents=200)
    b = make_product(quantity=3, price_cents=1000)
    cart = Cart()
    cart.add(a)
    cart.add(a)
    cart.add(b)

    receipt = sales_service.checkout(cart, "card")

    assert receipt["total_cents"] == 2 * 200 + 1000
    assert gateway.get_by_id(Product, a.id).quantity == 3
    assert gateway.get_by_id(Product, b.id).quantity == 2
    assert _count(PurchaseLine) == 2
    assert {p["id"]: p["quantity"] for p in receipt["products"]} == {a.id: 3, b.id: 2}


def test_checkout_snapshots_vat_rate(db_session, product_a1, vat_20):
    cart = Cart()
    cart.add(product_a1)

    receipt = sales_service.checkout(cart, "cash", purchased_at=datetime(2024, 6, 1, 12, 0))

    assert receipt["vat_rate_bps"] == 2000
    # 5.00 incl. 20% VAT -> 4.17 net, 0.83 VAT
    assert receipt["vat_included_cents"] == 83
    assert gateway.select(Purchase)[0].vat_rate_bps == 2000


def test_checkout_stock_changed_since_cart_built(db_session, product_a1):
    cart = Cart()
    for _ in range(3):
        cart.add(product_a1)
    inventory_service.withdraw_stock(product_a1, 8)

    with pytest.raises(InsufficientStockError) as exc:
        sales_service.checkout(cart, "cash")

    assert exc.value.available == 2
    assert gateway.get_by_id(Product, product_a1.id).quantity == 2
    assert _count(Purchase) == 0
    assert _count(PurchaseLine) == 0
    assert cart.status == CART_FAILED
    assert cart.lines[product_a1.id].quantity == 3


def test_checkout_failure_mid_way_rolls_back_everything(db_session, make_product, monkeypatch):
    a = make_product(quantity=5)
    b = make_product(quantity=5)
    cart = Cart()
    cart.add(a)
    cart.add(b)

    original_adjust = gateway.adjust_by_id
    calls = {"n": 0}

    def flaky_adjust(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise DataAccessError("connection lost", operation="update", table="products")
        return original_adjust(*args, **kwargs)

    monkeypatch.setattr(gateway, "adjust_by_id", flaky_adjust)

    with pytest.raises(StorageError) as exc:
        sales_service.checkout(cart, "cash")

    assert exc.value.failed_step == "decrement_stock"
    assert exc.value.committed_steps == ()
    assert gateway.get_by_id(Product, a.id).quantity == 5
    assert gateway.get_by_id(Product, b.id).quantity == 5
    assert _count(Purchase) == 0
    assert _count(StockMovement) == 0
    assert cart.status == CART_FAILED
    assert len(cart.lines) == 2

    # Retry succeeds once storage is back
    monkeypatch.setattr(gateway, "adjust_by_id", original_adjust)
    sales_service.checkout(cart, "cash")
    assert gateway.get_by_id(Product, a.id).quantity == 4
    assert _count(Purchase) == 1


def test_checkout_rejects_empty_cart_and_blank_payment(db_session, product_a1):
    with pytest.raises(ValidationError):
        sales_service.checkout(Cart(), "cash")

    cart = Cart()
    cart.add(product_a1)
    with pytest.raises(ValidationError):
        sales_service.checkout(cart, "   ")
    assert _count(Purchase) == 0


# ---------------------------------------------------------------------------
# Purchase history
# ---------------------------------------------------------------------------

def test_delete_purchase_restores_stock(db_session, product_a1):
    cart = Cart()
    cart.add(product_a1)
    cart.add(product_a1)
    receipt = sales_service.checkout(cart, "cash")

    assert sales_service.delete_purchase(receipt["purchase"]["id"]) is True

    assert gateway.get_by_id(Product, product_a1.id).quantity == 10
    assert _count(Purchase) == 0
    assert _count(PurchaseLine) == 0
    assert sales_service.delete_purchase(receipt["purchase"]["id"]) is False


def test_sale_stats(db_session, make_product):
    a = make_product(quantity=5, price_cents=250)
    cart = Cart()
    cart.add(a)
    cart.add(a)
    sales_service.checkout(cart, "cash")
    cart.add(gateway.get_by_id(Product, a.id))
    sales_service.checkout(cart, "card")

    stats = sales_service.sale_stats()

    assert stats["purchase_count"] == 2
    assert stats["line_count"] == 2
    assert stats["units_sold"] == 3
    assert stats["revenue_cents"] == 750
    assert [p.payment_mode for p in sales_service.list_purchases()] == ["card", "cash"]
