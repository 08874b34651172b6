import pytest

from shopfloor.models import Category, Product
from shopfloor.services import gateway
from shopfloor.services.gateway import DataAccessError


def test_select_orders_and_filters(db_session, make_product):
    make_product(code="B", name="Banana", quantity=0)
    make_product(code="A", name="Apple", quantity=4)

    rows = gateway.select(Product, order_by="name")
    assert [p.code for p in rows] == ["A", "B"]

    in_stock = gateway.select(Product, where=(Product.quantity > 0,))
    assert [p.code for p in in_stock] == ["A"]

    assert gateway.first(Product, code="B").name == "Banana"
    assert gateway.first(Product, code="missing") is None


def test_update_by_id_missing_row_returns_none(db_session):
    assert gateway.update_by_id(Product, 9999, {"name": "x"}) is None
    assert gateway.delete_by_id(Product, 9999) is False


def test_adjust_by_id_guard_blocks_negative(db_session, make_product):
    product = make_product(quantity=2)

    assert gateway.adjust_by_id(Product, product.id, "quantity", -3, minimum=0) is False
    assert gateway.get_by_id(Product, product.id).quantity == 2

    assert gateway.adjust_by_id(Product, product.id, "quantity", -2, minimum=0) is True
    assert gateway.get_by_id(Product, product.id).quantity == 0


def test_adjust_by_id_missing_row(db_session):
    assert gateway.adjust_by_id(Product, 12345, "quantity", 1) is False


def test_insert_unique_violation_raises_data_access_error(db_session):
    gateway.insert(Category, {"name": "Drinks"})
    with pytest.raises(DataAccessError) as exc:
        gateway.insert(Category, {"name": "Drinks"})
    assert exc.value.table == "categories"
    assert exc.value.operation == "insert"

    # Session is usable again after the rollback
    assert len(gateway.select(Category)) == 1


def test_atomic_rolls_back_every_write(db_session):
    with pytest.raises(RuntimeError):
        with gateway.atomic():
            gateway.insert(Category, {"name": "Snacks"}, commit=False)
            raise RuntimeError("boom")

    assert gateway.select(Category) == []


def test_atomic_commits_on_success(db_session):
    with gateway.atomic():
        gateway.insert(Category, {"name": "Snacks"}, commit=False)
        gateway.insert(Category, {"name": "Fruit"}, commit=False)

    assert {c.name for c in gateway.select(Category)} == {"Snacks", "Fruit"}
