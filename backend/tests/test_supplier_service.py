import pytest

from shopfloor.models import StockMovement, Supplier
from shopfloor.services import gateway, inventory_service, supplier_service
from shopfloor.validation import ValidationError


@pytest.fixture
def suppliers(db_session):
    return [
        supplier_service.create_supplier({"name": "Zeta Foods", "email": "orders@zeta.example", "phone": "0102030405"}),
        supplier_service.create_supplier({"name": "Acme", "phone": "0611223344"}),
        supplier_service.create_supplier({"name": "Brasserie du Nord", "email": "Contact@Nord.example"}),
    ]


def test_list_is_ordered_by_name(suppliers):
    assert [s.name for s in supplier_service.list_suppliers()] == ["Acme", "Brasserie du Nord", "Zeta Foods"]


@pytest.mark.parametrize("term, expected", [
    ("acme", ["Acme"]),
    ("NORD.example", ["Brasserie du Nord"]),
    ("0611", ["Acme"]),
    ("   ", ["Acme", "Brasserie du Nord", "Zeta Foods"]),
    ("nobody", []),
])
def test_search_by_name_email_or_phone(suppliers, term, expected):
    assert [s.name for s in supplier_service.list_suppliers(search=term)] == expected


def test_create_normalizes_fields(db_session):
    supplier = supplier_service.create_supplier({"name": "  Acme  ", "email": " Sales@Acme.Example ", "note": ""})

    assert supplier.name == "Acme"
    assert supplier.email == "sales@acme.example"
    assert supplier.note is None


@pytest.mark.parametrize("payload", [
    {},
    {"name": "   "},
    {"name": "Acme", "email": "not-an-address"},
    {"name": "Acme", "fax": "123"},
    {"name": 42},
])
def test_create_rejects_bad_payload(db_session, payload):
    with pytest.raises(ValidationError):
        supplier_service.create_supplier(payload)
    assert gateway.select(Supplier) == []


def test_update_is_partial(suppliers):
    acme = suppliers[1]

    updated = supplier_service.update_supplier(acme.id, {"email": "hello@acme.example"})

    assert updated.name == "Acme"
    assert updated.email == "hello@acme.example"
    assert updated.phone == "0611223344"
    assert supplier_service.update_supplier(9999, {"note": "x"}) is None
    with pytest.raises(ValidationError):
        supplier_service.update_supplier(acme.id, {"name": ""})


def test_intake_links_supplier(db_session, product_a1, suppliers):
    acme = suppliers[1]

    inventory_service.add_stock(product_a1, 4, supplier_id=acme.id)

    [movement] = gateway.select(StockMovement)
    assert movement.supplier_id == acme.id
    assert movement.supplier == "Acme"
    assert [m["id"] for m in inventory_service.list_movements(supplier_id=acme.id)] == [movement.id]


def test_intake_with_unknown_supplier_writes_nothing(db_session, product_a1):
    with pytest.raises(ValidationError):
        inventory_service.add_stock(product_a1, 4, supplier_id=404)

    assert gateway.select(StockMovement) == []
    assert product_a1.quantity == 10


def test_delete_keeps_intake_history(db_session, product_a1, suppliers):
    acme = suppliers[1]
    inventory_service.add_stock(product_a1, 2, supplier_id=acme.id)

    assert supplier_service.delete_supplier(acme.id) is True
    assert supplier_service.delete_supplier(acme.id) is False

    [movement] = gateway.select(StockMovement)
    assert movement.supplier_id is None
    assert movement.supplier == "Acme"
