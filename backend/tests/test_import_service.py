import io
from datetime import date

import pytest
from openpyxl import Workbook

from shopfloor.errors import StorageError
from shopfloor.models import PricePrediction, Product
from shopfloor.services import gateway, import_service
from shopfloor.services.gateway import DataAccessError
from shopfloor.validation import ValidationError


def _row(**overrides):
    row = {
        "name": "Widget",
        "quantity": 10,
        "critical_quantity": 2,
        "price": "5.00",
        "code": "A1",
        "sales_count": 12,
        "date": "2024-03-01",
        "description": "Blue widget",
    }
    row.update(overrides)
    return row


def test_new_code_creates_product_and_prediction(db_session):
    result = import_service.run_import([_row()])

    assert (result.created, result.updated, result.predictions) == (1, 0, 1)
    product = gateway.first(Product, code="A1")
    assert product.quantity == 10
    assert product.price_cents == 500
    assert product.description == "Blue widget"

    predictions = gateway.select(PricePrediction)
    assert len(predictions) == 1
    assert predictions[0].product_id == product.id
    assert predictions[0].date == date(2024, 3, 1)
    assert predictions[0].sales_count == 12


def test_existing_code_updates_and_appends_prediction(db_session, make_product):
    existing = make_product(code="A1", name="Old name", quantity=3, price_cents=100)

    result = import_service.run_import([_row(quantity=25, price="7,50", description="New")])

    assert (result.created, result.updated) == (0, 1)
    product = gateway.get_by_id(Product, existing.id)
    assert product.quantity == 25
    assert product.price_cents == 750
    assert product.description == "New"
    assert len(gateway.select(Product)) == 1
    assert len(gateway.select(PricePrediction)) == 1


def test_rerunning_same_row_updates_same_product(db_session):
    import_service.run_import([_row()])
    result = import_service.run_import([_row()])

    assert result.updated == 1
    assert len(gateway.select(Product)) == 1
    assert len(gateway.select(PricePrediction)) == 2


def test_any_row_missing_a_field_writes_nothing(db_session):
    rows = [_row(code="A1"), _row(code="B2", price=""), _row(code="C3")]
    del rows[2]["sales_count"]

    with pytest.raises(ValidationError) as exc:
        import_service.run_import(rows)

    message = str(exc.value)
    assert "row 2" in message and "price" in message
    assert "row 3" in message and "sales_count" in message
    assert gateway.select(Product) == []
    assert gateway.select(PricePrediction) == []


def test_bad_value_is_rejected_before_writing(db_session):
    with pytest.raises(ValidationError):
        import_service.run_import([_row(code="A1"), _row(code="B2", quantity="lots")])
    assert gateway.select(Product) == []


def test_atomic_import_rolls_back_on_storage_failure(db_session, monkeypatch):
    original_insert = gateway.insert
    calls = {"n": 0}

    def flaky_insert(model, values, **kwargs):
        if model is PricePrediction:
            calls["n"] += 1
            if calls["n"] == 2:
                raise DataAccessError("disk full", operation="insert", table="price_predictions")
        return original_insert(model, values, **kwargs)

    monkeypatch.setattr(gateway, "insert", flaky_insert)

    with pytest.raises(StorageError) as exc:
        import_service.run_import([_row(code="A1"), _row(code="B2")])

    assert exc.value.details == {"row": 2}
    assert gateway.select(Product) == []
    assert gateway.select(PricePrediction) == []


def test_per_row_import_keeps_going(db_session, monkeypatch):
    original_insert = gateway.insert

    def failing_for_b2(model, values, **kwargs):
        if model is Product and values.get("code") == "B2":
            raise DataAccessError("constraint failed", operation="insert", table="products")
        return original_insert(model, values, **kwargs)

    monkeypatch.setattr(gateway, "insert", failing_for_b2)

    result = import_service.run_import(
        [_row(code="A1"), _row(code="B2"), _row(code="C3")], atomic=False
    )

    assert result.created == 2
    assert result.errors == [{"row": 2, "code": "B2", "error": "constraint failed"}]
    assert {p.code for p in gateway.select(Product)} == {"A1", "C3"}
    assert len(gateway.select(PricePrediction)) == 2


def test_parse_csv_normalizes_headers(db_session):
    data = (
        "Name,Quantity,Critical Quantity,Price,Code,Sales-Count,Date\n"
        "Widget,10,2,5.00,A1,12,01/03/2024\n"
        ",,,,,,\n"
    ).encode("utf-8")

    rows = import_service.parse_spreadsheet(io.BytesIO(data), "prices.csv")

    assert len(rows) == 1
    assert rows[0]["critical_quantity"] == "2"
    assert rows[0]["sales_count"] == "12"
    [valid] = import_service.validate_rows(rows)
    assert valid.date == date(2024, 3, 1)


def test_parse_xlsx_first_sheet(db_session):
    wb = Workbook()
    ws = wb.active
    ws.append(["name", "quantity", "critical_quantity", "price", "code", "sales_count", "date"])
    ws.append(["Widget", 10, 2, 5.5, "A1", 12, date(2024, 3, 1)])
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)

    result = import_service.import_file(buf, "prices.xlsx")

    assert result.created == 1
    assert gateway.first(Product, code="A1").price_cents == 550


def test_unsupported_extension(db_session):
    with pytest.raises(ValidationError):
        import_service.parse_spreadsheet(io.BytesIO(b"{}"), "prices.json")


@pytest.mark.parametrize(
    "raw, cents",
    [(5, 500), (5.5, 550), ("5,50", 550), ("12.345", 1235), ("3 €", 300)],
)
def test_to_cents(raw, cents):
    assert import_service.to_cents(raw) == cents
