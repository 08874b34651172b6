# Overview: Spreadsheet import; parses xlsx/csv price sheets and upserts products by code.

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, BinaryIO

from flask import current_app

from ..models import Product, PricePrediction
from ..validation import ValidationError, coerce_int, MAX_PRICE_CENTS
from ..errors import StorageError
from . import gateway
from .gateway import DataAccessError
from shopfloor.time_utils import parse_date
"""
Import rules

- One spreadsheet row = one product, keyed by code.
- Every row must carry: name, quantity, critical_quantity, price, code,
  sales_count, date. description is optional.
- The whole sheet is validated before the first write; a single bad row
  means nothing is written.
- Existing code: quantity, price and description are overwritten (the sheet
  is a stock count, not a delta). New code: a product is created.
- Each row appends one PricePrediction (date, price, sales_count).
- Re-importing the same sheet updates the same products and appends
  another round of predictions.
"""

REQUIRED_COLUMNS = ("name", "quantity", "critical_quantity", "price", "code", "sales_count", "date")
OPTIONAL_COLUMNS = ("description",)

CSV_EXTENSIONS = {"csv"}
EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


@dataclass
class ImportRow:
    row_number: int  # 1-based, header excluded
    code: str
    name: str
    description: str | None
    quantity: int
    critical_quantity: int
    price_cents: int
    sales_count: int
    date: date


@dataclass
class ImportResult:
    created: int = 0
    updated: int = 0
    predictions: int = 0
    errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "created": self.created,
            "updated": self.updated,
            "predictions": self.predictions,
            "errors": list(self.errors),
        }


def normalize_header(value: Any) -> str:
    text = "" if value is None else str(value).strip().lower()
    return text.replace("-", "_").replace(" ", "_")


def _normalize_row(raw: dict) -> dict:
    return {normalize_header(k): v for k, v in raw.items() if k is not None}


def parse_spreadsheet(stream: BinaryIO, filename: str) -> list[dict]:
    """
    Read the first sheet of an Excel workbook, or a CSV file, into row dicts.

    The first row holds the headers. Fully empty rows are skipped.
    """
    ext = (filename or "").rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""

    if ext in CSV_EXTENSIONS:
        try:
            text = stream.read().decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded")
        reader = csv.DictReader(io.StringIO(text))
        rows = [_normalize_row(row) for row in reader]
    elif ext in EXCEL_EXTENSIONS:
        from openpyxl import load_workbook
        try:
            wb = load_workbook(stream, read_only=True, data_only=True)
        except Exception as exc:
            raise ValidationError(f"Could not read workbook: {exc}")
        try:
            data = list(wb.worksheets[0].values) if wb.worksheets else []
        finally:
            wb.close()
        if not data:
            return []
        headers = [normalize_header(h) for h in data[0]]
        rows = [
            {headers[i]: row[i] for i in range(min(len(headers), len(row))) if headers[i]}
            for row in data[1:]
        ]
    else:
        raise ValidationError("Unsupported file format (expected .xlsx or .csv)")

    return [row for row in rows if any(_present(v) for v in row.values())]


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def to_cents(value: Any, field_name: str = "price") -> int:
    """Decimal currency amount (5, 5.5, "5,50", "5.00 €") -> integer cents."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    text = str(value).strip().replace("€", "").replace(" ", "").replace(",", ".")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{field_name} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field_name} is too large")
    return cents


def _to_non_negative_int(value: Any, field_name: str) -> int:
    number = coerce_int(value, field_name)
    if number < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    return number


def _coerce_row(row_number: int, raw: dict) -> ImportRow:
    try:
        day = parse_date(raw["date"])
    except (TypeError, ValueError):
        raise ValidationError("date must be YYYY-MM-DD or DD/MM/YYYY")
    return ImportRow(
        row_number=row_number,
        code=_to_text(raw["code"]),
        name=_to_text(raw["name"]),
        description=_to_text(raw.get("description")),
        quantity=_to_non_negative_int(raw["quantity"], "quantity"),
        critical_quantity=_to_non_negative_int(raw["critical_quantity"], "critical_quantity"),
        price_cents=to_cents(raw["price"]),
        sales_count=_to_non_negative_int(raw["sales_count"], "sales_count"),
        date=day,
    )


def validate_rows(rows: list[dict]) -> list[ImportRow]:
    """
    Check and coerce every row. Raises one ValidationError covering all bad
    rows, so a sheet is either fully importable or rejected untouched.
    """
    if not rows:
        raise ValidationError("The file contains no data rows")

    problems: list[str] = []
    coerced: list[ImportRow] = []
    for index, raw in enumerate(rows, start=1):
        row = _normalize_row(raw)
        missing = [c for c in REQUIRED_COLUMNS if not _present(row.get(c))]
        if missing:
            problems.append(f"row {index}: missing {', '.join(missing)}")
            continue
        try:
            coerced.append(_coerce_row(index, row))
        except ValidationError as exc:
            problems.append(f"row {index}: {exc}")

    if problems:
        raise ValidationError("Invalid import file: " + "; ".join(problems))
    return coerced


def _upsert(row: ImportRow) -> bool:
    """Write one row without committing. Returns True when a product was created."""
    existing = gateway.first(Product, code=row.code)
    if existing is not None:
        gateway.update_by_id(
            Product,
            existing.id,
            {
                "quantity": row.quantity,
                "price_cents": row.price_cents,
                "description": row.description,
            },
            commit=False,
        )
        product_id = existing.id
        created = False
    else:
        product = gateway.insert(
            Product,
            {
                "code": row.code,
                "name": row.name,
                "description": row.description,
                "quantity": row.quantity,
                "critical_quantity": row.critical_quantity,
                "price_cents": row.price_cents,
            },
            commit=False,
        )
        product_id = product.id
        created = True

    gateway.insert(
        PricePrediction,
        {
            "product_id": product_id,
            "date": row.date,
            "price_cents": row.price_cents,
            "sales_count": row.sales_count,
        },
        commit=False,
    )
    return created


def _tally(result: ImportResult, created: bool) -> None:
    if created:
        result.created += 1
    else:
        result.updated += 1
    result.predictions += 1


def run_import(rows: list[dict], *, atomic: bool = True) -> ImportResult:
    """
    Validate, then upsert rows strictly in sheet order.

    atomic=True: one transaction for the whole sheet; any failure rolls back
    every row and raises StorageError naming the row.
    atomic=False: each row commits on its own; failed rows are reported in
    ImportResult.errors and the rest continue.
    """
    valid_rows = validate_rows(rows)
    result = ImportResult()

    if atomic:
        current_row = None
        try:
            with gateway.atomic():
                for row in valid_rows:
                    current_row = row
                    _tally(result, _upsert(row))
        except DataAccessError as exc:
            current_app.logger.warning(
                "Import rolled back at row %s (code %s): %s",
                current_row.row_number if current_row else "?",
                current_row.code if current_row else "?",
                exc,
            )
            raise StorageError(
                f"Import failed at row {current_row.row_number if current_row else '?'}, nothing was written: {exc}",
                failed_step="upsert_row",
                details={"row": current_row.row_number if current_row else None},
            ) from exc
        return result

    for row in valid_rows:
        try:
            with gateway.atomic():
                created = _upsert(row)
        except DataAccessError as exc:
            current_app.logger.warning("Import row %s (code %s) failed: %s", row.row_number, row.code, exc)
            result.errors.append({"row": row.row_number, "code": row.code, "error": str(exc)})
            continue
        _tally(result, created)
    return result


def import_file(stream: BinaryIO, filename: str, *, atomic: bool = True) -> ImportResult:
    return run_import(parse_spreadsheet(stream, filename), atomic=atomic)
