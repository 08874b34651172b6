from __future__ import annotations

from datetime import date

from ..models import VatRate
from ..validation import ValidationError
from ..errors import StorageError
from . import gateway
from .gateway import DataAccessError


def list_rates() -> list[VatRate]:
    """All rates, most recent effective date first."""
    try:
        return gateway.select(VatRate, order_by="effective_date", descending=True)
    except DataAccessError as exc:
        raise StorageError(f"Could not load VAT rates: {exc}", failed_step="select_vat_rates") from exc


def add_rate(effective_date: date, rate_bps: int) -> VatRate:
    if effective_date is None:
        raise ValidationError("effective_date is required")
    if rate_bps is None:
        raise ValidationError("rate_bps is required")
    try:
        return gateway.insert(VatRate, {"effective_date": effective_date, "rate_bps": rate_bps})
    except DataAccessError as exc:
        raise StorageError(f"Could not add VAT rate: {exc}", failed_step="insert_vat_rate") from exc


def update_rate(rate_id: int, patch: dict) -> VatRate | None:
    try:
        return gateway.update_by_id(VatRate, rate_id, patch)
    except DataAccessError as exc:
        raise StorageError(f"Could not update VAT rate: {exc}", failed_step="update_vat_rate") from exc


def delete_rate(rate_id: int) -> bool:
    try:
        return gateway.delete_by_id(VatRate, rate_id)
    except DataAccessError as exc:
        raise StorageError(f"Could not delete VAT rate: {exc}", failed_step="delete_vat_rate") from exc


def applicable_rate(on_date: date) -> VatRate | None:
    """Most recent rate whose effective_date <= on_date, or None."""
    try:
        rows = gateway.select(
            VatRate,
            where=(VatRate.effective_date <= on_date,),
            order_by="effective_date",
            descending=True,
            limit=1,
        )
    except DataAccessError as exc:
        raise StorageError(f"Could not load VAT rates: {exc}", failed_step="select_vat_rates") from exc
    return rows[0] if rows else None


def current_rate() -> VatRate | None:
    return applicable_rate(date.today())


def vat_amount(price_cents: int, rate_bps: int | None) -> int:
    """VAT on a net price, nearest cent (half-up)."""
    if not rate_bps:
        return 0
    return (price_cents * rate_bps + 5_000) // 10_000


def price_with_vat(price_cents: int, rate_bps: int | None) -> int:
    return price_cents + vat_amount(price_cents, rate_bps)


def vat_included(gross_cents: int, rate_bps: int | None) -> int:
    """VAT contained in a VAT-inclusive amount (shelf prices include VAT)."""
    if not rate_bps:
        return 0
    divisor = 10_000 + rate_bps
    net = (gross_cents * 10_000 + divisor // 2) // divisor
    return gross_cents - net
