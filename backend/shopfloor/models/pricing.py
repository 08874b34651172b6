from __future__ import annotations

from ..extensions import db
from shopfloor.time_utils import to_utc_z, to_iso_date


class VatRate(db.Model):
    """
    VAT rate effective from a given date.

    Several rates coexist; the one applicable to a transaction is the most
    recent rate whose effective_date is <= the transaction date.
    """
    __tablename__ = "vat_rates"
    __table_args__ = (
        db.CheckConstraint("rate_bps >= 0", name="ck_vat_rates_rate_non_negative"),
        db.Index("ix_vat_rates_effective_date", "effective_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    effective_date = db.Column(db.Date, nullable=False)
    rate_bps = db.Column(db.Integer, nullable=False)  # Basis points (2000 = 20%)

    def __repr__(self) -> str:
        return f"<VatRate id={self.id} effective_date={self.effective_date} rate_bps={self.rate_bps}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "effective_date": to_iso_date(self.effective_date),
            "rate_bps": self.rate_bps,
            "rate_percent": self.rate_bps / 100,
        }


class PricePrediction(db.Model):
    """Append-only price/sales history, one row per import event."""
    __tablename__ = "price_predictions"
    __table_args__ = (
        db.Index("ix_price_predictions_product_date", "product_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    date = db.Column(db.Date, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    sales_count = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "date": to_iso_date(self.date),
            "price_cents": self.price_cents,
            "sales_count": self.sales_count,
            "created_at": to_utc_z(self.created_at),
        }
