from __future__ import annotations

from ..extensions import db
from shopfloor.time_utils import to_utc_z


class Purchase(db.Model):
    """
    Sale header, created exactly once per checkout.

    Immutable after creation: there is no update path. The applicable VAT
    rate is snapshotted so receipts can be reproduced after rates change.
    """
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchased_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    payment_mode = db.Column(db.String(32), nullable=False)
    vat_rate_bps = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "PurchaseLine",
        backref=db.backref("purchase", lazy=True),
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseLine.id",
    )

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} payment_mode={self.payment_mode!r}>"

    @property
    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchased_at": to_utc_z(self.purchased_at),
            "payment_mode": self.payment_mode,
            "vat_rate_bps": self.vat_rate_bps,
            "total_cents": self.total_cents,
            "lines": [line.to_dict() for line in self.lines],
        }


class PurchaseLine(db.Model):
    """Individual line on a purchase; unit price is the price at sale time."""
    __tablename__ = "purchase_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product", lazy="joined")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
