from __future__ import annotations

from ..extensions import db
from shopfloor.time_utils import to_utc_z


MOVEMENT_INTAKE = "INTAKE"
MOVEMENT_SALE = "SALE"
MOVEMENT_MANUAL_WITHDRAWAL = "MANUAL_WITHDRAWAL"
MOVEMENT_DELETION = "DELETION"
MOVEMENT_TYPES = (MOVEMENT_INTAKE, MOVEMENT_SALE, MOVEMENT_MANUAL_WITHDRAWAL, MOVEMENT_DELETION)


class Supplier(db.Model):
    """Who stock is received from. Contact fields are optional."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    note = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class StockMovement(db.Model):
    """
    Append-only history of stock changes.

    quantity is never negative; movement_type gives the direction. A DELETION
    of an out-of-stock product records 0.
    product_code/product_name are copied so DELETION rows stay readable
    after the product row is gone (product_id is then NULL).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_movements_quantity_non_negative"),
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    product_code = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=True)

    movement_type = db.Column(db.String(32), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    # supplier is free text; supplier_id links a managed Supplier when known
    supplier = db.Column(db.String(255), nullable=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} type={self.movement_type} product_id={self.product_id} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "supplier": self.supplier,
            "supplier_id": self.supplier_id,
            "note": self.note,
            "purchase_id": self.purchase_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
