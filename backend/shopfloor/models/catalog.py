from __future__ import annotations

from ..extensions import db
from shopfloor.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product with its global on-hand quantity.

    CODE DESIGN DECISION:
    Product.code is the natural key used by spreadsheet imports (upsert by code)
    and is unique across the whole catalog.

    STOCK:
    quantity is a stored counter. Every workflow changes it with a single
    conditional UPDATE (see services/gateway.adjust_by_id), never by writing
    back a client-side snapshot, so it cannot go negative or lose an update.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    critical_quantity = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    photo_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    categories = db.relationship(
        "Category",
        secondary="product_categories",
        lazy="selectin",
        viewonly=True,
        order_by="Category.name",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r} quantity={self.quantity}>"

    @property
    def is_critical(self) -> bool:
        return self.quantity <= self.critical_quantity

    def to_dict(self, *, include_categories: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "quantity": self.quantity,
            "critical_quantity": self.critical_quantity,
            "is_critical": self.is_critical,
            "price_cents": self.price_cents,
            "photo_url": self.photo_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_categories:
            data["categories"] = [c.to_dict() for c in self.categories]
        return data


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class ProductCategory(db.Model):
    """Many-to-many link between products and categories."""
    __tablename__ = "product_categories"
    __table_args__ = (
        db.UniqueConstraint("product_id", "category_id", name="uq_product_categories_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "category_id": self.category_id,
        }
