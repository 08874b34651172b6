from __future__ import annotations

from ..extensions import db
from shopfloor.time_utils import to_utc_z


class Store(db.Model):
    """
    Physical store, identified for humans by a numeric location.

    Users and products are attached through link tables. StoreProduct keeps a
    per-store quantity that is independent of Product.quantity.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    location = db.Column(db.Integer, nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    users = db.relationship(
        "User",
        secondary="store_users",
        lazy="selectin",
        viewonly=True,
        order_by="User.id",
    )
    product_links = db.relationship(
        "StoreProduct",
        backref=db.backref("store", lazy=True),
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="StoreProduct.id",
    )
    user_links = db.relationship(
        "StoreUser",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} location={self.location}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location": self.location,
            "created_at": to_utc_z(self.created_at),
            "users": [u.to_dict() for u in self.users],
            "products": [link.to_dict() for link in self.product_links],
        }


class StoreUser(db.Model):
    __tablename__ = "store_users"
    __table_args__ = (
        db.UniqueConstraint("store_id", "user_id", name="uq_store_users_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "store_id": self.store_id, "user_id": self.user_id}


class StoreProduct(db.Model):
    """Per-store stock of a product."""
    __tablename__ = "store_products"
    __table_args__ = (
        db.UniqueConstraint("store_id", "product_id", name="uq_store_products_pair"),
        db.CheckConstraint("quantity >= 0", name="ck_store_products_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        product = self.product
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "product": {
                "id": product.id,
                "name": product.name,
                "price_cents": product.price_cents,
                "photo_url": product.photo_url,
            } if product else None,
        }
