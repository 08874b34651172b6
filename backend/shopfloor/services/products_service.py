# backend/shopfloor/services/products_service.py
"""
Catalog Service

Products and categories. Product.code is unique across the catalog; every
create/update that touches it checks for an existing row first and raises
ConflictError, the unique constraint being the backstop.
"""
from __future__ import annotations

from ..models import Product, Category, ProductCategory, PricePrediction, PurchaseLine, StockMovement, StoreProduct
from ..models.inventory import MOVEMENT_DELETION
from ..validation import ConflictError, ValidationError
from ..errors import StorageError
from . import gateway
from .gateway import DataAccessError
from shopfloor.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {
    "code", "name", "description", "quantity", "critical_quantity", "price_cents", "photo_url",
}


def apply_product_patch(patch: dict) -> dict:
    return {k: v for k, v in patch.items() if k in PRODUCT_MUTABLE_FIELDS}


def list_products(
    *,
    search: str | None = None,
    category_id: int | None = None,
    in_stock: bool | None = None,
    min_price_cents: int | None = None,
    max_price_cents: int | None = None,
) -> list[dict]:
    """
    Full catalog snapshot, filtered in memory.

    Datasets are small; one read plus linear filtering keeps a single
    consistent snapshot of products and their categories.
    """
    try:
        products = gateway.select(Product, order_by="name", joins=("categories",))
    except DataAccessError as exc:
        raise StorageError(f"Could not load products: {exc}", failed_step="select_products") from exc

    if search:
        needle = search.strip().lower()
        products = [
            p for p in products
            if needle in p.name.lower()
            or needle in p.code.lower()
            or (p.description and needle in p.description.lower())
        ]
    if category_id is not None:
        products = [p for p in products if any(c.id == category_id for c in p.categories)]
    if in_stock is not None:
        products = [p for p in products if (p.quantity > 0) == in_stock]
    if min_price_cents is not None:
        products = [p for p in products if p.price_cents >= min_price_cents]
    if max_price_cents is not None:
        products = [p for p in products if p.price_cents <= max_price_cents]

    return [p.to_dict() for p in products]


def list_low_stock() -> list[dict]:
    """Products at or below their critical quantity, most urgent first."""
    try:
        products = gateway.select(Product, where=(Product.quantity <= Product.critical_quantity,))
    except DataAccessError as exc:
        raise StorageError(f"Could not load products: {exc}", failed_step="select_products") from exc
    products.sort(key=lambda p: (p.quantity - p.critical_quantity, p.name))
    return [p.to_dict() for p in products]


def get_product(product_id: int) -> Product | None:
    try:
        return gateway.get_by_id(Product, product_id)
    except DataAccessError as exc:
        raise StorageError(f"Could not load product: {exc}", failed_step="select_product") from exc


def get_product_by_code(code: str) -> Product | None:
    try:
        return gateway.first(Product, code=code)
    except DataAccessError as exc:
        raise StorageError(f"Could not load product: {exc}", failed_step="select_product") from exc


def _ensure_code_free(code: str, *, exclude_id: int | None = None) -> None:
    existing = get_product_by_code(code)
    if existing is not None and existing.id != exclude_id:
        raise ConflictError("Product code already exists.")


def _validated_category_ids(category_ids) -> list[int]:
    ids = []
    for raw in category_ids or []:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValidationError("category_ids must be a list of integers")
        if raw not in ids:
            ids.append(raw)
    for cid in ids:
        if gateway.get_by_id(Category, cid) is None:
            raise ValidationError(f"Category {cid} not found")
    return ids


def create_product(*, patch: dict, category_ids: list[int] | None = None) -> dict:
    """
    Create product from a validated patch dict, optionally linked to categories.

    Raises:
        ValidationError: missing code/name or unknown category
        ConflictError: code already exists
        StorageError: the insert failed (nothing is written)
    """
    code = patch.get("code")
    if not code:
        raise ValidationError("code is required")
    if not patch.get("name"):
        raise ValidationError("name is required")

    _ensure_code_free(code)
    ids = _validated_category_ids(category_ids)

    try:
        with gateway.atomic():
            product = gateway.insert(Product, apply_product_patch(patch), commit=False)
            gateway.insert_many(
                ProductCategory,
                [{"product_id": product.id, "category_id": cid} for cid in ids],
                commit=False,
            )
    except DataAccessError as exc:
        raise StorageError(f"Could not create product: {exc}", failed_step="insert_product") from exc

    return gateway.get_by_id(Product, product.id).to_dict()


def update_product(*, product_id: int, patch: dict, category_ids: list[int] | None = None) -> dict | None:
    """
    Update a product; category_ids, when given, replaces the category links.

    Returns the updated product dict, or None if not found.
    """
    product = get_product(product_id)
    if product is None:
        return None

    if "code" in patch and patch["code"] != product.code:
        _ensure_code_free(patch["code"], exclude_id=product.id)

    ids = _validated_category_ids(category_ids) if category_ids is not None else None

    try:
        with gateway.atomic():
            gateway.update_by_id(Product, product_id, apply_product_patch(patch), commit=False)
            if ids is not None:
                gateway.delete_where(ProductCategory, commit=False, product_id=product_id)
                gateway.insert_many(
                    ProductCategory,
                    [{"product_id": product_id, "category_id": cid} for cid in ids],
                    commit=False,
                )
    except DataAccessError as exc:
        raise StorageError(f"Could not update product: {exc}", failed_step="update_product") from exc

    return gateway.get_by_id(Product, product_id).to_dict()


def delete_product(*, product_id: int) -> bool:
    """
    Hard-delete a product that has never been sold.

    Category and store links go with it; price history and stock movements
    are kept with product_id cleared, and a DELETION movement records the
    quantity that was on hand.

    Raises:
        ConflictError: the product appears on a purchase
    """
    product = get_product(product_id)
    if product is None:
        return False

    if gateway.first(PurchaseLine, product_id=product_id) is not None:
        raise ConflictError("Product has sales history and cannot be deleted.")

    try:
        with gateway.atomic():
            gateway.delete_where(ProductCategory, commit=False, product_id=product_id)
            gateway.delete_where(StoreProduct, commit=False, product_id=product_id)
            gateway.update_where(PricePrediction, {"product_id": None}, commit=False, product_id=product_id)
            gateway.update_where(StockMovement, {"product_id": None}, commit=False, product_id=product_id)
            gateway.insert(
                StockMovement,
                {
                    "product_id": None,
                    "product_code": product.code,
                    "product_name": product.name,
                    "movement_type": MOVEMENT_DELETION,
                    "quantity": product.quantity,
                    "note": "Product deleted",
                    "occurred_at": utcnow(),
                },
                commit=False,
            )
            gateway.delete_by_id(Product, product_id, commit=False)
    except DataAccessError as exc:
        raise StorageError(f"Could not delete product: {exc}", failed_step="delete_product") from exc

    return True


def list_categories() -> list[dict]:
    try:
        return [c.to_dict() for c in gateway.select(Category, order_by="name")]
    except DataAccessError as exc:
        raise StorageError(f"Could not load categories: {exc}", failed_step="select_categories") from exc


def create_category(name: str) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if gateway.first(Category, name=name) is not None:
        raise ConflictError("Category already exists.")
    try:
        return gateway.insert(Category, {"name": name}).to_dict()
    except DataAccessError as exc:
        raise StorageError(f"Could not create category: {exc}", failed_step="insert_category") from exc


def rename_category(category_id: int, name: str) -> dict | None:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    existing = gateway.first(Category, name=name)
    if existing is not None and existing.id != category_id:
        raise ConflictError("Category already exists.")
    try:
        category = gateway.update_by_id(Category, category_id, {"name": name})
    except DataAccessError as exc:
        raise StorageError(f"Could not rename category: {exc}", failed_step="update_category") from exc
    return category.to_dict() if category else None


def delete_category(category_id: int) -> bool:
    try:
        with gateway.atomic():
            gateway.delete_where(ProductCategory, commit=False, category_id=category_id)
            deleted = gateway.delete_by_id(Category, category_id, commit=False)
    except DataAccessError as exc:
        raise StorageError(f"Could not delete category: {exc}", failed_step="delete_category") from exc
    return deleted
