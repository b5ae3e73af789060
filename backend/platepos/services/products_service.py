# backend/platepos/services/products_service.py
"""
Products Service

Catalog reads used by the POS screens, plus the minimum writes needed to
seed a catalog (CLI). Stock counters are never written here after
creation; they belong to stock_service.
"""
from __future__ import annotations

from sqlalchemy import case

from ..extensions import db
from ..models import Product, SaleItem
from ..validation import ValidationError, MAX_PRICE_CENTS
from .concurrency import begin_write_transaction, lock_for_update
from .stock_service import compute_total_stock


class ProductInUseError(Exception):
    """Raised when deleting a product that historical sales still reference."""
    def __init__(self, product: Product, sale_count: int):
        super().__init__(f"{product.name} is referenced by {sale_count} sale(s)")
        self.details = {"product_id": product.id, "sale_count": sale_count}


def _require_amount(name: str, value, *, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if value < 0:
        raise ValidationError(f"{name} must be >= 0")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{name} cannot exceed {maximum}")
    return value


def create_product(
    *,
    name: str,
    full_price_cents: int,
    full_stock: int = 0,
    half_price_cents: int | None = None,
    half_stock: int = 0,
    is_solo: bool = False,
    category: str | None = None,
    barcode: str | None = None,
    image_url: str | None = None,
    sort_order: int | None = None,
) -> Product:
    """
    Create a catalog product with its opening stock.

    Non-solo products must carry a half price. Solo products ignore any
    half price/stock passed in.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name cannot be blank")

    _require_amount("full_price_cents", full_price_cents, maximum=MAX_PRICE_CENTS)
    _require_amount("full_stock", full_stock)

    if is_solo:
        half_price_cents = None
        half_stock = 0
    else:
        if half_price_cents is None:
            raise ValidationError("half_price_cents is required unless the product is solo")
        _require_amount("half_price_cents", half_price_cents, maximum=MAX_PRICE_CENTS)
        _require_amount("half_stock", half_stock)

    product = Product(
        name=name,
        category=category,
        barcode=barcode,
        image_url=image_url,
        sort_order=sort_order,
        is_solo=is_solo,
        full_price_cents=full_price_cents,
        half_price_cents=half_price_cents,
        full_stock=full_stock,
        half_stock=half_stock,
        total_stock=compute_total_stock(full_stock, half_stock, is_solo),
    )
    db.session.add(product)
    db.session.commit()
    return product


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def list_products() -> list[Product]:
    """Catalog order: explicit sort_order first, then newest-last by id."""
    unsorted_last = case((Product.sort_order.is_(None), 1), else_=0)
    return (
        db.session.query(Product)
        .order_by(unsorted_last, Product.sort_order.asc(), Product.id.asc())
        .all()
    )


def delete_product(product_id: int) -> Product | None:
    """
    Delete a product unless any sale references it.

    Returns the deleted product, or None if it did not exist.
    Raises ProductInUseError while referenced.
    """
    # Hold the write lock so no sale can reference the product mid-check
    begin_write_transaction()
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        db.session.rollback()
        return None

    sale_count = (
        db.session.query(SaleItem.sale_id)
        .filter(SaleItem.product_id == product_id)
        .distinct()
        .count()
    )
    if sale_count:
        error = ProductInUseError(product, sale_count)
        db.session.rollback()
        raise error

    db.session.delete(product)
    db.session.commit()
    return product
