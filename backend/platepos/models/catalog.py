from __future__ import annotations

from ..extensions import db
from platepos.time_utils import to_utc_z, utcnow

VARIANT_FULL = "full"
VARIANT_HALF = "half"
VARIANTS = (VARIANT_FULL, VARIANT_HALF)


class Product(db.Model):
    """
    Catalog item sold in full and (optionally) half plates.

    STOCK MODEL:
    - full_stock and half_stock are independent counters, one per variant.
    - Solo products only sell the full variant; half_stock stays 0 and is ignored.
    - total_stock is derived. It is written only by the stock service, which
      recomputes it with compute_total_stock() after every counter change.
      No persistence hook recomputes it.

    Prices are copied onto sale items at sale time; later price edits never
    alter historical sales.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("full_stock >= 0", name="full_stock_non_negative"),
        db.CheckConstraint("half_stock >= 0", name="half_stock_non_negative"),
        db.Index("ix_products_sort", "sort_order", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    is_solo = db.Column(db.Boolean, nullable=False, default=False)

    # Authoritative storage in cents
    full_price_cents = db.Column(db.Integer, nullable=False)
    half_price_cents = db.Column(db.Integer, nullable=True)

    full_stock = db.Column(db.Integer, nullable=False, default=0)
    half_stock = db.Column(db.Integer, nullable=False, default=0)
    total_stock = db.Column(db.Integer, nullable=False, default=0)

    sort_order = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def stock_for(self, variant: str) -> int:
        if variant == VARIANT_HALF:
            return 0 if self.is_solo else (self.half_stock or 0)
        return self.full_stock or 0

    def price_for(self, variant: str) -> int | None:
        if variant == VARIANT_HALF:
            return self.half_price_cents
        return self.full_price_cents

    def sells_variant(self, variant: str) -> bool:
        if variant == VARIANT_FULL:
            return True
        return variant == VARIANT_HALF and not self.is_solo

    def __repr__(self) -> str:
        return (
            f"<Product id={self.id} name={self.name!r} full={self.full_stock} "
            f"half={self.half_stock} total={self.total_stock}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "barcode": self.barcode,
            "image_url": self.image_url,
            "is_solo": self.is_solo,
            "full_price_cents": self.full_price_cents,
            "half_price_cents": self.half_price_cents,
            "full_stock": self.full_stock,
            "half_stock": self.half_stock,
            "total_stock": self.total_stock,
            "sort_order": self.sort_order,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
