# Overview: Stock reconciliation engine; the only code that mutates product stock counters.

from __future__ import annotations

"""
PlatePOS Stock Invariants (authoritative)

Counters:
- Each product has one counter per variant: full_stock, half_stock.
- Solo products only sell the full variant; half_stock stays 0 for them.
- total_stock == full_stock + half_stock (full_stock alone when solo),
  recomputed by compute_total_stock() right after every counter write.

Reserve (debit):
- Demand is aggregated per (product, variant) before checking, so two lines
  for the same plate are checked against their combined quantity.
- Every line is validated before any counter changes. A batch either
  applies completely or not at all.
- Each debit is a conditional decrement (stock >= quantity in the WHERE
  clause), so two writers can never both pass the check on a stale read.

Release (credit):
- Credits are unconditional.
- A credit for a product that no longer exists is dropped (logged).

Transactions:
- Nothing here commits. Callers open the write transaction, call
  reserve()/release(), persist the sale and commit once.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import update

from ..extensions import db
from ..models import Product
from ..models.catalog import VARIANT_FULL, VARIANT_HALF, VARIANTS
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)


class StockError(Exception):
    """Raised when a stock reservation cannot be honored."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(StockError):
    def __init__(self, product_id: int):
        super().__init__(
            f"Product not found: {product_id}",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InvalidVariantError(StockError):
    def __init__(self, product: Product, variant: str):
        if variant in VARIANTS:
            message = f"{product.name} is sold as full plates only"
        else:
            message = f"Unknown variant '{variant}'"
        super().__init__(
            message,
            details={
                "product_id": product.id,
                "product_name": product.name,
                "variant": variant,
            },
        )


class InsufficientStockError(StockError):
    def __init__(self, product: Product, variant: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {product.name} ({variant})",
            details={
                "product_id": product.id,
                "product_name": product.name,
                "variant": variant,
                "requested": requested,
                "available": available,
            },
        )


@dataclass(frozen=True)
class StockLine:
    product_id: int
    variant: str
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    """A reserved line with the product's name and price captured at sale time."""
    product_id: int
    product_name: str
    variant: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


def compute_total_stock(full_stock: int | None, half_stock: int | None, is_solo: bool) -> int:
    """Aggregate stock of a product. Pure; called after every counter change."""
    full = full_stock or 0
    if is_solo:
        return full
    return full + (half_stock or 0)


def aggregate_lines(lines: Iterable[StockLine]) -> "OrderedDict[tuple[int, str], int]":
    """Sum quantities per (product_id, variant), keeping first-seen order."""
    totals: OrderedDict[tuple[int, str], int] = OrderedDict()
    for line in lines:
        key = (line.product_id, line.variant)
        totals[key] = totals.get(key, 0) + line.quantity
    return totals


def _counter_column(variant: str):
    return Product.half_stock if variant == VARIANT_HALF else Product.full_stock


def _load_products(product_ids: Iterable[int], *, lock: bool) -> dict[int, Product]:
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    # Ascending id order keeps lock acquisition deadlock-free across writers
    query = db.session.query(Product).filter(Product.id.in_(ids)).order_by(Product.id)
    if lock:
        query = lock_for_update(query)
    return {p.id: p for p in query.all()}


def _apply_delta(product: Product, variant: str, delta: int) -> bool:
    """
    Apply delta to one variant counter as a single UPDATE statement, then
    recompute total_stock. Negative deltas only succeed if the counter
    covers them. Returns False when the conditional debit matched no row.
    """
    column = _counter_column(variant)
    stmt = update(Product).where(Product.id == product.id)
    if delta < 0:
        stmt = stmt.where(column >= -delta)
    stmt = stmt.values({column: column + delta}).execution_options(synchronize_session=False)

    result = db.session.execute(stmt)
    if result.rowcount != 1:
        return False

    db.session.refresh(product)
    product.total_stock = compute_total_stock(
        product.full_stock, product.half_stock, product.is_solo
    )
    db.session.flush()
    return True


def check_availability(lines: list[StockLine], products: dict[int, Product]) -> None:
    """
    Validate a whole batch against loaded products without mutating anything.
    Errors are raised for the first offending line in request order.
    """
    demand = aggregate_lines(lines)
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise ProductNotFoundError(line.product_id)
        if not product.sells_variant(line.variant):
            raise InvalidVariantError(product, line.variant)

        requested = demand[(line.product_id, line.variant)]
        available = product.stock_for(line.variant)
        if available < requested:
            raise InsufficientStockError(product, line.variant, requested, available)


def reserve(lines: list[StockLine]) -> list[PricedLine]:
    """
    Debit stock for a batch of sale lines.

    Loads and locks every referenced product, validates the entire batch,
    then applies one conditional decrement per (product, variant). Returns
    the lines in request order with the current variant price snapshot.

    Raises ProductNotFoundError, InvalidVariantError or InsufficientStockError.
    Stock is left untouched when validation fails; a failure during the
    apply phase (lost race) leaves partial debits in the open transaction,
    which the caller must roll back.
    """
    products = _load_products((line.product_id for line in lines), lock=True)
    check_availability(lines, products)

    for (product_id, variant), quantity in aggregate_lines(lines).items():
        product = products[product_id]
        if not _apply_delta(product, variant, -quantity):
            db.session.refresh(product)
            raise InsufficientStockError(product, variant, quantity, product.stock_for(variant))

    priced = []
    for line in lines:
        product = products[line.product_id]
        priced.append(PricedLine(
            product_id=product.id,
            product_name=product.name,
            variant=line.variant,
            quantity=line.quantity,
            unit_price_cents=product.price_for(line.variant) or 0,
        ))
    return priced


def release(lines: list[StockLine]) -> int:
    """
    Credit stock back for lines of a previously reserved sale.

    Returns the number of (product, variant) credits applied. Credits for
    products that no longer exist, or half plates of a product that has
    since become solo, are dropped with a warning.
    """
    products = _load_products((line.product_id for line in lines), lock=True)

    applied = 0
    for (product_id, variant), quantity in aggregate_lines(lines).items():
        product = products.get(product_id)
        if product is None:
            logger.warning(
                "Dropping stock credit of %d %s for missing product %s",
                quantity, variant, product_id,
            )
            continue
        if not product.sells_variant(variant):
            logger.warning(
                "Dropping stock credit of %d %s for product %s (variant not sold)",
                quantity, variant, product_id,
            )
            continue
        _apply_delta(product, variant, quantity)
        applied += 1
    return applied


def lines_from_items(items) -> list[StockLine]:
    """Rebuild engine input from persisted sale items."""
    return [
        StockLine(product_id=item.product_id, variant=item.variant, quantity=item.quantity)
        for item in items
    ]


def verify_products(*, fix: bool = False) -> list[dict]:
    """
    Find products whose stored total_stock disagrees with their counters.

    With fix=True the totals are recomputed and committed. Returns one
    entry per inconsistent product (before the fix).
    """
    mismatches = []
    for product in db.session.query(Product).order_by(Product.id).all():
        expected = compute_total_stock(product.full_stock, product.half_stock, product.is_solo)
        if product.total_stock == expected:
            continue
        mismatches.append({
            "product_id": product.id,
            "name": product.name,
            "stored_total": product.total_stock,
            "expected_total": expected,
        })
        if fix:
            product.total_stock = expected

    if fix and mismatches:
        db.session.commit()
    return mismatches


__all__ = [
    "VARIANT_FULL",
    "VARIANT_HALF",
    "VARIANTS",
    "StockError",
    "ProductNotFoundError",
    "InvalidVariantError",
    "InsufficientStockError",
    "StockLine",
    "PricedLine",
    "compute_total_stock",
    "aggregate_lines",
    "check_availability",
    "reserve",
    "release",
    "lines_from_items",
    "verify_products",
]
