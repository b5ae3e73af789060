"""
Sales Service - sale lifecycle over the stock engine

Create:  reserve(items) -> persist sale
Update:  release(old items) -> reserve(new items) -> overwrite sale
Delete:  release(items) -> remove sale

Each lifecycle operation is one write transaction: stock changes and the
sale row commit together or not at all, so a rejected create or update
leaves every counter exactly as it was. Activity entries are written after
the commit and can never undo it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleItem, User
from ..permissions import is_allowed
from ..validation import SalePayload
from . import stock_service
from .activity_service import record_activity
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .stock_service import PricedLine, StockLine

logger = logging.getLogger(__name__)


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleNotFoundError(SaleError):
    def __init__(self, sale_id: int):
        super().__init__("Sale not found", details={"sale_id": sale_id})


class EmptyItemsError(SaleError):
    def __init__(self):
        super().__init__("No items in sale.")


class SaleAccessError(SaleError):
    """The acting user may not see or change this sale."""
    def __init__(self, sale_id: int):
        super().__init__("Not allowed to access this sale", details={"sale_id": sale_id})


class StoreUnavailableError(SaleError):
    """Persistence failed after retries; the operation did not commit."""


@dataclass
class BulkDeleteResult:
    deleted_count: int = 0
    failed_sale_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "deleted_count": self.deleted_count,
            "failed_sale_ids": self.failed_sale_ids,
        }


def _describe_items(lines: list[StockLine] | list[PricedLine]) -> str:
    parts = []
    for line in lines:
        name = getattr(line, "product_name", None) or f"product {line.product_id}"
        parts.append(f"{line.quantity}x {name} ({line.variant})")
    return ", ".join(parts)


def _build_items(priced: list[PricedLine]) -> list[SaleItem]:
    return [
        SaleItem(
            position=position,
            product_id=line.product_id,
            product_name=line.product_name,
            variant=line.variant,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.line_total_cents,
        )
        for position, line in enumerate(priced)
    ]


def _run(op, description: str):
    """Run a lifecycle transaction with retry; map store failures."""
    try:
        return run_with_retry(op)
    except SQLAlchemyError as exc:
        logger.exception("Store failure while trying to %s", description)
        raise StoreUnavailableError(
            "Sale store unavailable", details={"operation": description}
        ) from exc


def _can_manage(user: User, sale: Sale) -> bool:
    if sale.created_by_user_id == user.id:
        return True
    return is_allowed(user.role, "MANAGE_ALL_SALES")


def _can_view(user: User, sale: Sale) -> bool:
    if sale.created_by_user_id == user.id:
        return True
    return is_allowed(user.role, "VIEW_ALL_SALES")


def _load_sale_locked(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise SaleNotFoundError(sale_id)
    return sale


def create_sale(payload: SalePayload, acting_user: User) -> Sale:
    """
    Commit a new sale: debit stock for every line and persist the record.

    Raises EmptyItemsError before touching stock; ProductNotFoundError,
    InvalidVariantError or InsufficientStockError (stock untouched);
    StoreUnavailableError on persistence failure.
    """
    if not payload.items:
        raise EmptyItemsError()

    def _op():
        begin_write_transaction()
        priced = stock_service.reserve(payload.items)
        computed_total = sum(line.line_total_cents for line in priced)

        sale = Sale(
            total_cents=payload.total_cents if payload.total_cents is not None else computed_total,
            payment_method=payload.payment_method,
            order_type=payload.order_type,
            order_taker=payload.order_taker,
            created_by_user_id=acting_user.id,
            created_by_username=acting_user.username,
        )
        sale.items = _build_items(priced)
        db.session.add(sale)
        db.session.commit()
        return sale, priced

    sale, priced = _run(_op, "create sale")
    logger.info("Sale %s created by %s", sale.id, acting_user.username)
    record_activity(acting_user, f"Created sale #{sale.id}: {_describe_items(priced)}")
    return sale


def update_sale(sale_id: int, payload: SalePayload, acting_user: User) -> Sale:
    """
    Replace a sale's items and details.

    The old items are credited back and the new items debited inside one
    transaction, so the new reservation can reuse stock the sale already
    held. On any failure the sale and all stock are left unchanged.
    """
    if not payload.items:
        raise EmptyItemsError()

    def _op():
        begin_write_transaction()
        sale = _load_sale_locked(sale_id)
        if not _can_manage(acting_user, sale):
            raise SaleAccessError(sale_id)

        stock_service.release(stock_service.lines_from_items(sale.items))
        priced = stock_service.reserve(payload.items)
        computed_total = sum(line.line_total_cents for line in priced)

        sale.items = _build_items(priced)
        sale.total_cents = payload.total_cents if payload.total_cents is not None else computed_total
        sale.payment_method = payload.payment_method
        sale.order_type = payload.order_type
        sale.order_taker = payload.order_taker

        db.session.commit()
        return sale, priced

    sale, priced = _run(_op, "update sale")
    logger.info("Sale %s updated by %s", sale.id, acting_user.username)
    record_activity(acting_user, f"Edited sale #{sale.id}: {_describe_items(priced)}")
    return sale


def _release_and_delete(sale: Sale) -> list[StockLine]:
    lines = stock_service.lines_from_items(sale.items)
    stock_service.release(lines)
    db.session.delete(sale)
    return lines


def delete_sale(sale_id: int, acting_user: User) -> None:
    """Credit the sale's items back to stock and remove the record."""
    def _op():
        begin_write_transaction()
        sale = _load_sale_locked(sale_id)
        if not _can_manage(acting_user, sale):
            raise SaleAccessError(sale_id)
        description = _describe_items(
            [_priced_from_item(item) for item in sale.items]
        )
        _release_and_delete(sale)
        db.session.commit()
        return description

    description = _run(_op, "delete sale")
    logger.info("Sale %s deleted by %s", sale_id, acting_user.username)
    record_activity(acting_user, f"Deleted sale #{sale_id}: {description}")


def _priced_from_item(item: SaleItem) -> PricedLine:
    return PricedLine(
        product_id=item.product_id,
        product_name=item.product_name,
        variant=item.variant,
        quantity=item.quantity,
        unit_price_cents=item.unit_price_cents,
    )


def _range_query(date_from: datetime | None, date_to: datetime | None):
    query = db.session.query(Sale)
    if date_from is not None:
        query = query.filter(Sale.created_at >= date_from)
    if date_to is not None:
        query = query.filter(Sale.created_at <= date_to)
    return query


def delete_sales_in_range(
    date_from: datetime | None,
    date_to: datetime | None,
    acting_user: User,
) -> BulkDeleteResult:
    """
    Delete every sale created within [date_from, date_to] (inclusive; an
    omitted bound is open), restoring each sale's stock first.

    Sales are processed one transaction each. A sale that fails is rolled
    back on its own and reported in failed_sale_ids; the others still go.
    """
    sale_ids = [
        row.id for row in
        _range_query(date_from, date_to).with_entities(Sale.id).order_by(Sale.id).all()
    ]
    # Release the read transaction before the per-sale write transactions
    db.session.commit()

    result = BulkDeleteResult()
    for sale_id in sale_ids:
        def _op(sale_id=sale_id):
            begin_write_transaction()
            sale = db.session.get(Sale, sale_id)
            if sale is None:
                db.session.rollback()
                return False
            _release_and_delete(sale)
            db.session.commit()
            return True

        try:
            if _run(_op, f"delete sale {sale_id}"):
                result.deleted_count += 1
        except StoreUnavailableError:
            result.failed_sale_ids.append(sale_id)

    logger.info(
        "Bulk delete by %s removed %d sale(s), %d failed",
        acting_user.username, result.deleted_count, len(result.failed_sale_ids),
    )
    if not (result.deleted_count or result.failed_sale_ids):
        return result

    bounds = f"{date_from or 'beginning'} to {date_to or 'now'}"
    record_activity(
        acting_user,
        f"Deleted {result.deleted_count} sale(s) from {bounds}",
    )
    return result


def get_sale(sale_id: int, acting_user: User) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise SaleNotFoundError(sale_id)
    if not _can_view(acting_user, sale):
        raise SaleAccessError(sale_id)
    return sale


def list_sales(
    acting_user: User,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    group_by_creator: bool = False,
) -> list[Sale] | dict[str, list[Sale]]:
    """
    Sales visible to acting_user, newest first.

    Without VIEW_ALL_SALES only the user's own sales are returned. With it,
    all sales, optionally grouped by creator username.
    """
    query = _range_query(date_from, date_to)
    see_all = is_allowed(acting_user.role, "VIEW_ALL_SALES")
    if not see_all:
        query = query.filter(Sale.created_by_user_id == acting_user.id)

    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    if not (see_all and group_by_creator):
        return sales

    grouped: dict[str, list[Sale]] = {}
    for sale in sales:
        grouped.setdefault(sale.created_by_username, []).append(sale)
    return grouped
