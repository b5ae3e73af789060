# Overview: Service-layer operations for order takers.

"""
Order takers are the floor staff credited on a sale. Superadmins manage
them fully; admins may only change the balance (cash handed over).
The rule is expressed as capabilities, never as role-name checks.
"""

from __future__ import annotations

from ..extensions import db
from ..models import OrderTaker, User
from ..permissions import is_allowed
from .activity_service import record_activity


class OrderTakerError(Exception):
    """Raised for order taker operation errors."""
    def __init__(self, message: str, details: dict | None = None, status: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status = status


def _get_or_404(order_taker_id: int) -> OrderTaker:
    taker = db.session.get(OrderTaker, order_taker_id)
    if not taker:
        raise OrderTakerError(
            "Order taker not found", details={"order_taker_id": order_taker_id}, status=404
        )
    return taker


def list_order_takers() -> list[OrderTaker]:
    return db.session.query(OrderTaker).order_by(OrderTaker.name.asc(), OrderTaker.id.asc()).all()


def create_order_taker(patch: dict, acting_user: User) -> OrderTaker:
    taker = OrderTaker(
        name=patch["name"],
        phone=patch.get("phone"),
        balance_cents=patch.get("balance_cents", 0),
        image_url=patch.get("image_url"),
    )
    db.session.add(taker)
    db.session.commit()

    record_activity(acting_user, f"Added order taker: {taker.name}")
    return taker


def update_order_taker(order_taker_id: int, patch: dict, acting_user: User) -> OrderTaker:
    """
    Apply a validated patch.

    Users with MANAGE_ORDER_TAKERS may change any field. Users with only
    UPDATE_ORDER_TAKER_BALANCE may send exactly {"balance_cents": ...}.
    """
    taker = _get_or_404(order_taker_id)

    if not is_allowed(acting_user.role, "MANAGE_ORDER_TAKERS"):
        balance_only = set(patch) == {"balance_cents"}
        if not (balance_only and is_allowed(acting_user.role, "UPDATE_ORDER_TAKER_BALANCE")):
            raise OrderTakerError(
                "You can only edit the balance",
                details={"allowed_fields": ["balance_cents"]},
                status=403,
            )

    for key, value in patch.items():
        setattr(taker, key, value)
    db.session.commit()

    if set(patch) == {"balance_cents"}:
        record_activity(acting_user, f"Updated balance for {taker.name} to {taker.balance_cents}")
    else:
        record_activity(acting_user, f"Updated order taker: {taker.name}")
    return taker


def delete_order_taker(order_taker_id: int, acting_user: User) -> str:
    """Delete an order taker; returns the deleted name."""
    taker = _get_or_404(order_taker_id)
    name = taker.name
    db.session.delete(taker)
    db.session.commit()

    record_activity(acting_user, f"Deleted order taker: {name}")
    return name
