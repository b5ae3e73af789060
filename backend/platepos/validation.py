from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models.catalog import VARIANT_FULL, VARIANTS
from .services.stock_service import StockLine


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

SALE_TEXT_FIELDS = {
    "payment_method": 32,
    "order_type": 32,
    "order_taker": 120,
}


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class SalePayload:
    """Validated body of a sale create/update request."""
    items: list[StockLine]
    total_cents: int | None
    payment_method: str
    order_type: str
    order_taker: str


def coerce_int(key: str, value: Any) -> int:
    """
    Strict integer coercion: rejects floats, booleans, decimals and
    scientific notation.
    """
    # bool is a subclass of int
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _clean_text(key: str, value: Any, max_length: int, *, required: bool) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{key} is required")
        return None
    text = str(value).strip()
    if required and not text:
        raise ValidationError(f"{key} cannot be blank")
    if len(text) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return text


def parse_sale_items(raw_items: Any) -> list[StockLine]:
    """
    Validate the items array of a sale request.

    Each item: {"product_id": int, "quantity": int > 0, "variant": "full"|"half"}.
    variant defaults to "full". An empty list is returned as-is; the sale
    service decides that an empty sale is an error.
    """
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    lines = []
    for index, raw in enumerate(raw_items):
        prefix = f"items[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{prefix} must be an object")

        if raw.get("product_id") is None:
            raise ValidationError(f"{prefix}.product_id is required")
        product_id = coerce_int(f"{prefix}.product_id", raw["product_id"])

        if raw.get("quantity") is None:
            raise ValidationError(f"{prefix}.quantity is required")
        quantity = coerce_int(f"{prefix}.quantity", raw["quantity"])
        if quantity <= 0:
            raise ValidationError(f"{prefix}.quantity must be > 0")

        variant = str(raw.get("variant") or VARIANT_FULL).strip().lower()
        if variant not in VARIANTS:
            raise ValidationError(f"{prefix}.variant must be one of: {', '.join(VARIANTS)}")

        lines.append(StockLine(product_id=product_id, variant=variant, quantity=quantity))
    return lines


def parse_sale_payload(payload: Any) -> SalePayload:
    """Validate and normalize a sale create/update JSON body."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = parse_sale_items(payload.get("items"))

    total_cents = None
    if payload.get("total_cents") is not None:
        total_cents = coerce_int("total_cents", payload["total_cents"])
        if total_cents < 0:
            raise ValidationError("total_cents must be >= 0")

    fields = {
        key: _clean_text(key, payload.get(key), max_length, required=True)
        for key, max_length in SALE_TEXT_FIELDS.items()
    }

    return SalePayload(items=items, total_cents=total_cents, **fields)


def parse_order_taker_payload(payload: Any, *, partial: bool) -> dict:
    """
    Validate an order taker body. partial=True validates only provided keys
    (update semantics); partial=False requires name (create semantics).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    allowed = {"name", "phone", "balance_cents", "image_url"}
    for key in payload:
        if key not in allowed:
            raise ValidationError(f"Field not allowed: {key}")

    if not partial and "name" not in payload:
        raise ValidationError("Missing required fields: name")

    patch: dict = {}
    if "name" in payload:
        patch["name"] = _clean_text("name", payload["name"], 120, required=True)
    if "phone" in payload:
        patch["phone"] = _clean_text("phone", payload["phone"], 32, required=False)
    if "image_url" in payload:
        patch["image_url"] = _clean_text("image_url", payload["image_url"], 512, required=False)
    if "balance_cents" in payload:
        if payload["balance_cents"] is None:
            raise ValidationError("balance_cents cannot be null")
        patch["balance_cents"] = coerce_int("balance_cents", payload["balance_cents"])
    return patch
