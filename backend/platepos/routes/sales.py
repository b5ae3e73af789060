# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/platepos/routes/sales.py
"""Sales API routes with capability enforcement"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_capability
from ..services import sales_service
from ..services.sales_service import (
    SaleAccessError,
    SaleError,
    SaleNotFoundError,
    StoreUnavailableError,
)
from ..services.stock_service import ProductNotFoundError, StockError
from ..time_utils import parse_range_bound
from ..validation import ValidationError, parse_sale_payload


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _error_response(e: Exception):
    """Translate lifecycle/stock errors to (body, status)."""
    details = getattr(e, "details", {})
    if isinstance(e, (ProductNotFoundError, SaleNotFoundError)):
        status = 404
    elif isinstance(e, SaleAccessError):
        status = 403
    elif isinstance(e, StoreUnavailableError):
        current_app.logger.error("Sale store unavailable: %s", details)
        return jsonify({"error": "Internal server error"}), 500
    else:
        status = 400
    return jsonify({"error": str(e), "details": details}), status


def _range_args():
    try:
        date_from = parse_range_bound(request.args.get("from"))
        date_to = parse_range_bound(request.args.get("to"), end=True)
    except ValueError:
        raise ValidationError("from/to must be ISO-8601 dates or datetimes")
    if date_from and date_to and date_from > date_to:
        raise ValidationError("from must not be after to")
    return date_from, date_to


@sales_bp.post("")
@require_auth
@require_capability("CREATE_SALE")
def create_sale_route():
    """
    Ring up a sale and debit stock.

    Body: {items: [{product_id, variant, quantity}], total_cents?,
           payment_method, order_type, order_taker}

    Requires: CREATE_SALE
    """
    try:
        payload = parse_sale_payload(request.get_json(silent=True))
        sale = sales_service.create_sale(payload, g.current_user)
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (StockError, SaleError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_capability("VIEW_OWN_SALES")
def list_sales_route():
    """
    List sales, newest first.

    Query: from, to (ISO dates, inclusive), group_by=creator.
    Users without VIEW_ALL_SALES only see their own sales.
    """
    try:
        date_from, date_to = _range_args()
        group_by_creator = request.args.get("group_by") == "creator"

        result = sales_service.list_sales(
            g.current_user,
            date_from=date_from,
            date_to=date_to,
            group_by_creator=group_by_creator,
        )
        if isinstance(result, dict):
            return jsonify({
                "groups": {
                    username: [sale.to_dict() for sale in sales]
                    for username, sales in result.items()
                }
            }), 200
        return jsonify({"sales": [sale.to_dict() for sale in result], "count": len(result)}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_capability("VIEW_OWN_SALES")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id, g.current_user)
        return jsonify({"sale": sale.to_dict()}), 200
    except SaleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_capability("EDIT_SALE")
def update_sale_route(sale_id: int):
    """
    Replace a sale's items and details.

    The previous items are credited back before the new ones are checked,
    all in one transaction: a rejected edit changes nothing.

    Requires: EDIT_SALE (MANAGE_ALL_SALES for other users' sales)
    """
    try:
        payload = parse_sale_payload(request.get_json(silent=True))
        sale = sales_service.update_sale(sale_id, payload, g.current_user)
        return jsonify({"sale": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (StockError, SaleError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_capability("DELETE_SALE")
def delete_sale_route(sale_id: int):
    """
    Delete a sale and restore its stock.

    Requires: DELETE_SALE (MANAGE_ALL_SALES for other users' sales)
    """
    try:
        sales_service.delete_sale(sale_id, g.current_user)
        return jsonify({"message": "Sale deleted successfully", "sale_id": sale_id}), 200

    except SaleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("")
@require_auth
@require_capability("BULK_DELETE_SALES")
def bulk_delete_sales_route():
    """
    Delete all sales in a date range, restoring stock for each.

    Query: from and/or to (inclusive), or all=true for every sale.
    Returns {deleted_count, failed_sale_ids}.

    Requires: BULK_DELETE_SALES
    """
    try:
        date_from, date_to = _range_args()
        delete_all = request.args.get("all", "").lower() == "true"
        if not (date_from or date_to or delete_all):
            return jsonify({"error": "Provide from/to or all=true"}), 400

        result = sales_service.delete_sales_in_range(date_from, date_to, g.current_user)
        return jsonify(result.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to bulk delete sales")
        return jsonify({"error": "Internal server error"}), 500
