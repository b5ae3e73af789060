# Overview: Flask API routes for order takers.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_any_capability, require_auth, require_capability
from ..services import order_taker_service
from ..services.order_taker_service import OrderTakerError
from ..validation import ValidationError, parse_order_taker_payload

order_takers_bp = Blueprint("order_takers", __name__, url_prefix="/api/order-takers")


@order_takers_bp.get("")
@require_auth
@require_capability("VIEW_ORDER_TAKERS")
def list_order_takers_route():
    takers = order_taker_service.list_order_takers()
    return jsonify({"items": [t.to_dict() for t in takers], "count": len(takers)}), 200


@order_takers_bp.post("")
@require_auth
@require_capability("MANAGE_ORDER_TAKERS")
def create_order_taker_route():
    try:
        patch = parse_order_taker_payload(request.get_json(silent=True), partial=False)
        taker = order_taker_service.create_order_taker(patch, g.current_user)
        return jsonify({"order_taker": taker.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create order taker")
        return jsonify({"error": "Failed to create order taker"}), 500


@order_takers_bp.put("/<int:order_taker_id>")
@require_auth
@require_any_capability("MANAGE_ORDER_TAKERS", "UPDATE_ORDER_TAKER_BALANCE")
def update_order_taker_route(order_taker_id: int):
    """
    Update an order taker.

    MANAGE_ORDER_TAKERS: any field.
    UPDATE_ORDER_TAKER_BALANCE only: body must be exactly {"balance_cents": n}.
    """
    try:
        patch = parse_order_taker_payload(request.get_json(silent=True), partial=True)
        if not patch:
            return jsonify({"error": "Nothing to update"}), 400
        taker = order_taker_service.update_order_taker(order_taker_id, patch, g.current_user)
        return jsonify({"order_taker": taker.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OrderTakerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status
    except Exception:
        current_app.logger.exception("Failed to update order taker")
        return jsonify({"error": "Failed to update order taker"}), 500


@order_takers_bp.delete("/<int:order_taker_id>")
@require_auth
@require_capability("MANAGE_ORDER_TAKERS")
def delete_order_taker_route(order_taker_id: int):
    try:
        order_taker_service.delete_order_taker(order_taker_id, g.current_user)
        return jsonify({"message": "Deleted successfully"}), 200

    except OrderTakerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status
    except Exception:
        current_app.logger.exception("Failed to delete order taker")
        return jsonify({"error": "Failed to delete order taker"}), 500
