# Overview: Flask API routes for catalog reads and guarded product removal.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth, require_capability
from ..services import products_service
from ..services.products_service import ProductInUseError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_capability("VIEW_PRODUCTS")
def list_products_route():
    """List products in catalog order with per-variant stock."""
    products = products_service.list_products()
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.get("/<int:product_id>")
@require_auth
@require_capability("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    product = products_service.get_product(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_capability("MANAGE_CATALOG")
def delete_product_route(product_id: int):
    """
    Delete a product. Refused (409) while any sale references it, so
    deleting or editing those sales can still restore stock.
    """
    try:
        product = products_service.delete_product(product_id)
        if product is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"message": "Product deleted", "product_id": product_id}), 200

    except ProductInUseError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
