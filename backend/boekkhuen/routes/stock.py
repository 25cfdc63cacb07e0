# Overview: Flask API routes for reading stock levels.

from flask import Blueprint, jsonify, current_app

from ..extensions import db
from ..models import Product, StockMovement
from ..services import stock_service
from ..decorators import require_principal, require_admin


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("/low")
@require_principal
@require_admin
def low_stock_route():
    try:
        return jsonify({"products": stock_service.low_stock_products()}), 200
    except Exception:
        current_app.logger.exception("Failed to load low stock report")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/<int:product_id>")
@require_principal
def product_stock_route(product_id: int):
    """Current on-hand quantity plus the latest movements."""
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        return jsonify({"error": "Product not found"}), 404

    movements = (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.id.desc())
        .limit(20)
        .all()
    )
    return jsonify({
        "product_id": product.id,
        "product_name": product.name,
        "current_stock": stock_service.get_current_stock(product.id),
        "movements": [m.to_dict() for m in movements],
    }), 200
