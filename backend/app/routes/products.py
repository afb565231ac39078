# Overview: Flask API routes for products; create, read, update, stock-in and damage.

# backend/app/routes/products.py
"""Product API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..responses import error_payload, response_payload
from ..services import products_service, stock_service
from ..validation import ServiceError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("")
@require_actor
def create_product_route():
    """
    Create a product. A comma-separated `imei` creates one product per IMEI.

    Body: {"name", "quantity", "imei"?, "sku"?, "sale_price_cents"?, ...}
    """
    try:
        data = request.get_json() or {}
        products = products_service.create_product(g.shop_id, data, user_id=g.current_user.id)
        return jsonify(response_payload(True, "Success", data=products, count=len(products))), 201

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify(error_payload("Internal server error")), 500


@products_bp.get("/<int:product_id>")
@require_actor
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id, g.shop_id)
        return jsonify({"success": True, "message": "Success", "data": product.to_dict()}), 200
    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify(error_payload("Internal server error")), 500


@products_bp.patch("/<int:product_id>")
@require_actor
def update_product_route(product_id: int):
    """
    Update product fields. `quantity` is rejected; send `new_quantity` to
    record a stock-in.
    """
    try:
        changes = request.get_json() or {}
        product = products_service.update_product(
            product_id, changes, shop_id=g.shop_id, user_id=g.current_user.id
        )
        return jsonify({"success": True, "message": "Success", "data": product}), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify(error_payload("Internal server error")), 500


@products_bp.post("/<int:product_id>/stock-in")
@require_actor
def stock_in_route(product_id: int):
    """Body: {"quantity", "note"?, "date_string"?}"""
    try:
        data = request.get_json() or {}
        purchase = stock_service.record_purchase(
            g.shop_id,
            product_id,
            data.get("quantity"),
            user_id=g.current_user.id,
            note=data.get("note"),
            date_string=data.get("date_string"),
        )
        return jsonify({"success": True, "message": "Success", "data": purchase}), 201

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record stock-in")
        return jsonify(error_payload("Internal server error")), 500


@products_bp.post("/<int:product_id>/damage")
@require_actor
def damage_route(product_id: int):
    """Body: {"quantity", "note"?, "date_string"?}"""
    try:
        data = request.get_json() or {}
        damage = stock_service.record_damage(
            g.shop_id,
            product_id,
            data.get("quantity"),
            note=data.get("note"),
            date_string=data.get("date_string"),
        )
        return jsonify({"success": True, "message": "Success", "data": damage}), 201

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record damage")
        return jsonify(error_payload("Internal server error")), 500
