# Overview: Flask API routes for buy-backs; record, read and correct.

# backend/app/routes/buy_backs.py
"""Buy-back API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..responses import error_payload
from ..services import buy_back_service
from ..validation import ServiceError


buy_backs_bp = Blueprint("buy_backs", __name__, url_prefix="/api/buy-backs")


@buy_backs_bp.post("")
@require_actor
def create_buy_back_route():
    """
    Record goods bought back from a customer.

    Body: {"name", "quantity"?, "sku"?, "imei"?, "purchase_price_cents"?,
           "customer_name"?, "phone_no"?, "nric"?, ...}
    """
    try:
        data = request.get_json() or {}
        buy_back = buy_back_service.record_buy_back(g.shop_id, data, user_id=g.current_user.id)
        return jsonify({"success": True, "message": "Success! Data Added.", "data": buy_back}), 201

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record buy-back")
        return jsonify(error_payload("Internal server error")), 500


@buy_backs_bp.get("/<int:buy_back_id>")
@require_actor
def get_buy_back_route(buy_back_id: int):
    try:
        buy_back = buy_back_service.get_buy_back(buy_back_id, g.shop_id)
        return jsonify({"success": True, "message": "Success", "data": buy_back}), 200
    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load buy-back")
        return jsonify(error_payload("Internal server error")), 500


@buy_backs_bp.patch("/<int:buy_back_id>")
@require_actor
def update_buy_back_route(buy_back_id: int):
    try:
        changes = request.get_json() or {}
        buy_back = buy_back_service.update_buy_back(buy_back_id, changes, shop_id=g.shop_id)
        return jsonify({"success": True, "message": "Success", "data": buy_back}), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update buy-back")
        return jsonify(error_payload("Internal server error")), 500
