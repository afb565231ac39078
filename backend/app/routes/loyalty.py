# Overview: Flask API routes for the shop's point configuration and sequence counters.

# backend/app/routes/loyalty.py

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..responses import error_payload
from ..services import customer_service, sequence_service
from ..validation import ServiceError


loyalty_bp = Blueprint("loyalty", __name__, url_prefix="/api")


@loyalty_bp.get("/points")
@require_actor
def get_points_route():
    try:
        config = customer_service.get_point_config(g.shop_id)
        return jsonify({
            "success": True,
            "message": "Success",
            "data": config.to_dict() if config else None,
        }), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load point config")
        return jsonify(error_payload("Internal server error")), 500


@loyalty_bp.put("/points")
@require_actor
def set_points_route():
    """
    Body: {"point_amount": percent of the total credited as points,
           "point_value": cents one point is worth}
    """
    try:
        data = request.get_json() or {}
        config = customer_service.set_point_config(
            g.shop_id, data.get("point_amount"), data.get("point_value")
        )
        return jsonify({"success": True, "message": "Success", "data": config}), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to set point config")
        return jsonify(error_payload("Internal server error")), 500


@loyalty_bp.get("/sequences")
@require_actor
def get_sequences_route():
    """Counter document for the actor's shop: {"shop_id", "invoice_no"?, "product_id"?, ...}"""
    try:
        return jsonify({
            "success": True,
            "message": "Success",
            "data": sequence_service.get_counters(g.shop_id),
        }), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load sequence counters")
        return jsonify(error_payload("Internal server error")), 500
