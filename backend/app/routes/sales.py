# Overview: Flask API routes for sales, returns and pre-orders; parses input and returns JSON responses.

# backend/app/routes/sales.py
"""Transaction API routes. Writes honor the Idempotency-Key header."""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..responses import error_payload
from ..services import transaction_service
from ..validation import ServiceError


sales_bp = Blueprint("sales", __name__, url_prefix="/api")


def _record(workflow, label: str):
    try:
        data = request.get_json() or {}
        result = workflow(
            g.shop_id,
            data,
            salesman_id=g.current_user.id,
            idempotency_key=request.headers.get("Idempotency-Key") or None,
        )
        status = 200 if result["replayed"] else 201
        return jsonify({"success": True, "message": "Success", "data": result}), status

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record %s", label)
        return jsonify(error_payload("Internal server error")), 500


@sales_bp.post("/sales")
@require_actor
def create_sale_route():
    """
    Record a sale: stock deltas, invoice number, customer and points in one
    transaction.

    Body: {"products": [{"product_id", "sold_quantity", "sale_type"?}],
           "customer"?: {"phone", "name"?}, "total_cents"?, "use_points"?, ...}
    Returns 201 {"invoice_no", "transaction_id"}; 200 on an idempotent replay.
    """
    return _record(transaction_service.record_sale, "sale")


@sales_bp.post("/return-sales")
@require_actor
def create_return_route():
    return _record(transaction_service.record_return, "return")


@sales_bp.post("/pre-orders")
@require_actor
def create_pre_order_route():
    return _record(transaction_service.record_pre_order, "pre-order")


@sales_bp.get("/transactions/<int:transaction_id>")
@require_actor
def get_transaction_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(transaction_id, g.shop_id)
        return jsonify({"success": True, "message": "Success", "data": transaction}), 200
    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load transaction")
        return jsonify(error_payload("Internal server error")), 500


@sales_bp.patch("/transactions/<int:transaction_id>")
@require_actor
def update_transaction_route(transaction_id: int):
    """Administrative correction of header fields; stock and points are not replayed."""
    try:
        changes = request.get_json() or {}
        transaction = transaction_service.update_transaction(transaction_id, changes, shop_id=g.shop_id)
        return jsonify({"success": True, "message": "Success", "data": transaction}), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update transaction")
        return jsonify(error_payload("Internal server error")), 500
