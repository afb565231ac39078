# Overview: Flask API routes for archive-delete and restore.

# backend/app/routes/archives.py

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..responses import error_payload
from ..services import archive_service
from ..validation import ServiceError


archives_bp = Blueprint("archives", __name__, url_prefix="/api/archive")


@archives_bp.post("/<collection>/delete")
@require_actor
def archive_delete_route(collection: str):
    """Body: {"ids": [...]}. Deleted documents move to the collection's log."""
    try:
        data = request.get_json() or {}
        result = archive_service.archive_delete(
            collection,
            data.get("ids"),
            actor_id=g.current_user.id,
            shop_id=g.shop_id,
        )
        return jsonify({"success": True, "message": "Success", "data": result}), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to archive %s", collection)
        return jsonify(error_payload("Internal server error")), 500


@archives_bp.post("/<collection>/restore")
@require_actor
def restore_route(collection: str):
    """Body: {"ids": [...original ids]}"""
    try:
        data = request.get_json() or {}
        result = archive_service.restore(collection, data.get("ids"), shop_id=g.shop_id)
        return jsonify(result), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restore %s", collection)
        return jsonify(error_payload("Internal server error")), 500
