# Overview: Flask API route for the generic list engine; one endpoint serves every listable entity.

# backend/app/routes/queries.py
"""List API: POST /api/<entity>/list?search=..."""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..responses import error_payload
from ..services.query_configs import get_entity_config
from ..services.query_service import ListRequest, run_query
from ..validation import ServiceError


queries_bp = Blueprint("queries", __name__, url_prefix="/api")


@queries_bp.post("/<entity>/list")
@require_actor
def list_entities_route(entity: str):
    """
    Filter, search, sort, paginate and project any listable entity.

    Body: {"filter": {...}, "pagination": {"page_size", "current_page"},
           "sort": {...}, "select": {...}}
    The actor's shop is always forced into the filter.
    """
    config = get_entity_config(entity.replace("-", "_"))
    if config is None:
        return jsonify(error_payload(f"Unknown entity '{entity}'")), 404

    try:
        list_request = ListRequest.from_dict(request.get_json(silent=True))
        list_request.filter["shop_id"] = g.shop_id
        payload = run_query(config, list_request, search=request.args.get("search"))
        return jsonify(payload), 200

    except ServiceError as e:
        return jsonify(error_payload(e.message, e.details)), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list %s", entity)
        return jsonify(error_payload("Internal server error")), 500
