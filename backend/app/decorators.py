# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User
from .responses import error_payload


def require_actor(f):
    """
    Establish the acting user and the shop scope.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The acting User object
    - g.shop_id: The shop every query and write of the request is scoped to

    The actor id arrives in the X-User-Id header. Who may act as whom is the
    job of an upstream auth layer; this decorator only resolves the id.

    Returns 401 if the header is missing or malformed, or the user is
    unknown or deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get("X-User-Id") or "").strip()
        if not raw.isdigit():
            return jsonify(error_payload("Actor required")), 401

        user = db.session.get(User, int(raw))
        if user is None or not user.is_active:
            return jsonify(error_payload("Unknown or inactive actor")), 401

        g.current_user = user
        g.shop_id = user.shop_id

        return f(*args, **kwargs)

    return decorated_function
