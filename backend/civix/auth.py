from __future__ import annotations

from flask import jsonify, request

from civix.extensions import db, login_manager
from civix.models import User
from civix.utils.jwt_utils import decode_token, get_bearer_token


@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.request_loader
def load_user_from_request(req):
    """Make @login_required work with Bearer tokens.

    The API is stateless; every request carries its own token.
    """
    token = get_bearer_token(req.headers.get("Authorization", ""))
    if not token:
        return None
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    # No token at all is 401; a token we could not resolve is 403.
    if not get_bearer_token(request.headers.get("Authorization", "")):
        return jsonify({"success": False, "message": "Unauthorized access - No token provided"}), 401
    return jsonify({"success": False, "message": "Forbidden access - Invalid token"}), 403
