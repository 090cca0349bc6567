from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from civix.errors import failure
from civix.extensions import db
from civix.models import Payment, User
from civix.segments.segment_admin import set_blocked
from civix.services.payments import revenue
from civix.utils.guards import acting_user, admin_required, forbidden, is_self, token_required
from civix.utils.payload import json_body

users_bp = Blueprint("users_bp", __name__, url_prefix="/api/users")


@users_bp.get("")
@users_bp.get("/")
@admin_required
def list_users():
    rows = User.query.filter_by(role="citizen").order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@users_bp.patch("/<email>/block")
@admin_required
def block_user(email: str):
    data = json_body()
    if "isBlocked" not in data:
        return jsonify({"success": False, "message": "isBlocked is required"}), 400
    return set_blocked(email, bool(data.get("isBlocked")))


@users_bp.patch("/<email>/premium")
@token_required
def activate_premium(email: str):
    if not is_self(email):
        return forbidden()

    u = acting_user()
    now = datetime.utcnow()
    u.is_premium = True
    u.premium_since = now
    u.updated_at = now
    try:
        db.session.add(u)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("premium activation failed for %s", email)
        return failure("Error updating premium status", e)

    current_app.logger.info("premium activated for %s", email)
    return jsonify({"success": True, "message": "Premium subscription activated", "data": u.to_dict()}), 200


@users_bp.get("/<email>/stats")
@token_required
def user_stats(email: str):
    if not is_self(email):
        return forbidden()

    u = User.query.filter_by(email=email).first()
    if not u:
        return jsonify({"success": False, "message": "User not found"}), 404

    payments = Payment.query.filter_by(user_email=email).all()
    return jsonify({
        "success": True,
        "data": {
            "issueCount": int(u.issue_count or 0),
            "isPremium": bool(u.is_premium),
            "isBlocked": bool(u.is_blocked),
            "totalPayments": revenue(payments),
            "paymentCount": len(payments),
        },
    }), 200
