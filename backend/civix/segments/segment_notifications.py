from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from civix.errors import failure
from civix.extensions import db
from civix.models import Notification
from civix.utils.guards import acting_user, forbidden, is_self, token_required

notifications_bp = Blueprint("notifications_bp", __name__, url_prefix="/api/notifications")

INBOX_LIMIT = 50


def _owned(notification_id: int):
    """Returns (row, None) or (None, error response)."""
    n = db.session.get(Notification, notification_id)
    if not n:
        return None, (jsonify({"success": False, "message": "Notification not found"}), 404)
    if n.user_email != acting_user().email:
        return None, forbidden()
    return n, None


@notifications_bp.get("/<email>")
@token_required
def list_notifications(email: str):
    if not is_self(email):
        return forbidden()
    rows = (
        Notification.query.filter_by(user_email=email)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(INBOX_LIMIT)
        .all()
    )
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@notifications_bp.patch("/<int:notification_id>/read")
@token_required
def mark_read(notification_id: int):
    n, err = _owned(notification_id)
    if err:
        return err

    n.read = True
    n.read_at = datetime.utcnow()
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("marking notification %s read failed", notification_id)
        return failure("Error updating notification", e)

    return jsonify({"success": True, "message": "Notification marked as read", "data": n.to_dict()}), 200


@notifications_bp.patch("/read-all/<email>")
@token_required
def mark_all_read(email: str):
    if not is_self(email):
        return forbidden()

    now = datetime.utcnow()
    rows = Notification.query.filter_by(user_email=email, read=False).all()
    for n in rows:
        n.read = True
        n.read_at = now
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("read-all failed for %s", email)
        return failure("Error updating notifications", e)

    return jsonify({
        "success": True,
        "message": "All notifications marked as read",
        "data": {"modifiedCount": len(rows)},
    }), 200


@notifications_bp.delete("/<int:notification_id>")
@token_required
def delete_notification(notification_id: int):
    n, err = _owned(notification_id)
    if err:
        return err

    try:
        db.session.delete(n)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("deleting notification %s failed", notification_id)
        return failure("Error deleting notification", e)

    return jsonify({"success": True, "message": "Notification deleted"}), 200
