from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from civix.errors import failure
from civix.extensions import db
from civix.models import Message, MessageReply
from civix.utils.guards import acting_user, forbidden, is_self, token_required
from civix.utils.payload import json_body, text_field

messages_bp = Blueprint("messages_bp", __name__, url_prefix="/api/messages")

INBOX_LIMIT = 50


def _not_found():
    return jsonify({"success": False, "message": "Message not found"}), 404


def _save(action: str, message_id: int):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("%s on message %s failed", action, message_id)
        return failure(f"Error trying to {action} message", e)
    return None


@messages_bp.get("/<email>")
@token_required
def inbox(email: str):
    if not is_self(email):
        return forbidden()
    rows = (
        Message.query.filter_by(recipient_email=email)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(INBOX_LIMIT)
        .all()
    )
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@messages_bp.get("/detail/<int:message_id>")
@token_required
def detail(message_id: int):
    m = db.session.get(Message, message_id)
    if not m:
        return _not_found()
    me = acting_user().email
    if me not in (m.recipient_email, m.sender_email):
        return forbidden()
    return jsonify({"success": True, "data": m.to_dict()}), 200


@messages_bp.patch("/<int:message_id>/read")
@token_required
def mark_read(message_id: int):
    m = db.session.get(Message, message_id)
    if not m:
        return _not_found()
    if m.recipient_email != acting_user().email:
        return forbidden()

    m.read = True
    m.read_at = datetime.utcnow()
    err = _save("read", message_id)
    if err:
        return err
    return jsonify({"success": True, "message": "Message marked as read", "data": m.to_dict()}), 200


@messages_bp.post("/<int:message_id>/reply")
@token_required
def reply(message_id: int):
    m = db.session.get(Message, message_id)
    if not m:
        return _not_found()
    u = acting_user()
    if m.recipient_email != u.email:
        return forbidden()

    data = json_body()
    body = text_field(data, "reply")
    if not body:
        return jsonify({"success": False, "message": "Reply cannot be empty"}), 400

    now = datetime.utcnow()
    m.replies.append(MessageReply(body=body, sender_email=u.email, sender_name=u.name or "User", created_at=now))
    m.updated_at = now
    err = _save("reply to", message_id)
    if err:
        return err

    current_app.logger.info("%s replied to message %s", u.email, message_id)
    return jsonify({"success": True, "message": "Reply sent", "data": m.to_dict()}), 200


@messages_bp.delete("/<int:message_id>")
@token_required
def delete_message(message_id: int):
    m = db.session.get(Message, message_id)
    if not m:
        return _not_found()
    if m.recipient_email != acting_user().email:
        return forbidden()

    db.session.delete(m)
    err = _save("delete", message_id)
    if err:
        return err
    return jsonify({"success": True, "message": "Message deleted"}), 200
