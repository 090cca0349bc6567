from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from civix.extensions import db
from civix.models import AuditLog, Message, Notification

NOTIFICATION_TYPES = ("info", "success", "error")


def create_notification(
    user_email: str,
    title: str,
    message: str,
    type: str = "info",
    link: Optional[str] = None,
    commit: bool = False,
) -> Optional[Notification]:
    """Stage an in-app notification.

    With ``commit=False`` the row rides on the caller's transaction. With
    ``commit=True`` it is written on its own and a failure is logged and
    swallowed (returns None) so it never breaks the calling flow.
    """
    n = Notification(
        user_email=user_email,
        title=(title or "")[:160],
        message=message or "",
        type=type if type in NOTIFICATION_TYPES else "info",
        link=link,
        read=False,
        created_at=datetime.utcnow(),
    )
    db.session.add(n)
    if not commit:
        return n
    try:
        db.session.commit()
        return n
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("failed to create notification for %s", user_email)
        return None


def create_message(
    recipient_email: str,
    message: str,
    subject: Optional[str] = None,
    sender_email: Optional[str] = None,
    sender_name: Optional[str] = None,
    commit: bool = False,
) -> Optional[Message]:
    now = datetime.utcnow()
    m = Message(
        recipient_email=recipient_email,
        sender_email=sender_email or "system",
        sender_name=sender_name or "System",
        subject=subject or "New Message",
        body=message,
        read=False,
        created_at=now,
        updated_at=now,
    )
    db.session.add(m)
    if not commit:
        return m
    try:
        db.session.commit()
        return m
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("failed to create message for %s", recipient_email)
        return None


def audit(actor_email: str | None, action: str, target_type: str, target_ref: Any, meta: Optional[Dict[str, Any]] = None) -> AuditLog:
    row = AuditLog(
        actor_email=actor_email,
        action=action,
        target_type=target_type,
        target_ref=str(target_ref) if target_ref is not None else None,
        meta=json.dumps(meta or {}, default=str),
    )
    db.session.add(row)
    return row
