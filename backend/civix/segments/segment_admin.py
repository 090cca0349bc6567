from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from civix.errors import DomainError, error_response, failure
from civix.extensions import db
from civix.models import AuditLog, Issue, Payment, User
from civix.services import issue_lifecycle as lifecycle
from civix.services.issue_feed import by_priority, escape_like, positive_int
from civix.services.payments import revenue
from civix.utils.guards import acting_user, admin_required
from civix.utils.payload import json_body, text_field
from civix.utils.notify import audit, create_message

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/admin")


def set_blocked(email: str, blocked: bool):
    """Shared by /api/admin/users/<email>/block and /api/users/<email>/block."""
    u = User.query.filter_by(email=email).first()
    if not u:
        return jsonify({"success": False, "message": "User not found"}), 404

    u.is_blocked = bool(blocked)
    u.touch()
    audit(acting_user().email, "block_user" if blocked else "unblock_user", "user", email)
    try:
        db.session.add(u)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("block update failed for %s", email)
        return failure("Error updating user status", e)

    current_app.logger.info("user %s %s", email, "blocked" if blocked else "unblocked")
    return jsonify({
        "success": True,
        "message": f"User {'blocked' if blocked else 'unblocked'} successfully",
        "data": u.to_dict(),
    }), 200


@admin_bp.get("/issues")
@admin_required
def all_issues():
    rows = by_priority(Issue.query).all()
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@admin_bp.patch("/issues/<int:issue_id>/assign")
@admin_required
def assign_issue(issue_id: int):
    issue = db.session.get(Issue, issue_id)
    if not issue:
        return jsonify({"success": False, "message": "Issue not found"}), 404

    data = json_body()
    staff_email = text_field(data, "staffEmail").lower()
    staff = User.query.filter_by(email=staff_email, role="staff").first() if staff_email else None
    admin = acting_user()

    try:
        lifecycle.assign_staff(issue, admin.email, staff)
        audit(admin.email, "assign_staff", "issue", issue.id, {"staffEmail": staff_email})
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("assigning issue %s failed", issue_id)
        return failure("Error assigning staff", e)

    current_app.logger.info("issue %s assigned to %s", issue_id, staff_email)
    return jsonify({"success": True, "message": "Staff assigned successfully", "data": issue.to_dict()}), 200


@admin_bp.patch("/issues/<int:issue_id>/reject")
@admin_required
def reject_issue(issue_id: int):
    issue = db.session.get(Issue, issue_id)
    if not issue:
        return jsonify({"success": False, "message": "Issue not found"}), 404

    data = json_body()
    reason = text_field(data, "reason") or None
    admin = acting_user()

    try:
        lifecycle.reject_issue(issue, admin.email, reason)
        audit(admin.email, "reject_issue", "issue", issue.id, {"reason": reason})
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("rejecting issue %s failed", issue_id)
        return failure("Error rejecting issue", e)

    current_app.logger.info("issue %s rejected by %s", issue_id, admin.email)
    return jsonify({"success": True, "message": "Issue rejected successfully", "data": issue.to_dict()}), 200


@admin_bp.get("/stats")
@admin_required
def dashboard_stats():
    citizens = User.query.filter_by(role="citizen")
    payments = Payment.query.all()
    return jsonify({
        "success": True,
        "data": {
            "issues": {
                "total": Issue.query.count(),
                "pending": Issue.query.filter_by(status="pending").count(),
                "inProgress": Issue.query.filter(Issue.status.in_(("in-progress", "working"))).count(),
                "resolved": Issue.query.filter_by(status="resolved").count(),
                "rejected": Issue.query.filter_by(status="rejected").count(),
            },
            "users": {
                "total": citizens.count(),
                "premium": citizens.filter(User.is_premium.is_(True)).count(),
                "blocked": citizens.filter(User.is_blocked.is_(True)).count(),
            },
            "staff": User.query.filter_by(role="staff").count(),
            "payments": {
                "total": len(payments),
                "revenue": revenue(payments),
            },
        },
    }), 200


@admin_bp.get("/latest")
@admin_required
def latest():
    issues = Issue.query.order_by(Issue.created_at.desc(), Issue.id.desc()).limit(5).all()
    payments = Payment.query.order_by(Payment.created_at.desc(), Payment.id.desc()).limit(5).all()
    users = User.query.filter_by(role="citizen").order_by(User.created_at.desc(), User.id.desc()).limit(5).all()
    return jsonify({
        "success": True,
        "data": {
            "latestIssues": [i.to_dict() for i in issues],
            "latestPayments": [p.to_dict() for p in payments],
            "latestUsers": [u.to_dict() for u in users],
        },
    }), 200


@admin_bp.get("/users")
@admin_required
def list_citizens():
    search = (request.args.get("search") or "").strip()
    status = (request.args.get("status") or "").strip().lower()

    q = User.query.filter_by(role="citizen")
    if search:
        pattern = f"%{escape_like(search)}%"
        q = q.filter(or_(User.name.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\")))
    if status == "blocked":
        q = q.filter(User.is_blocked.is_(True))
    elif status == "active":
        q = q.filter(User.is_blocked.is_(False))
    elif status == "premium":
        q = q.filter(User.is_premium.is_(True))

    out = []
    for u in q.order_by(User.created_at.desc(), User.id.desc()).all():
        # stored counter first; fall back to a live count for legacy rows
        count = int(u.issue_count or 0) or Issue.query.filter_by(user_email=u.email).count()
        row = u.to_dict()
        row["issueCount"] = count
        row["issuesCount"] = count
        out.append(row)
    return jsonify({"success": True, "data": out}), 200


@admin_bp.patch("/users/<email>/block")
@admin_required
def block_user(email: str):
    data = json_body()
    blocked = data.get("isBlocked")
    return set_blocked(email, True if blocked is None else bool(blocked))


@admin_bp.post("/messages")
@admin_required
def send_message():
    data = json_body()
    recipient = text_field(data, "recipientEmail").lower()
    body = text_field(data, "message")
    if not recipient or not body:
        return jsonify({"success": False, "message": "recipientEmail and message are required"}), 400
    if not User.query.filter_by(email=recipient).first():
        return jsonify({"success": False, "message": "User not found"}), 404

    admin = acting_user()
    msg = create_message(
        recipient,
        body,
        subject=text_field(data, "subject") or None,
        sender_email=admin.email,
        sender_name=admin.name,
    )
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("sending message to %s failed", recipient)
        return failure("Error sending message", e)

    return jsonify({"success": True, "message": "Message sent", "data": msg.to_dict()}), 201


@admin_bp.get("/audit")
@admin_required
def audit_log():
    limit = min(positive_int(request.args.get("limit"), 100), 500)
    rows = AuditLog.query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200
