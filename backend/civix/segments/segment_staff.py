from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from civix.errors import DomainError, error_response, failure
from civix.extensions import db
from civix.models import Issue, User
from civix.services import issue_lifecycle as lifecycle
from civix.services.issue_feed import by_priority
from civix.utils.guards import acting_user, admin_required, forbidden, is_self, staff_required
from civix.utils.payload import json_body, password_field, text_field

staff_bp = Blueprint("staff_bp", __name__, url_prefix="/api/staff")

# Admin-editable staff fields; role, email and password are never patched here
STAFF_FIELDS = {"name": "name", "phone": "phone", "photoURL": "photo_url"}


def _staff_or_404(email: str):
    return User.query.filter_by(email=email, role="staff").first()


@staff_bp.get("")
@staff_bp.get("/")
@admin_required
def list_staff():
    rows = User.query.filter_by(role="staff").order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@staff_bp.post("")
@staff_bp.post("/")
@admin_required
def create_staff():
    data = json_body()
    name = text_field(data, "name")
    email = text_field(data, "email").lower()
    password = password_field(data)

    if not name or not email or "@" not in email:
        return jsonify({"success": False, "message": "name and a valid email are required"}), 400
    if len(password) < 6:
        return jsonify({"success": False, "message": "password must be at least 6 characters"}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({"success": False, "message": "Staff member already exists"}), 400

    now = datetime.utcnow()
    staff = User(
        name=name,
        email=email,
        phone=text_field(data, "phone") or None,
        photo_url=text_field(data, "photoURL") or current_app.config["DEFAULT_AVATAR_URL"],
        role="staff",
        is_blocked=False,
        assigned_issues_count=0,
        resolved_issues_count=0,
        created_at=now,
        updated_at=now,
    )
    staff.set_password(password)

    try:
        db.session.add(staff)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("staff creation failed for %s", email)
        return failure("Error creating staff", e)

    current_app.logger.info("staff %s created by %s", email, acting_user().email)
    return jsonify({"success": True, "message": "Staff member created successfully", "data": staff.to_dict()}), 201


@staff_bp.patch("/<email>")
@admin_required
def update_staff(email: str):
    staff = _staff_or_404(email)
    if not staff:
        return jsonify({"success": False, "message": "Staff member not found"}), 404

    data = json_body()
    for key, attr in STAFF_FIELDS.items():
        if key in data:
            value = data.get(key)
            setattr(staff, attr, value.strip() if isinstance(value, str) else value)
    if "isBlocked" in data:
        staff.is_blocked = bool(data.get("isBlocked"))
    staff.touch()

    try:
        db.session.add(staff)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("staff update failed for %s", email)
        return failure("Error updating staff", e)

    return jsonify({"success": True, "message": "Staff member updated successfully", "data": staff.to_dict()}), 200


@staff_bp.delete("/<email>")
@admin_required
def delete_staff(email: str):
    if Issue.query.filter_by(assigned_staff_email=email).count() > 0:
        return jsonify({
            "success": False,
            "message": "Cannot delete staff with assigned issues. Reassign issues first.",
        }), 400

    staff = _staff_or_404(email)
    if not staff:
        return jsonify({"success": False, "message": "Staff member not found"}), 404

    try:
        db.session.delete(staff)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("staff delete failed for %s", email)
        return failure("Error deleting staff", e)

    current_app.logger.info("staff %s deleted", email)
    return jsonify({"success": True, "message": "Staff member deleted successfully"}), 200


@staff_bp.get("/<email>/assigned-issues")
@staff_required
def assigned_issues(email: str):
    if not is_self(email):
        return forbidden()
    rows = by_priority(Issue.query.filter_by(assigned_staff_email=email)).all()
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@staff_bp.patch("/issues/<int:issue_id>/status")
@staff_required
def update_status(issue_id: int):
    issue = db.session.get(Issue, issue_id)
    if not issue:
        return jsonify({"success": False, "message": "Issue not found"}), 404

    data = json_body()
    staff = acting_user()
    try:
        lifecycle.change_status(issue, staff, data.get("status"), text_field(data, "message") or None)
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("status update failed for issue %s", issue_id)
        return failure("Error updating issue status", e)

    current_app.logger.info("issue %s -> %s by %s", issue_id, issue.status, staff.email)
    return jsonify({"success": True, "message": "Issue status updated successfully", "data": issue.to_dict()}), 200


@staff_bp.get("/<email>/stats")
@staff_required
def staff_stats(email: str):
    if not is_self(email):
        return forbidden()
    if not _staff_or_404(email):
        return jsonify({"success": False, "message": "Staff member not found"}), 404

    mine = Issue.query.filter_by(assigned_staff_email=email)
    return jsonify({
        "success": True,
        "data": {
            "assignedIssues": mine.count(),
            "resolvedIssues": mine.filter(Issue.status == "resolved").count(),
            "pendingIssues": mine.filter(Issue.status == "pending").count(),
            "inProgressIssues": mine.filter(Issue.status.in_(("in-progress", "working"))).count(),
        },
    }), 200
