from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from civix.errors import DomainError, error_response, failure
from civix.extensions import db
from civix.models import Issue
from civix.services import issue_lifecycle as lifecycle
from civix.services.issue_feed import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, FeedFilters, list_issues, positive_int
from civix.utils.guards import acting_user, citizen_required, forbidden, is_self, token_required
from civix.utils.payload import json_body

issues_bp = Blueprint("issues_bp", __name__, url_prefix="/api/issues")


def _not_found():
    return jsonify({"success": False, "message": "Issue not found"}), 404


@issues_bp.get("")
@issues_bp.get("/")
def list_all():
    args = request.args
    filters = FeedFilters(
        search=(args.get("search") or "").strip(),
        status=(args.get("status") or "").strip(),
        priority=(args.get("priority") or "").strip(),
        category=(args.get("category") or "").strip(),
    )
    page = positive_int(args.get("page"), DEFAULT_PAGE)
    limit = min(positive_int(args.get("limit"), DEFAULT_LIMIT), MAX_LIMIT)

    try:
        feed = list_issues(filters, page=page, limit=limit)
    except SQLAlchemyError as e:
        current_app.logger.exception("issue listing failed")
        return failure("Error fetching issues", e)
    return jsonify({"success": True, "data": feed.to_dict()}), 200


@issues_bp.get("/resolved/latest")
def latest_resolved():
    limit = min(positive_int(request.args.get("limit"), 6), MAX_LIMIT)
    rows = (
        Issue.query.filter_by(status="resolved")
        .order_by(Issue.updated_at.desc(), Issue.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@issues_bp.get("/<int:issue_id>")
def get_issue(issue_id: int):
    issue = db.session.get(Issue, issue_id)
    if not issue:
        return _not_found()
    return jsonify({"success": True, "data": issue.to_dict()}), 200


@issues_bp.get("/user/<email>")
@token_required
def user_issues(email: str):
    if not is_self(email):
        return forbidden()
    rows = Issue.query.filter_by(user_email=email).order_by(Issue.created_at.desc(), Issue.id.desc()).all()
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@issues_bp.post("")
@issues_bp.post("/")
@citizen_required
def create_issue():
    data = json_body()
    user = acting_user()
    try:
        issue = lifecycle.create_issue(user, data, current_app.config["FREE_ISSUE_LIMIT"])
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("issue creation failed for %s", user.email)
        return failure("Error creating issue", e)

    current_app.logger.info("issue %s reported by %s", issue.id, user.email)
    return jsonify({"success": True, "message": "Issue created successfully", "data": issue.to_dict()}), 201


@issues_bp.patch("/<int:issue_id>")
@token_required
def edit_issue(issue_id: int):
    issue = db.session.get(Issue, issue_id)
    if not issue:
        return _not_found()

    data = json_body()
    try:
        lifecycle.edit_issue(issue, acting_user(), data)
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("issue %s update failed", issue_id)
        return failure("Error updating issue", e)

    return jsonify({"success": True, "message": "Issue updated successfully", "data": issue.to_dict()}), 200


@issues_bp.delete("/<int:issue_id>")
@token_required
def delete_issue(issue_id: int):
    issue = db.session.get(Issue, issue_id)
    if not issue:
        return _not_found()

    try:
        lifecycle.delete_issue(issue, acting_user())
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("issue %s delete failed", issue_id)
        return failure("Error deleting issue", e)

    current_app.logger.info("issue %s deleted", issue_id)
    return jsonify({"success": True, "message": "Issue deleted successfully", "data": {"_id": issue_id}}), 200


@issues_bp.post("/<int:issue_id>/upvote")
@token_required
def upvote_issue(issue_id: int):
    issue = db.session.get(Issue, issue_id)
    if not issue:
        return _not_found()

    try:
        lifecycle.upvote(issue, acting_user().email)
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError as e:
        # includes the unique (issue, voter) constraint losing a race
        db.session.rollback()
        current_app.logger.exception("upvote on issue %s failed", issue_id)
        return failure("Error upvoting issue", e)

    return jsonify({
        "success": True,
        "message": "Upvoted successfully",
        "data": {"_id": issue.id, "upvotes": int(issue.upvotes or 0)},
    }), 200
