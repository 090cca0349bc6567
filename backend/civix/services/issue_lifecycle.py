"""Issue state machine and the per-role rules that drive it.

Functions here mutate ORM rows and stage them on the session; callers own the
commit. Rule violations raise :class:`civix.errors.DomainError`.
"""
from __future__ import annotations

from datetime import datetime

from civix.errors import DomainError
from civix.extensions import db
from civix.models import Issue, IssueTimelineEntry, IssueUpvote, User
from civix.utils.notify import create_notification

STATUSES = ("pending", "in-progress", "working", "resolved", "closed", "rejected")
PRIORITIES = ("low", "normal", "high")

# Staff-driven transitions. closed and rejected are terminal.
VALID_TRANSITIONS = {
    "pending": ("in-progress",),
    "in-progress": ("working", "resolved"),
    "working": ("resolved",),
    "resolved": ("closed",),
}

EDITABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "category": "category",
    "location": "location",
    "imageURL": "image_url",
    "image": "image_url",
}


def can_transition(current: str, target: str) -> bool:
    return target in VALID_TRANSITIONS.get(current, ())


def append_timeline(issue: Issue, status: str, message: str, actor_email: str, actor_role: str) -> IssueTimelineEntry:
    entry = IssueTimelineEntry(
        status=status,
        message=message,
        updated_by=actor_email,
        updated_by_role=actor_role,
        created_at=datetime.utcnow(),
    )
    issue.timeline.append(entry)
    return entry


def _apply_fields(issue: Issue, data: dict) -> None:
    for key, attr in EDITABLE_FIELDS.items():
        if key not in data:
            continue
        value = data.get(key)
        if value is not None:
            value = str(value).strip()
        setattr(issue, attr, value)


def create_issue(user: User, data: dict, free_limit: int) -> Issue:
    if user.is_blocked:
        raise DomainError("Your account is blocked. Contact authorities.", 403)
    if not user.is_premium and int(user.issue_count or 0) >= int(free_limit):
        raise DomainError(
            f"Free users can only report {free_limit} issues. Upgrade to premium for unlimited.",
            403,
            needsPremium=True,
        )

    title = str(data.get("title") or "").strip()
    if not title:
        raise DomainError("title is required", 400)

    now = datetime.utcnow()
    issue = Issue(
        user_id=user.id,
        user_email=user.email,
        user_name=user.name,
        user_photo=user.photo_url,
        status="pending",
        priority="normal",
        upvotes=0,
        created_at=now,
        updated_at=now,
    )
    _apply_fields(issue, data)
    issue.title = title
    append_timeline(issue, "pending", f"Issue reported by {user.name}", user.email, "citizen")

    user.issue_count = int(user.issue_count or 0) + 1
    db.session.add(issue)
    db.session.add(user)
    return issue


def edit_issue(issue: Issue, user: User, data: dict) -> Issue:
    if issue.user_email != user.email:
        raise DomainError("You can only edit your own issues", 403)
    if issue.status != "pending":
        raise DomainError("Can only edit pending issues", 400)

    # status, priority, ownership, votes and assignment are never client-editable
    _apply_fields(issue, data)
    if not (issue.title or "").strip():
        raise DomainError("title is required", 400)

    issue.updated_at = datetime.utcnow()
    append_timeline(issue, issue.status, f"Issue updated by {user.name or user.email}", user.email, "citizen")
    db.session.add(issue)
    return issue


def delete_issue(issue: Issue, user: User) -> None:
    if issue.user_email != user.email:
        raise DomainError("You can only delete your own issues", 403)

    reporter = User.query.filter_by(email=issue.user_email).first()
    if reporter is not None:
        reporter.issue_count = max(0, int(reporter.issue_count or 0) - 1)
        db.session.add(reporter)
    db.session.delete(issue)


def upvote(issue: Issue, voter_email: str) -> Issue:
    if any(v.user_email == voter_email for v in issue.votes):
        raise DomainError("You already upvoted this issue", 400)
    if issue.user_email == voter_email:
        raise DomainError("You cannot upvote your own issue", 403)

    issue.votes.append(IssueUpvote(user_email=voter_email))
    issue.upvotes = int(issue.upvotes or 0) + 1
    db.session.add(issue)
    return issue


def change_status(issue: Issue, staff: User, status: str, message: str | None = None) -> Issue:
    if issue.assigned_staff_email != staff.email:
        raise DomainError("You can only update issues assigned to you", 403)
    status = str(status or "").strip()
    if not can_transition(issue.status, status):
        raise DomainError(f"Cannot change status from {issue.status} to {status}", 400)

    issue.status = status
    issue.updated_at = datetime.utcnow()
    append_timeline(issue, status, message or f"Status changed to {status}", staff.email, "staff")
    db.session.add(issue)

    if status == "resolved":
        staff.resolved_issues_count = int(staff.resolved_issues_count or 0) + 1
        db.session.add(staff)

    create_notification(
        issue.user_email,
        title="Issue status updated",
        message=f'Your issue "{issue.title}" is now {status}.',
        type="success" if status in ("resolved", "closed") else "info",
        link=f"/issues/{issue.id}",
    )
    return issue


def assign_staff(issue: Issue, admin_email: str, staff: User | None) -> Issue:
    if issue.assigned_staff_email:
        raise DomainError("Issue already assigned to staff", 400)
    if staff is None or staff.role != "staff":
        raise DomainError("Staff member not found", 404)

    issue.assigned_staff_id = staff.id
    issue.assigned_staff_email = staff.email
    issue.assigned_staff_name = staff.name
    issue.assigned_staff_photo = staff.photo_url
    issue.updated_at = datetime.utcnow()
    # "assigned" is a timeline marker only; the issue status does not move
    append_timeline(issue, "assigned", f"Issue assigned to staff: {staff.name}", admin_email, "admin")
    db.session.add(issue)

    staff.assigned_issues_count = int(staff.assigned_issues_count or 0) + 1
    db.session.add(staff)

    create_notification(
        staff.email,
        title="New issue assigned",
        message=f'You have been assigned "{issue.title}".',
        link=f"/issues/{issue.id}",
    )
    create_notification(
        issue.user_email,
        title="Issue assigned",
        message=f'Your issue "{issue.title}" was assigned to {staff.name}.',
        link=f"/issues/{issue.id}",
    )
    return issue


def reject_issue(issue: Issue, admin_email: str, reason: str | None) -> Issue:
    if issue.status != "pending":
        raise DomainError("Can only reject pending issues", 400)

    now = datetime.utcnow()
    issue.status = "rejected"
    issue.rejected_reason = reason
    issue.rejected_at = now
    issue.updated_at = now
    append_timeline(
        issue,
        "rejected",
        f"Issue rejected by admin. Reason: {reason or 'No reason provided'}",
        admin_email,
        "admin",
    )
    db.session.add(issue)

    create_notification(
        issue.user_email,
        title="Issue rejected",
        message=f'Your issue "{issue.title}" was rejected. Reason: {reason or "No reason provided"}',
        type="error",
        link=f"/issues/{issue.id}",
    )
    return issue


def boost_issue(issue: Issue, actor_email: str) -> Issue:
    now = datetime.utcnow()
    issue.priority = "high"
    issue.boosted_at = now
    issue.updated_at = now
    append_timeline(issue, "boosted", "Issue priority boosted to high", actor_email, "citizen")
    db.session.add(issue)
    return issue
