from datetime import datetime

from sqlalchemy import case

from civix.extensions import db
from civix.models.user import _iso


class Issue(db.Model):
    __tablename__ = "issues"

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(80), nullable=True, index=True)
    location = db.Column(db.String(255), nullable=True)
    image_url = db.Column(db.String(500), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    user_email = db.Column(db.String(255), nullable=False, index=True)
    user_name = db.Column(db.String(120), nullable=True)
    user_photo = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(24), nullable=False, default="pending", index=True)
    priority = db.Column(db.String(16), nullable=False, default="normal", index=True)  # low|normal|high
    upvotes = db.Column(db.Integer, nullable=False, default=0)

    # Snapshot of the assignee at assignment time
    assigned_staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    assigned_staff_email = db.Column(db.String(255), nullable=True, index=True)
    assigned_staff_name = db.Column(db.String(120), nullable=True)
    assigned_staff_photo = db.Column(db.String(500), nullable=True)

    boosted_at = db.Column(db.DateTime, nullable=True, index=True)
    rejected_reason = db.Column(db.Text, nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    timeline = db.relationship(
        "IssueTimelineEntry",
        order_by="IssueTimelineEntry.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    votes = db.relationship("IssueUpvote", cascade="all, delete-orphan", lazy="selectin")

    def assigned_staff(self):
        if not self.assigned_staff_email:
            return None
        return {
            "email": self.assigned_staff_email,
            "name": self.assigned_staff_name,
            "photoURL": self.assigned_staff_photo,
        }

    def to_dict(self) -> dict:
        return {
            "_id": self.id,
            "title": self.title,
            "description": self.description or "",
            "category": self.category or "",
            "location": self.location or "",
            "imageURL": self.image_url,
            "userEmail": self.user_email,
            "userName": self.user_name,
            "userPhoto": self.user_photo,
            "status": self.status,
            "priority": self.priority,
            "upvotes": int(self.upvotes or 0),
            "upvotedBy": [v.user_email for v in self.votes],
            "assignedStaff": self.assigned_staff(),
            "boostedAt": _iso(self.boosted_at),
            "rejectedReason": self.rejected_reason,
            "rejectedAt": _iso(self.rejected_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "timeline": [t.to_dict() for t in self.timeline],
        }


class IssueTimelineEntry(db.Model):
    __tablename__ = "issue_timeline"

    id = db.Column(db.Integer, primary_key=True)
    issue_id = db.Column(db.Integer, db.ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True)

    status = db.Column(db.String(24), nullable=False)
    message = db.Column(db.Text, nullable=False)
    updated_by = db.Column(db.String(255), nullable=False)
    updated_by_role = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "message": self.message,
            "updatedBy": self.updated_by,
            "updatedByRole": self.updated_by_role,
            "date": _iso(self.created_at),
        }


class IssueUpvote(db.Model):
    __tablename__ = "issue_upvotes"
    __table_args__ = (db.UniqueConstraint("issue_id", "user_email", name="uq_issue_upvote"),)

    id = db.Column(db.Integer, primary_key=True)
    issue_id = db.Column(db.Integer, db.ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True)
    user_email = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)


# high=3, normal=2, low=1, anything else sorts with normal
PRIORITY_ORDER = case(
    (Issue.priority == "high", 3),
    (Issue.priority == "normal", 2),
    (Issue.priority == "low", 1),
    else_=2,
)
