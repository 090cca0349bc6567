from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from civix.extensions import db

ROLES = ("citizen", "staff", "admin")


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False, default="")
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    photo_url = db.Column(db.String(500), nullable=True)

    password_hash = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(16), nullable=False, default="citizen", index=True)  # citizen|staff|admin

    is_premium = db.Column(db.Boolean, nullable=False, default=False)
    premium_since = db.Column(db.DateTime, nullable=True)
    is_blocked = db.Column(db.Boolean, nullable=False, default=False)

    # Denormalised counters, kept in step by the issue/staff handlers
    issue_count = db.Column(db.Integer, nullable=False, default=0)
    assigned_issues_count = db.Column(db.Integer, nullable=False, default=0)
    resolved_issues_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def set_password(self, raw_password: str) -> None:
        self.password_hash = generate_password_hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, raw_password)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def to_dict(self) -> dict:
        out = {
            "_id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "photoURL": self.photo_url,
            "role": self.role or "citizen",
            "isPremium": bool(self.is_premium),
            "premiumSince": _iso(self.premium_since),
            "isBlocked": bool(self.is_blocked),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if self.role == "staff":
            out["assignedIssuesCount"] = int(self.assigned_issues_count or 0)
            out["resolvedIssuesCount"] = int(self.resolved_issues_count or 0)
        else:
            out["issueCount"] = int(self.issue_count or 0)
        return out
