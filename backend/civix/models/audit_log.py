import json
from datetime import datetime

from civix.extensions import db


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    actor_email = db.Column(db.String(255), nullable=True)
    action = db.Column(db.String(64), nullable=False)  # assign_staff | reject_issue | block_user | ...
    target_type = db.Column(db.String(32), nullable=True)
    target_ref = db.Column(db.String(255), nullable=True)
    meta = db.Column(db.Text, nullable=True)  # JSON string

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def meta_dict(self):
        raw = (self.meta or "").strip()
        if not raw:
            return {}
        try:
            d = json.loads(raw)
            return d if isinstance(d, dict) else {}
        except ValueError:
            return {}

    def to_dict(self):
        return {
            "_id": self.id,
            "actorEmail": self.actor_email,
            "action": self.action,
            "targetType": self.target_type or "",
            "targetRef": self.target_ref or "",
            "meta": self.meta_dict(),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
