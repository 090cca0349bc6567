from datetime import datetime

from civix.extensions import db
from civix.models.user import _iso


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_email = db.Column(db.String(255), nullable=False, index=True)

    title = db.Column(db.String(160), nullable=False, default="")
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(16), nullable=False, default="info")  # info | success | error
    link = db.Column(db.String(500), nullable=True)

    read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    read_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            "_id": self.id,
            "userEmail": self.user_email,
            "title": self.title or "",
            "message": self.message or "",
            "type": self.type or "info",
            "link": self.link,
            "read": bool(self.read),
            "createdAt": _iso(self.created_at),
            "readAt": _iso(self.read_at),
        }
