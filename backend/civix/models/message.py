from datetime import datetime

from civix.extensions import db
from civix.models.user import _iso


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)

    recipient_email = db.Column(db.String(255), nullable=False, index=True)
    sender_email = db.Column(db.String(255), nullable=False, default="system")
    sender_name = db.Column(db.String(120), nullable=False, default="System")

    subject = db.Column(db.String(200), nullable=False, default="New Message")
    body = db.Column(db.Text, nullable=False)

    read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    read_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    replies = db.relationship(
        "MessageReply",
        order_by="MessageReply.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self):
        return {
            "_id": self.id,
            "recipientEmail": self.recipient_email,
            "senderEmail": self.sender_email,
            "senderName": self.sender_name,
            "subject": self.subject,
            "message": self.body,
            "read": bool(self.read),
            "replies": [r.to_dict() for r in self.replies],
            "createdAt": _iso(self.created_at),
            "readAt": _iso(self.read_at),
            "updatedAt": _iso(self.updated_at),
        }


class MessageReply(db.Model):
    __tablename__ = "message_replies"

    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(db.Integer, db.ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)

    body = db.Column(db.Text, nullable=False)
    sender_email = db.Column(db.String(255), nullable=False)
    sender_name = db.Column(db.String(120), nullable=False, default="User")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "message": self.body,
            "senderName": self.sender_name,
            "senderEmail": self.sender_email,
            "createdAt": _iso(self.created_at),
        }
