from datetime import datetime

from civix.extensions import db
from civix.models.user import _iso

PAYMENT_TYPES = ("boost", "subscription")
PAYMENT_TYPES_ALIASES = {"premium_subscription": "subscription"}


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    user_email = db.Column(db.String(255), nullable=False, index=True)
    user_name = db.Column(db.String(120), nullable=True)

    amount = db.Column(db.Integer, nullable=False, default=0)  # major currency units
    type = db.Column(db.String(24), nullable=False, index=True)  # boost | subscription
    issue_id = db.Column(db.Integer, nullable=True)

    transaction_id = db.Column(db.String(255), nullable=True, unique=True)
    method = db.Column(db.String(32), nullable=False, default="stripe")
    status = db.Column(db.String(24), nullable=False, default="completed")
    invoice_id = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "_id": self.id,
            "userEmail": self.user_email,
            "userName": self.user_name,
            "amount": int(self.amount or 0),
            "type": self.type,
            "issueId": self.issue_id,
            "transactionId": self.transaction_id,
            "method": self.method,
            "status": self.status,
            "invoiceId": self.invoice_id,
            "createdAt": _iso(self.created_at),
        }
