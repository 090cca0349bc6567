from datetime import datetime

from civix.extensions import db


class IdempotencyKey(db.Model):
    __tablename__ = "idempotency_keys"
    __table_args__ = (db.UniqueConstraint("user_id", "key", name="uq_idempotency_user_key"),)

    id = db.Column(db.Integer, primary_key=True)

    # Keys are scoped per user so two clients cannot collide on the same value
    key = db.Column(db.String(128), nullable=False)
    user_id = db.Column(db.Integer, nullable=False)
    route = db.Column(db.String(128), nullable=False, default="")
    request_hash = db.Column(db.String(64), nullable=False, default="")

    response_json = db.Column(db.Text, nullable=True)
    status_code = db.Column(db.Integer, nullable=False, default=200)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
