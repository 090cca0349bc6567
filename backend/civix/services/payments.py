from __future__ import annotations

import time
from datetime import datetime

from flask import current_app

from civix.errors import DomainError
from civix.extensions import db
from civix.models import Issue, Payment, PAYMENT_TYPES, PAYMENT_TYPES_ALIASES, User
from civix.services.issue_lifecycle import boost_issue
from civix.utils.notify import create_notification


def normalize_type(raw) -> str:
    value = (str(raw or "")).strip().lower()
    return PAYMENT_TYPES_ALIASES.get(value, value)


def parse_amount(raw) -> int:
    try:
        amount = int(round(float(raw)))
    except (TypeError, ValueError, OverflowError):
        raise DomainError("amount must be a positive number", 400)
    if amount <= 0:
        raise DomainError("amount must be a positive number", 400)
    return amount


def parse_issue_id(raw):
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise DomainError("Issue not found", 404)


def new_invoice_id() -> str:
    return f"INV-{int(time.time() * 1000)}"


def check_boost_target(user: User, issue_id: int | None) -> Issue | None:
    if issue_id is None:
        return None
    issue = db.session.get(Issue, issue_id)
    if issue is None:
        raise DomainError("Issue not found", 404)
    if issue.user_email != user.email:
        raise DomainError("You can only boost your own issues", 403)
    return issue


def apply_effects(payment: Payment, user: User | None) -> None:
    """Boost the issue or upgrade the payer, depending on payment type."""
    if payment.type == "boost" and payment.issue_id is not None:
        issue = db.session.get(Issue, payment.issue_id)
        if issue is None:
            current_app.logger.warning("boost payment %s references missing issue %s", payment.invoice_id, payment.issue_id)
        else:
            boost_issue(issue, payment.user_email)

    if payment.type == "subscription" and user is not None:
        now = datetime.utcnow()
        user.is_premium = True
        user.premium_since = now
        user.updated_at = now
        db.session.add(user)

    create_notification(
        payment.user_email,
        title="Payment received",
        message=f"Your {payment.type} payment of {payment.amount} was recorded (invoice {payment.invoice_id}).",
        type="success",
        link="/dashboard/payments",
    )


def record_payment(user: User, data: dict) -> Payment:
    """Client-reported payment (``POST /api/payments``)."""
    payment_type = normalize_type(data.get("type"))
    if payment_type not in PAYMENT_TYPES:
        raise DomainError("type must be boost or subscription", 400)
    amount = parse_amount(data.get("amount"))

    issue_id = parse_issue_id(data.get("issueId")) if payment_type == "boost" else None
    check_boost_target(user, issue_id)

    transaction_id = (str(data.get("transactionId") or "")).strip() or None
    if transaction_id and Payment.query.filter_by(transaction_id=transaction_id).first():
        raise DomainError("Payment already recorded", 409)

    payment = Payment(
        user_id=user.id,
        user_email=user.email,
        user_name=user.name,
        amount=amount,
        type=payment_type,
        issue_id=issue_id,
        transaction_id=transaction_id,
        method=str(data.get("method") or "stripe"),
        status="completed",
        invoice_id=new_invoice_id(),
        created_at=datetime.utcnow(),
    )
    db.session.add(payment)
    apply_effects(payment, user)
    return payment


def session_belongs_to(session: dict, email: str) -> bool:
    metadata = session.get("metadata") or {}
    return session.get("customer_email") == email or metadata.get("userEmail") == email


def fulfil_checkout_session(session: dict) -> tuple[Payment, bool]:
    """Record a paid Checkout session once. Returns (payment, created)."""
    session_id = session.get("id")
    existing = Payment.query.filter_by(transaction_id=session_id).first()
    if existing:
        return existing, False

    metadata = session.get("metadata") or {}
    email = metadata.get("userEmail") or session.get("customer_email")
    user = User.query.filter_by(email=email).first() if email else None
    payment_type = normalize_type(metadata.get("type"))
    try:
        amount = int(metadata.get("amount") or 0)
    except (TypeError, ValueError):
        amount = int((session.get("amount_total") or 0) // 100)

    issue_id = None
    if payment_type == "boost":
        try:
            issue_id = int(metadata.get("issueId")) if metadata.get("issueId") else None
        except (TypeError, ValueError):
            issue_id = None

    payment = Payment(
        user_id=user.id if user else None,
        user_email=email,
        user_name=(user.name if user else None) or metadata.get("userName"),
        amount=amount,
        type=payment_type,
        issue_id=issue_id,
        transaction_id=session_id,
        method="stripe",
        status="completed",
        invoice_id=new_invoice_id(),
        created_at=datetime.utcnow(),
    )
    db.session.add(payment)
    apply_effects(payment, user)
    return payment, True


def revenue(payments) -> int:
    return sum(int(p.amount or 0) for p in payments)
