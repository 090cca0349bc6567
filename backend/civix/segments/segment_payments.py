from __future__ import annotations

from datetime import datetime
from urllib.parse import urlencode

import stripe
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from civix.errors import DomainError, error_response, failure
from civix.extensions import db
from civix.models import Payment, PAYMENT_TYPES, User, WebhookEvent
from civix.services import payments as payment_service
from civix.utils.guards import acting_user, admin_required, forbidden, is_self, token_required
from civix.utils.idempotency import lookup_response, store_response
from civix.utils.payload import json_body, text_field
from civix.utils.stripe_client import (
    StripeNotConfigured,
    create_checkout_session,
    parse_webhook,
    retrieve_session,
)

payments_bp = Blueprint("payments_bp", __name__, url_prefix="/api/payments")


def _month_window(raw: str):
    try:
        month = int(raw)
    except (TypeError, ValueError):
        return None
    if month < 1 or month > 12:
        return None
    year = datetime.utcnow().year
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end


@payments_bp.post("")
@payments_bp.post("/")
@token_required
def record_payment():
    u = acting_user()
    data = json_body()

    idem = lookup_response(int(u.id), "/api/payments", data)
    if idem and idem[0] in ("hit", "conflict"):
        return jsonify(idem[1]), idem[2]
    idem_row = idem[1] if idem and idem[0] == "miss" else None

    try:
        payment = payment_service.record_payment(u, data)
        db.session.flush()
        resp = {"success": True, "message": "Payment recorded successfully", "data": payment.to_dict()}
        if idem_row is not None:
            store_response(idem_row, resp, 201)
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("recording payment failed for %s", u.email)
        return failure("Error recording payment", e)

    current_app.logger.info("payment %s (%s, %s) recorded for %s", payment.invoice_id, payment.type, payment.amount, u.email)
    return jsonify(resp), 201


@payments_bp.get("/user/<email>")
@token_required
def user_payments(email: str):
    if not is_self(email):
        return forbidden()
    rows = Payment.query.filter_by(user_email=email).order_by(Payment.created_at.desc(), Payment.id.desc()).all()
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]}), 200


@payments_bp.get("")
@payments_bp.get("/")
@admin_required
def all_payments():
    q = Payment.query
    payment_type = (request.args.get("type") or "").strip()
    if payment_type:
        q = q.filter(Payment.type == payment_service.normalize_type(payment_type))

    month = (request.args.get("month") or "").strip()
    if month:
        window = _month_window(month)
        if window is None:
            return jsonify({"success": False, "message": "month must be 1-12"}), 400
        q = q.filter(Payment.created_at >= window[0], Payment.created_at < window[1])

    rows = q.order_by(Payment.created_at.desc(), Payment.id.desc()).all()
    return jsonify({
        "success": True,
        "data": {
            "payments": [r.to_dict() for r in rows],
            "totalRevenue": payment_service.revenue(rows),
            "totalCount": len(rows),
        },
    }), 200


@payments_bp.get("/stats")
@admin_required
def payment_stats():
    rows = Payment.query.order_by(Payment.created_at.asc()).all()
    by_month = {}
    for p in rows:
        if not p.created_at:
            continue
        key = p.created_at.strftime("%b")
        by_month[key] = by_month.get(key, 0) + int(p.amount or 0)

    return jsonify({
        "success": True,
        "data": {
            "totalRevenue": payment_service.revenue(rows),
            "totalPayments": len(rows),
            "boostPayments": sum(1 for p in rows if p.type == "boost"),
            "subscriptionPayments": sum(1 for p in rows if p.type == "subscription"),
            "paymentsByMonth": by_month,
        },
    }), 200


@payments_bp.post("/create-checkout-session")
@token_required
def checkout_session():
    data = json_body()
    if not data.get("amount") or not data.get("type"):
        return jsonify({"success": False, "message": "Amount and type are required"}), 400

    u = User.query.filter_by(email=acting_user().email).first()
    if not u:
        return jsonify({"success": False, "message": "User not found"}), 404

    try:
        amount = payment_service.parse_amount(data.get("amount"))
        payment_type = payment_service.normalize_type(data.get("type"))
        if payment_type not in PAYMENT_TYPES:
            raise DomainError("type must be boost or subscription", 400)
        issue_id = payment_service.parse_issue_id(data.get("issueId")) if payment_type == "boost" else None
        payment_service.check_boost_target(u, issue_id)
    except DomainError as e:
        return error_response(e)

    client_url = (current_app.config.get("CLIENT_URL") or "").rstrip("/")
    params = {"type": payment_type}
    if issue_id is not None:
        params["issueId"] = str(issue_id)
    # {CHECKOUT_SESSION_ID} is substituted by Stripe and must stay unescaped
    success_url = f"{client_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}&{urlencode(params)}"

    try:
        session = create_checkout_session(
            email=u.email,
            name=u.name or "User",
            amount=amount,
            payment_type=payment_type,
            issue_id=str(issue_id) if issue_id is not None else "",
            success_url=success_url,
            cancel_url=f"{client_url}/payment/cancel",
        )
    except StripeNotConfigured as e:
        return failure("Payments are not configured", e, status=503)
    except stripe.StripeError as e:
        current_app.logger.exception("stripe checkout failed for %s", u.email)
        return failure("Error creating checkout session", e)

    return jsonify({"success": True, "sessionId": session.get("id"), "url": session.get("url")}), 200


def _fulfil(session: dict):
    """Record a paid session; tolerate a concurrent writer winning the race."""
    try:
        payment, created = payment_service.fulfil_checkout_session(session)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        payment = Payment.query.filter_by(transaction_id=session.get("id")).first()
        if payment is None:
            raise
        created = False
    if created:
        current_app.logger.info("checkout %s fulfilled as %s", session.get("id"), payment.invoice_id)
    return payment, created


@payments_bp.post("/verify-payment")
@token_required
def verify_payment():
    data = json_body()
    session_id = text_field(data, "sessionId")
    if not session_id:
        return jsonify({"success": False, "message": "Session ID is required"}), 400

    try:
        session = retrieve_session(session_id)
    except StripeNotConfigured as e:
        return failure("Payments are not configured", e, status=503)
    except stripe.StripeError as e:
        current_app.logger.exception("stripe session lookup failed for %s", session_id)
        return failure("Error verifying payment", e)

    if not session:
        return jsonify({"success": False, "message": "Payment session not found"}), 404
    if not payment_service.session_belongs_to(session, acting_user().email):
        return jsonify({"success": False, "message": "Unauthorized access to this payment session"}), 403
    if session.get("payment_status") != "paid":
        return jsonify({
            "success": False,
            "message": "Payment not completed",
            "paymentStatus": session.get("payment_status"),
        }), 400

    try:
        payment, created = _fulfil(session)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("verifying payment %s failed", session_id)
        return failure("Error verifying payment", e)

    message = "Payment verified and processed successfully" if created else "Payment already processed"
    return jsonify({"success": True, "message": message, "data": payment.to_dict()}), 200


@payments_bp.post("/webhook/stripe")
def stripe_webhook():
    raw = request.get_data() or b""
    try:
        event = parse_webhook(raw, request.headers.get("Stripe-Signature"))
    except StripeNotConfigured as e:
        return failure("Webhook not configured", e, status=503)
    except (stripe.SignatureVerificationError, ValueError):
        current_app.logger.warning("rejected stripe webhook with bad signature")
        return jsonify({"success": False, "message": "Invalid signature"}), 400

    event_id = (event.get("id") or "").strip()
    event_type = event.get("type") or ""
    obj = (event.get("data") or {}).get("object") or {}

    # Replay protection
    if event_id and WebhookEvent.query.filter_by(event_id=event_id).first():
        return jsonify({"success": True, "duplicate": True}), 200

    # The event row commits with the fulfilment so a failed attempt can be retried
    db.session.add(WebhookEvent(provider="stripe", event_id=event_id or f"anon:{obj.get('id')}",
                                event_type=event_type, reference=obj.get("id")))
    try:
        if event_type == "checkout.session.completed" and obj.get("payment_status") == "paid":
            _fulfil(obj)
        else:
            db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("stripe webhook %s failed", event_id)
        return failure("Error processing webhook", e)

    return jsonify({"success": True}), 200
