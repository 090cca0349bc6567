from __future__ import annotations

import json

import stripe
from flask import current_app


class StripeNotConfigured(RuntimeError):
    pass


def _configure() -> None:
    key = (current_app.config.get("STRIPE_SECRET_KEY") or "").strip()
    if not key:
        raise StripeNotConfigured("STRIPE_SECRET_KEY not set")
    stripe.api_key = key


def _as_dict(obj) -> dict:
    """Plain-dict view of a StripeObject (nested objects included)."""
    if obj is None:
        return {}
    for attr in ("to_dict_recursive", "to_dict"):
        fn = getattr(obj, attr, None)
        if callable(fn):
            return fn()
    return json.loads(json.dumps(obj, default=str))


def product_copy(payment_type: str) -> tuple[str, str]:
    if payment_type == "subscription":
        return "Premium Subscription - Civix", "Unlock unlimited issue reports and premium features"
    return "Issue Boost - Civix", "Boost your issue to high priority"


def create_checkout_session(*, email: str, name: str, amount: int, payment_type: str, issue_id: str = "",
                            success_url: str, cancel_url: str) -> dict:
    _configure()
    title, description = product_copy(payment_type)
    session = stripe.checkout.Session.create(
        payment_method_types=["card"],
        line_items=[{
            "price_data": {
                "currency": current_app.config.get("STRIPE_CURRENCY") or "bdt",
                "product_data": {"name": title, "description": description},
                # minor units (poisha for BDT)
                "unit_amount": int(amount) * 100,
            },
            "quantity": 1,
        }],
        mode="payment",
        success_url=success_url,
        cancel_url=cancel_url,
        customer_email=email,
        metadata={
            "userEmail": email,
            "userName": name,
            "type": payment_type,
            "issueId": issue_id or "",
            "amount": str(amount),
        },
    )
    return _as_dict(session)


def retrieve_session(session_id: str) -> dict:
    _configure()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError:
        return {}
    return _as_dict(session)


def parse_webhook(raw_body: bytes, signature_header: str | None) -> dict:
    """Verify ``Stripe-Signature`` and return the event as a plain dict.

    Raises ``stripe.SignatureVerificationError`` on a bad signature and
    ``StripeNotConfigured`` when no webhook secret is set.
    """
    secret = (current_app.config.get("STRIPE_WEBHOOK_SECRET") or "").strip()
    if not secret:
        raise StripeNotConfigured("STRIPE_WEBHOOK_SECRET not set")
    payload = raw_body.decode("utf-8")
    stripe.WebhookSignature.verify_header(payload, signature_header or "", secret)
    return json.loads(payload)
