"""Role guards layered on top of Flask-Login's ``login_required``.

``token_required`` only proves the bearer token resolves to a user. The other
guards re-check the stored user on every request so that a role change or a
block takes effect without waiting for the token to expire.
"""
from __future__ import annotations

from functools import wraps

from flask import jsonify
from flask_login import current_user, login_required

token_required = login_required


def _role(u) -> str:
    if not u or not getattr(u, "is_authenticated", False):
        return "guest"
    return (getattr(u, "role", None) or "citizen").strip().lower()


def is_admin(u) -> bool:
    return _role(u) == "admin"


def is_staff(u) -> bool:
    return _role(u) in ("staff", "admin")


def admin_required(fn):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if not is_admin(current_user):
            return jsonify({"success": False, "message": "Forbidden: Admin access required"}), 403
        return fn(*args, **kwargs)

    return wrapper


def staff_required(fn):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if not is_staff(current_user):
            return jsonify({"success": False, "message": "Forbidden: Staff access required"}), 403
        return fn(*args, **kwargs)

    return wrapper


def citizen_required(fn):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if getattr(current_user, "is_blocked", False):
            return jsonify({
                "success": False,
                "message": "Your account has been blocked. Please contact authorities.",
            }), 403
        return fn(*args, **kwargs)

    return wrapper


def is_self(email: str | None) -> bool:
    return bool(email) and email == getattr(current_user, "email", None)


def forbidden(message: str = "Forbidden access"):
    return jsonify({"success": False, "message": message}), 403


def acting_user():
    """The real ``User`` row behind ``current_user`` (safe to hand to the session)."""
    return current_user._get_current_object()
