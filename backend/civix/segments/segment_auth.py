from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify
from flask_login import current_user
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from civix.errors import failure
from civix.extensions import db
from civix.models import User
from civix.utils.guards import acting_user, forbidden, is_self, token_required
from civix.utils.jwt_utils import create_access_token
from civix.utils.payload import json_body, password_field, text_field

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/auth")

# Fields a user may change on their own profile
PROFILE_FIELDS = {"name": "name", "photoURL": "photo_url", "phone": "phone"}


def _credentials():
    data = json_body()
    email = text_field(data, "email").lower()
    password = password_field(data)
    return email, password


def _issue_token():
    email, password = _credentials()
    if not email or not password:
        return None, (jsonify({"success": False, "message": "Email and password are required"}), 400)

    u = User.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return None, (jsonify({"success": False, "message": "Invalid credentials"}), 401)
    return u, None


@auth_bp.post("/jwt")
def issue_jwt():
    u, err = _issue_token()
    if err:
        return err
    return jsonify({"success": True, "token": create_access_token(u.id, u.email)}), 200


@auth_bp.post("/login")
def login():
    u, err = _issue_token()
    if err:
        return err
    return jsonify({"success": True, "token": create_access_token(u.id, u.email), "data": u.to_dict()}), 200


@auth_bp.post("/register")
def register():
    data = json_body()
    name = text_field(data, "name")
    email = text_field(data, "email").lower()
    password = password_field(data)
    photo_url = text_field(data, "photoURL")

    # Role is never taken from the request: staff are created by admins,
    # admins through the create-admin CLI.
    if not name:
        return jsonify({"success": False, "message": "name is required"}), 400
    if not email or "@" not in email:
        return jsonify({"success": False, "message": "valid email is required"}), 400
    if len(password) < 6:
        return jsonify({"success": False, "message": "password must be at least 6 characters"}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({"success": False, "message": "User already exists"}), 400

    now = datetime.utcnow()
    u = User(
        name=name,
        email=email,
        photo_url=photo_url or current_app.config["DEFAULT_AVATAR_URL"],
        role="citizen",
        is_premium=False,
        is_blocked=False,
        issue_count=0,
        created_at=now,
        updated_at=now,
    )
    u.set_password(password)

    try:
        db.session.add(u)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "message": "User already exists"}), 400
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("registration failed for %s", email)
        return failure("Registration failed", e)

    current_app.logger.info("registered citizen %s", email)
    return jsonify({
        "success": True,
        "message": "User registered successfully",
        "data": u.to_dict(),
        "token": create_access_token(u.id, u.email),
    }), 201


@auth_bp.get("/me")
@token_required
def me():
    return jsonify({"success": True, "data": current_user.to_dict()}), 200


@auth_bp.get("/users/<email>")
@token_required
def get_user(email: str):
    if not is_self(email):
        return forbidden()
    u = User.query.filter_by(email=email).first()
    if not u:
        return jsonify({"success": False, "message": "User not found"}), 404
    return jsonify({"success": True, "data": u.to_dict()}), 200


@auth_bp.patch("/users/<email>")
@token_required
def update_profile(email: str):
    if not is_self(email):
        return forbidden()

    data = json_body()
    u = acting_user()
    # role, isPremium, isBlocked, email and password never change through here
    for key, attr in PROFILE_FIELDS.items():
        if key in data:
            value = data.get(key)
            setattr(u, attr, value.strip() if isinstance(value, str) else value)
    if not (u.name or "").strip():
        db.session.rollback()
        return jsonify({"success": False, "message": "name is required"}), 400
    u.touch()

    try:
        db.session.add(u)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("profile update failed for %s", email)
        return failure("Error updating profile", e)

    return jsonify({"success": True, "message": "Profile updated successfully", "data": u.to_dict()}), 200
