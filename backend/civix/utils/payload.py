from __future__ import annotations

from flask import request


def json_body() -> dict:
    """The request's JSON object, or ``{}`` for a missing, malformed or non-object body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def text_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def password_field(data: dict, key: str = "password") -> str:
    # Passwords are hashed exactly as sent; non-strings count as missing.
    value = data.get(key)
    return value if isinstance(value, str) else ""
