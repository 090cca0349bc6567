from __future__ import annotations

from flask import current_app, jsonify


class DomainError(Exception):
    """A business-rule violation that maps directly onto an HTTP answer.

    Services raise it; route handlers turn it into the JSON envelope via
    :func:`error_response`. Extra keyword arguments are merged into the body
    (e.g. ``needsPremium=True`` for the free quota).
    """

    def __init__(self, message: str, status: int = 400, **extra):
        super().__init__(message)
        self.message = message
        self.status = int(status)
        self.extra = extra

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        body.update(self.extra)
        return body


def is_dev() -> bool:
    return (current_app.config.get("ENV") or "").lower() in ("dev", "development")


def error_response(err: DomainError):
    return jsonify(err.to_dict()), err.status


def failure(message: str, exc: Exception | None = None, status: int = 500):
    """500-style answer; the exception text is only exposed in dev."""
    body = {"success": False, "message": message}
    if exc is not None and is_dev():
        body["error"] = str(exc)
    return jsonify(body), status
