from __future__ import annotations

import hashlib
import json
from typing import Any

from flask import request

from civix.extensions import db
from civix.models import IdempotencyKey


def _hash_request(payload: Any) -> str:
    raw = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def get_idempotency_key() -> str | None:
    # Common header pattern
    k = request.headers.get("Idempotency-Key") or request.headers.get("X-Idempotency-Key")
    if not k or not k.strip():
        return None
    return k.strip()[:128]


def lookup_response(user_id: int, route: str, payload: Any):
    """Returns None (no key sent), ("hit", body, status), ("conflict", body, 409) or ("miss", row, 0).

    A "miss" row is staged on the session; it is persisted together with the
    handler's own commit once :func:`store_response` fills it in.
    """
    k = get_idempotency_key()
    if not k:
        return None

    rh = _hash_request(payload)
    row = IdempotencyKey.query.filter_by(user_id=int(user_id), key=k).first()
    if row:
        # If same key but different payload, treat as conflict
        if row.request_hash != rh or row.route != route:
            return ("conflict", {"success": False, "message": "Idempotency key reuse with different payload"}, 409)
        try:
            return ("hit", json.loads(row.response_json or "{}"), int(row.status_code or 200))
        except ValueError:
            return ("hit", {"success": True}, int(row.status_code or 200))

    row = IdempotencyKey(key=k, user_id=int(user_id), route=route, request_hash=rh)
    return ("miss", row, 0)


def store_response(row: IdempotencyKey, response_json: Any, status_code: int) -> None:
    row.response_json = json.dumps(response_json, default=str)
    row.status_code = int(status_code)
    db.session.add(row)
