"""Bearer-token authorization and credential checks."""

from __future__ import annotations

import hmac
from functools import wraps
from typing import Any, Dict, Iterable, Optional

from flask import g, jsonify, request
from werkzeug.security import check_password_hash

from catalogcore.tokens import InvalidToken

from .state import get_state


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def is_admin() -> bool:
    payload = g.get("token_payload") or {}
    return bool((payload.get("user") or {}).get("is_admin"))


def bearer_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Unauthorized"}), 401
        try:
            g.token_payload = get_state().signer.verify(token)
        except InvalidToken:
            return jsonify({"error": "Unauthorized"}), 401
        return fn(*args, **kwargs)

    return wrapper


def admin_required(fn):
    @bearer_required
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not is_admin():
            return jsonify({"error": "User not admin!"}), 403
        return fn(*args, **kwargs)

    return wrapper


def find_user(users: Iterable[Dict[str, Any]], email: str) -> Optional[Dict[str, Any]]:
    for user in users:
        if user.get("email") == email:
            return user
    return None


def password_matches(user: Dict[str, Any], password: str) -> bool:
    """Check ``password`` against a hashed or legacy plaintext record."""

    hashed = user.get("password_hash")
    if isinstance(hashed, str) and hashed:
        return check_password_hash(hashed, password)
    stored = user.get("password")
    if not isinstance(stored, str):
        return False
    return hmac.compare_digest(stored.encode("utf-8"), password.encode("utf-8"))
