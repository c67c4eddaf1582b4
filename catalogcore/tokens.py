"""Signed bearer tokens embedding the authenticated user record."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from itsdangerous import BadData, URLSafeTimedSerializer

TOKEN_SALT = "catalog-bearer-token"
SECRET_FIELDS = ("password", "password_hash")


class InvalidToken(Exception):
    """Raised when a bearer token cannot be trusted."""


class TokenSigner:
    """Issue and verify long-lived tokens of the form ``{"user": {...}}``."""

    def __init__(self, secret_key: str, max_age: int) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        self.max_age = max_age

    def issue(self, user: Mapping[str, Any]) -> str:
        record = {k: v for k, v in user.items() if k not in SECRET_FIELDS}
        return self._serializer.dumps({"user": record})

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            payload = self._serializer.loads(token, max_age=self.max_age)
        except BadData as exc:
            raise InvalidToken(str(exc)) from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("user"), dict):
            raise InvalidToken("Token payload is malformed")
        return payload
