# sheetkeeper/security.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from flask import current_app, request
from flask_login import current_user
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from .errors import Unauthorized

DEFAULT_TTL = 60 * 60 * 8  # 8 hours


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, passed explicitly into the services."""
    username: str
    is_admin: bool = False

    @classmethod
    def from_account(cls, account) -> "Principal":
        return cls(username=account.username, is_admin=bool(account.is_admin))


def _serializer() -> URLSafeTimedSerializer:
    secret = current_app.config.get("SECRET_KEY")
    if not secret:
        raise RuntimeError("SECRET_KEY must be configured to issue tokens.")
    return URLSafeTimedSerializer(secret_key=secret, salt="sheetkeeper-auth-v1")


def _ttl() -> int:
    return int(current_app.config.get("TOKEN_TTL") or DEFAULT_TTL)


def issue_token(account) -> str:
    """Create a signed bearer token. Store only minimal data."""
    payload = {
        "sub": account.username,
        "adm": bool(account.is_admin),
        "iat": int(time.time()),
        "typ": "access",
    }
    return _serializer().dumps(payload)


def verify_token(token: str) -> dict:
    try:
        data = _serializer().loads(token, max_age=_ttl())
    except SignatureExpired:
        raise Unauthorized("E_TOKEN_EXPIRED", "Token expired.")
    except BadSignature:
        raise Unauthorized("E_TOKEN_INVALID", "Invalid token.")
    if data.get("typ") != "access" or not data.get("sub"):
        raise Unauthorized("E_TOKEN_INVALID", "Wrong token type.")
    return data


def extract_token() -> Optional[str]:
    # Priority: Authorization: Bearer, then X-Auth-Token
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return request.headers.get("X-Auth-Token")


def current_principal() -> Principal:
    """Principal for the logged-in account; the request layer's only use of current_user."""
    if not current_user or not getattr(current_user, "is_authenticated", False):
        raise Unauthorized("E_UNAUTHENTICATED", "Authentication required.")
    return Principal.from_account(current_user)
