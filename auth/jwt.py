"""
Session tokens identifying the signed-in user.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256, issued by the
main application's login flow.  Secret key is ``config.jwt_secret``
(env var: ``JWT_SECRET``).  This service only needs the opaque ``user_id``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Optional

from fastapi import HTTPException, status

from config.settings import config


def _sign(raw: bytes) -> str:
    return hmac.new(config.jwt_secret.encode(), raw, hashlib.sha256).hexdigest()


def create_token(user_id: str, *, expires_in: Optional[int] = None) -> str:
    """Create a signed token containing ``user_id`` and expiry."""
    ttl = config.jwt_expiry_seconds if expires_in is None else expires_in
    payload = {"user_id": user_id, "exp": int(time.time()) + ttl}
    raw = json.dumps(payload).encode()
    return urlsafe_b64encode(raw).decode() + "." + _sign(raw)


def decode_token(token: str) -> str:
    """Return the ``user_id`` inside ``token``; ``ValueError`` when invalid."""
    parts = token.split(".", 1)
    if len(parts) != 2:
        raise ValueError("bad format")
    raw = urlsafe_b64decode(parts[0].encode())
    if not hmac.compare_digest(parts[1].encode(), _sign(raw).encode()):
        raise ValueError("bad signature")
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("bad payload")
    if payload.get("exp", 0) < time.time():
        raise ValueError("token expired")
    user_id = payload.get("user_id")
    if not user_id:
        raise ValueError("no user_id")
    return str(user_id)


def verify_token(token: str) -> str:
    """
    Verify token and return ``user_id``.

    Raises ``HTTPException(401)`` on invalid or expired tokens.
    """
    try:
        return decode_token(token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid or expired token: {exc}",
        )
