"""
OAuth ``state`` tokens (CSRF protection).

A state token is ``base64(json{platform, nonce, exp}) "." hmac_sha256`` signed
with ``config.oauth_state_secret``.  The caller keeps a copy in an HTTP-only
cookie; on callback the echoed value must equal the cookie, carry a valid
signature for the same platform, be unexpired, and not have been consumed
before.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Callable, Dict, Optional

from connectors.errors import CallbackError, CallbackReason

STATE_TTL_SECONDS = 600

_MISMATCH_MESSAGE = "Invalid state parameter"


class StateSigner:
    """Issues and verifies single-use, expiring OAuth state tokens."""

    def __init__(
        self,
        secret: str,
        *,
        ttl_seconds: int = STATE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret.encode()
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # nonce -> exp; entries are dropped once they could no longer verify
        self._consumed: Dict[str, int] = {}

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._secret, raw, hashlib.sha256).hexdigest()

    def issue(self, platform: str) -> str:
        """Create a state token bound to ``platform``."""
        payload = {
            "platform": platform,
            "nonce": secrets.token_urlsafe(16),
            "exp": int(self._clock()) + self.ttl_seconds,
        }
        raw = json.dumps(payload, separators=(",", ":")).encode()
        return urlsafe_b64encode(raw).decode() + "." + self._sign(raw)

    def consume(self, platform: str, state: str, stored_state: Optional[str]) -> None:
        """
        Verify ``state`` against the cookie copy and mark it used.

        Raises ``CallbackError`` with reason ``STATE_MISMATCH`` for anything that
        is not a genuine, unused token for this platform, and ``EXPIRED`` for a
        genuine token past its lifetime.
        """
        if not stored_state or not hmac.compare_digest(
            state.encode(), stored_state.encode()
        ):
            raise CallbackError(CallbackReason.STATE_MISMATCH, _MISMATCH_MESSAGE)

        payload = self._decode(state)
        if payload is None or payload.get("platform") != platform:
            raise CallbackError(CallbackReason.STATE_MISMATCH, _MISMATCH_MESSAGE)

        now = self._clock()
        self._prune(now)
        nonce = str(payload.get("nonce", ""))
        if nonce in self._consumed:
            raise CallbackError(CallbackReason.STATE_MISMATCH, _MISMATCH_MESSAGE)

        exp = int(payload.get("exp", 0))
        if exp < now:
            raise CallbackError(
                CallbackReason.EXPIRED,
                "Authorization took too long. Please try connecting again.",
            )
        self._consumed[nonce] = exp

    def revoke(self, platform: str, state: str) -> None:
        """
        Mark a genuine ``state`` for ``platform`` as used without verifying it
        against the cookie. Callbacks rejected before verification still burn
        their state; forged or foreign tokens are ignored.
        """
        payload = self._decode(state)
        if payload is None or payload.get("platform") != platform:
            return
        self._prune(self._clock())
        self._consumed[str(payload.get("nonce", ""))] = int(payload.get("exp", 0))

    def _decode(self, state: str) -> Optional[dict]:
        try:
            encoded, sig = state.split(".", 1)
            raw = urlsafe_b64decode(encoded.encode())
            if not hmac.compare_digest(sig.encode(), self._sign(raw).encode()):
                return None
            payload = json.loads(raw)
        except ValueError:
            # covers bad format, bad base64 and bad JSON
            return None
        return payload if isinstance(payload, dict) else None

    def _prune(self, now: float) -> None:
        for nonce in [n for n, exp in self._consumed.items() if exp < now]:
            del self._consumed[nonce]
