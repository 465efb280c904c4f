"""
Connector error taxonomy.

Every failure the connection lifecycle can surface is a ``ConnectorError``
carrying a machine-readable ``code`` (used in redirect query strings and JSON
bodies) and the HTTP ``status_code`` the edge should translate it to.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class CallbackReason(str, Enum):
    REMOTE_ERROR = "remote_error"
    MISSING_PARAMS = "missing_parameters"
    STATE_MISMATCH = "invalid_state"
    EXPIRED = "expired"
    CONNECTION_FAILED = "connection_failed"


class ConnectorError(Exception):
    """Base class for all connection lifecycle failures."""

    code: str = "connector_error"
    status_code: int = 500

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class UnsupportedPlatform(ConnectorError):
    code = "unsupported_platform"
    status_code = 400

    def __init__(self, platform: str, message: Optional[str] = None):
        super().__init__(message or f"Unsupported platform: {platform}")
        self.platform = platform


class CallbackError(ConnectorError):
    """OAuth callback rejected; ``reason`` tells the UI which remediation to show."""

    status_code = 400

    def __init__(self, reason: CallbackReason, message: str):
        super().__init__(message, code=reason.value)
        self.reason = reason


class TokenExchangeError(ConnectorError):
    """Code exchange or refresh failed at the provider."""

    code = "token_exchange_failed"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.body = body


class ProfileFetchError(ConnectorError):
    code = "profile_fetch_failed"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.body = body


class NoPagesFoundError(ProfileFetchError):
    code = "no_pages_found"


class NoLinkedInstagramAccountError(ProfileFetchError):
    code = "no_linked_instagram_account"


class RefreshNotSupported(ConnectorError):
    code = "refresh_not_supported"
    status_code = 409

    def __init__(self, platform: str):
        super().__init__(f"Token refresh not implemented for {platform}")
        self.platform = platform


class RefreshTokenMissing(ConnectorError):
    code = "refresh_token_missing"
    status_code = 409

    def __init__(self, platform: str):
        super().__init__(
            f"Token expired and no refresh token available for {platform}"
        )
        self.platform = platform


class NotFoundError(ConnectorError):
    code = "not_found"
    status_code = 404


# ── Crypto boundary ─────────────────────────────────────────────────────


class EncryptionError(ConnectorError):
    code = "encryption_error"


class MissingKeyError(EncryptionError):
    code = "missing_encryption_key"


class InvalidKeyError(EncryptionError):
    code = "invalid_encryption_key"


class DecryptionError(EncryptionError):
    code = "decryption_failed"
