"""
BaseConnector — abstract interface for all social platform OAuth2 connectors.

Every platform (Facebook, Reddit, LinkedIn, …) subclasses this and implements
the same capability set: authorization URL, code exchange, refresh and
profile fetch.  Platform quirks stay inside the subclass so the lifecycle
manager never branches on a platform name.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

import httpx

from connectors.errors import (
    ProfileFetchError,
    RefreshNotSupported,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)


class Platform(str, Enum):
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    REDDIT = "reddit"
    LINKEDIN = "linkedin"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"
    PINTEREST = "pinterest"
    THREADS = "threads"
    BLUESKY = "bluesky"

    @classmethod
    def parse(cls, value: str) -> Optional["Platform"]:
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class ProviderConfig:
    """Static OAuth client settings for one platform."""

    name: str
    client_id: str
    client_secret: str
    authorization_url: str
    token_url: str
    redirect_uri: str
    scopes: Tuple[str, ...] = ()

    @property
    def is_configured(self) -> bool:
        return bool(
            self.client_id
            and self.client_secret
            and self.authorization_url
            and self.token_url
        )


@dataclass(frozen=True)
class OAuthTokens:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> "OAuthTokens":
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or None,
            expires_in=int(expires_in) if expires_in else None,
            token_type=data.get("token_type"),
        )


@dataclass(frozen=True)
class NormalizedProfile:
    id: str
    username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    profile_image: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class BaseConnector(ABC):
    """Abstract base for all platform connectors."""

    supports_refresh: bool = False

    def __init__(
        self,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 15.0,
    ):
        self._transport = transport
        self._timeout = timeout

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def platform(self) -> str:
        """Unique slug: 'facebook', 'reddit', …"""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    def build_authorization_url(self, config: ProviderConfig, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        config : ProviderConfig
            Client settings for this platform.
        state : str
            Anti-forgery token echoed back on the callback.
        """
        params = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(config.scopes),
            "state": state,
        }
        separator = "&" if "?" in config.authorization_url else "?"
        return f"{config.authorization_url}{separator}{urlencode(params)}"

    async def exchange_code(self, config: ProviderConfig, code: str) -> OAuthTokens:
        """Exchange the authorization code, client credentials in the form body."""
        return await self._post_token(
            config.token_url,
            data={
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": config.redirect_uri,
            },
        )

    async def refresh(self, config: ProviderConfig, refresh_token: str) -> OAuthTokens:
        """Exchange a refresh token for fresh tokens."""
        raise RefreshNotSupported(self.platform)

    @abstractmethod
    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        """Fetch the remote account and map it to a ``NormalizedProfile``."""
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def _post_token(
        self,
        url: str,
        *,
        data: Dict[str, str],
        auth: Optional[Tuple[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> OAuthTokens:
        """POST a form-encoded token request and parse the token response."""
        try:
            async with self._client() as client:
                resp = await client.post(url, data=data, auth=auth, headers=headers)
        except httpx.HTTPError as exc:
            raise TokenExchangeError(
                f"{self.display_name} token request failed: {exc}"
            ) from exc
        return self._parse_token_response(resp)

    def _parse_token_response(self, resp: httpx.Response) -> OAuthTokens:
        if not resp.is_success:
            logger.warning(
                "%s token endpoint returned %s", self.platform, resp.status_code
            )
            raise TokenExchangeError(
                f"Token exchange failed: {resp.text}",
                status=resp.status_code,
                body=resp.text,
            )
        try:
            return OAuthTokens.from_response(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise TokenExchangeError(
                f"{self.display_name} returned an unreadable token response",
                status=resp.status_code,
                body=resp.text,
            ) from exc

    async def _get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        what: str = "profile",
    ) -> Dict[str, Any]:
        """GET a JSON document, raising ``ProfileFetchError`` on any failure."""
        try:
            async with self._client() as client:
                resp = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise ProfileFetchError(f"Failed to fetch {what}: {exc}") from exc
        if not resp.is_success:
            raise ProfileFetchError(
                f"Failed to fetch {what}: {resp.text}",
                status=resp.status_code,
                body=resp.text,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise ProfileFetchError(
                f"Failed to fetch {what}: response was not JSON",
                status=resp.status_code,
                body=resp.text,
            ) from exc

    def _profile(self, *, id: Any, **fields: Any) -> NormalizedProfile:
        """Build a ``NormalizedProfile``; a response without an account id is a failure."""
        if id in (None, ""):
            raise ProfileFetchError(
                f"{self.display_name} profile response did not include an account id"
            )
        return NormalizedProfile(id=str(id), **fields)

    @staticmethod
    def _bearer(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}
