"""
TwitterConnector — OAuth2 for X (Twitter) API v2.

Code exchange sends the client credentials in the form body; refresh uses
HTTP Basic authentication as required for confidential clients.
"""

from __future__ import annotations

import logging

from connectors.base import BaseConnector, NormalizedProfile, OAuthTokens, ProviderConfig

logger = logging.getLogger(__name__)

_TWITTER_API = "https://api.twitter.com/2"


class TwitterConnector(BaseConnector):
    """OAuth2 connector for X / Twitter."""

    supports_refresh = True

    @property
    def platform(self) -> str:
        return "twitter"

    @property
    def display_name(self) -> str:
        return "X (Twitter)"

    async def refresh(self, config: ProviderConfig, refresh_token: str) -> OAuthTokens:
        return await self._post_token(
            config.token_url,
            data={"refresh_token": refresh_token, "grant_type": "refresh_token"},
            auth=(config.client_id, config.client_secret),
        )

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        payload = await self._get_json(
            f"{_TWITTER_API}/users/me",
            params={"user.fields": "profile_image_url"},
            headers=self._bearer(access_token),
        )
        data = payload.get("data") or {}
        return self._profile(
            id=data.get("id"),
            username=data.get("username"),
            name=data.get("name"),
            profile_image=data.get("profile_image_url"),
        )
