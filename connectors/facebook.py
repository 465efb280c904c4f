"""
FacebookConnector — OAuth2 for Facebook Pages publishing.

Facebook does not issue refresh tokens; a long-lived user token (about 60
days) is extended by re-exchanging it with ``grant_type=fb_exchange_token``.
"""

from __future__ import annotations

import logging

import httpx

from connectors.base import BaseConnector, NormalizedProfile, OAuthTokens, ProviderConfig
from connectors.errors import TokenExchangeError

logger = logging.getLogger(__name__)

# Graph API endpoints
GRAPH_API = "https://graph.facebook.com/v18.0"


class FacebookConnector(BaseConnector):
    """OAuth2 connector for Facebook."""

    supports_refresh = True

    @property
    def platform(self) -> str:
        return "facebook"

    @property
    def display_name(self) -> str:
        return "Facebook"

    async def refresh(self, config: ProviderConfig, refresh_token: str) -> OAuthTokens:
        """Re-exchange a long-lived token for a new long-lived token."""
        try:
            async with self._client() as client:
                resp = await client.get(
                    config.token_url,
                    params={
                        "grant_type": "fb_exchange_token",
                        "client_id": config.client_id,
                        "client_secret": config.client_secret,
                        "fb_exchange_token": refresh_token,
                    },
                )
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"Failed to refresh Facebook token: {exc}") from exc
        return self._parse_token_response(resp)

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        data = await self._get_json(
            f"{GRAPH_API}/me",
            params={"fields": "id,name,email,picture", "access_token": access_token},
        )
        return self._profile(
            id=data.get("id"),
            name=data.get("name"),
            email=data.get("email"),
            profile_image=((data.get("picture") or {}).get("data") or {}).get("url"),
        )
