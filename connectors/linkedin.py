"""
LinkedInConnector — OAuth2 (OpenID Connect) for LinkedIn member posting.
"""

from __future__ import annotations

from connectors.base import BaseConnector, NormalizedProfile, OAuthTokens, ProviderConfig

_LINKEDIN_USERINFO_URL = "https://api.linkedin.com/v2/userinfo"


class LinkedInConnector(BaseConnector):
    """OAuth2 connector for LinkedIn."""

    supports_refresh = True

    @property
    def platform(self) -> str:
        return "linkedin"

    @property
    def display_name(self) -> str:
        return "LinkedIn"

    async def refresh(self, config: ProviderConfig, refresh_token: str) -> OAuthTokens:
        return await self._post_token(
            config.token_url,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": config.client_id,
                "client_secret": config.client_secret,
            },
        )

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        data = await self._get_json(
            _LINKEDIN_USERINFO_URL, headers=self._bearer(access_token)
        )
        return self._profile(
            id=data.get("sub"),
            name=data.get("name"),
            email=data.get("email"),
            profile_image=data.get("picture"),
        )
