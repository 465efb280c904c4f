"""
PinterestConnector — Pinterest API v5.
"""

from __future__ import annotations

from connectors.base import BaseConnector, NormalizedProfile

_PINTEREST_USER_ACCOUNT_URL = "https://api.pinterest.com/v5/user_account"


class PinterestConnector(BaseConnector):
    """OAuth2 connector for Pinterest."""

    @property
    def platform(self) -> str:
        return "pinterest"

    @property
    def display_name(self) -> str:
        return "Pinterest"

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        data = await self._get_json(
            _PINTEREST_USER_ACCOUNT_URL, headers=self._bearer(access_token)
        )
        return self._profile(
            id=data.get("id") or data.get("username"),
            username=data.get("username"),
            name=data.get("business_name") or data.get("username"),
            profile_image=data.get("profile_image"),
        )
