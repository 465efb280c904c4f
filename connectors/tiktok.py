"""
TikTokConnector — TikTok Login Kit v2.

TikTok access tokens cannot be refreshed through this connector; users
reconnect when the token lapses.
"""

from __future__ import annotations

from connectors.base import BaseConnector, NormalizedProfile

_TIKTOK_USER_INFO_URL = "https://open.tiktokapis.com/v2/user/info/"


class TikTokConnector(BaseConnector):
    """OAuth2 connector for TikTok."""

    @property
    def platform(self) -> str:
        return "tiktok"

    @property
    def display_name(self) -> str:
        return "TikTok"

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        payload = await self._get_json(
            _TIKTOK_USER_INFO_URL,
            params={"fields": "open_id,union_id,avatar_url,display_name"},
            headers=self._bearer(access_token),
        )
        user = (payload.get("data") or {}).get("user") or {}
        return self._profile(
            id=user.get("open_id"),
            username=user.get("display_name"),
            name=user.get("display_name"),
            profile_image=user.get("avatar_url"),
        )
