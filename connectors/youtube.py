"""
YouTubeConnector — Google OAuth2 for YouTube channel uploads.

The connected identity is the authenticated user's own channel.
"""

from __future__ import annotations

import logging

from connectors.base import BaseConnector, NormalizedProfile
from connectors.errors import ProfileFetchError

logger = logging.getLogger(__name__)

_YOUTUBE_CHANNELS_URL = "https://www.googleapis.com/youtube/v3/channels"


class YouTubeConnector(BaseConnector):
    """OAuth2 connector for YouTube."""

    @property
    def platform(self) -> str:
        return "youtube"

    @property
    def display_name(self) -> str:
        return "YouTube"

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        data = await self._get_json(
            _YOUTUBE_CHANNELS_URL,
            params={"part": "snippet", "mine": "true"},
            headers=self._bearer(access_token),
            what="YouTube channel",
        )
        channel = next(iter(data.get("items") or []), None)
        if not channel:
            raise ProfileFetchError("No YouTube channel found for this Google account")

        snippet = channel.get("snippet") or {}
        thumbnails = snippet.get("thumbnails") or {}
        return self._profile(
            id=channel.get("id"),
            username=snippet.get("customUrl"),
            name=snippet.get("title"),
            profile_image=(thumbnails.get("default") or {}).get("url"),
        )
