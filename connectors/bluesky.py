"""
BlueskyConnector — placeholder for Bluesky.

Bluesky authenticates with app passwords rather than OAuth2, so it is listed
in the catalogue but can never be connected through the redirect flow.
"""

from __future__ import annotations

from connectors.base import BaseConnector, NormalizedProfile, OAuthTokens, ProviderConfig
from connectors.errors import UnsupportedPlatform

_REASON = "Bluesky uses app passwords, not OAuth"


class BlueskyConnector(BaseConnector):
    @property
    def platform(self) -> str:
        return "bluesky"

    @property
    def display_name(self) -> str:
        return "Bluesky"

    def build_authorization_url(self, config: ProviderConfig, state: str) -> str:
        raise UnsupportedPlatform(self.platform, _REASON)

    async def exchange_code(self, config: ProviderConfig, code: str) -> OAuthTokens:
        raise UnsupportedPlatform(self.platform, _REASON)

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        raise UnsupportedPlatform(self.platform, _REASON)
