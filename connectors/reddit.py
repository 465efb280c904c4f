"""
RedditConnector — OAuth2 for the Reddit API.

Reddit differs from the standard flow in two ways:

* token requests authenticate with HTTP Basic (client id / secret), not
  form fields;
* every request must carry a descriptive ``User-Agent``; Reddit rejects
  requests without one.
"""

from __future__ import annotations

import logging
from typing import Dict

from connectors.base import BaseConnector, NormalizedProfile, OAuthTokens, ProviderConfig

logger = logging.getLogger(__name__)

_REDDIT_API = "https://oauth.reddit.com/api/v1"
DEFAULT_USER_AGENT = "PostDominator/1.0"


class RedditConnector(BaseConnector):
    """OAuth2 connector for Reddit."""

    supports_refresh = True

    def __init__(self, *, user_agent: str = DEFAULT_USER_AGENT, **kwargs):
        super().__init__(**kwargs)
        self.user_agent = user_agent or DEFAULT_USER_AGENT

    @property
    def platform(self) -> str:
        return "reddit"

    @property
    def display_name(self) -> str:
        return "Reddit"

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent}

    async def exchange_code(self, config: ProviderConfig, code: str) -> OAuthTokens:
        return await self._post_token(
            config.token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": config.redirect_uri,
            },
            auth=(config.client_id, config.client_secret),
            headers=self._headers(),
        )

    async def refresh(self, config: ProviderConfig, refresh_token: str) -> OAuthTokens:
        return await self._post_token(
            config.token_url,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            auth=(config.client_id, config.client_secret),
            headers=self._headers(),
        )

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        data = await self._get_json(
            f"{_REDDIT_API}/me",
            headers={**self._bearer(access_token), **self._headers()},
        )
        return self._profile(
            id=data.get("id"),
            username=data.get("name"),
            name=data.get("name"),
            profile_image=data.get("icon_img") or data.get("snoovatar_img"),
        )
