"""
ProviderRegistry — immutable catalogue of platform configs and connectors.

Built once from ``Settings`` at startup and passed to the lifecycle manager,
so connectors never read environment variables themselves.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

import httpx

from config.settings import Settings
from connectors.base import BaseConnector, Platform, ProviderConfig
from connectors.bluesky import BlueskyConnector
from connectors.facebook import FacebookConnector
from connectors.instagram import InstagramConnector
from connectors.linkedin import LinkedInConnector
from connectors.pinterest import PinterestConnector
from connectors.reddit import RedditConnector
from connectors.tiktok import TikTokConnector
from connectors.twitter import TwitterConnector
from connectors.youtube import YouTubeConnector

logger = logging.getLogger(__name__)

_FACEBOOK_AUTH_URL = "https://www.facebook.com/v18.0/dialog/oauth"
_FACEBOOK_TOKEN_URL = "https://graph.facebook.com/v18.0/oauth/access_token"

_INSTAGRAM_SCOPES = (
    "instagram_basic",
    "instagram_content_publish",
    "pages_show_list",
)


def build_provider_configs(settings: Settings) -> Dict[str, ProviderConfig]:
    """Map every known platform to its OAuth client settings."""

    def provider(name, client_id, client_secret, auth_url, token_url, scopes):
        return ProviderConfig(
            name=name,
            client_id=client_id,
            client_secret=client_secret,
            authorization_url=auth_url,
            token_url=token_url,
            redirect_uri=settings.redirect_uri(name),
            scopes=tuple(scopes),
        )

    return {
        "facebook": provider(
            "facebook",
            settings.facebook_app_id,
            settings.facebook_app_secret,
            _FACEBOOK_AUTH_URL,
            _FACEBOOK_TOKEN_URL,
            [
                "pages_manage_posts",
                "pages_read_engagement",
                "pages_show_list",
                "instagram_basic",
                "instagram_content_publish",
            ],
        ),
        "instagram": provider(
            "instagram",
            settings.facebook_app_id,
            settings.facebook_app_secret,
            _FACEBOOK_AUTH_URL,
            _FACEBOOK_TOKEN_URL,
            _INSTAGRAM_SCOPES,
        ),
        # Threads goes through the Instagram Graph API app
        "threads": provider(
            "threads",
            settings.facebook_app_id,
            settings.facebook_app_secret,
            _FACEBOOK_AUTH_URL,
            _FACEBOOK_TOKEN_URL,
            _INSTAGRAM_SCOPES,
        ),
        "twitter": provider(
            "twitter",
            settings.twitter_client_id,
            settings.twitter_client_secret,
            "https://twitter.com/i/oauth2/authorize",
            "https://api.twitter.com/2/oauth2/token",
            ["tweet.read", "tweet.write", "users.read", "offline.access"],
        ),
        "reddit": provider(
            "reddit",
            settings.reddit_client_id,
            settings.reddit_client_secret,
            "https://www.reddit.com/api/v1/authorize",
            "https://www.reddit.com/api/v1/access_token",
            ["identity", "submit", "read", "history"],
        ),
        "linkedin": provider(
            "linkedin",
            settings.linkedin_client_id,
            settings.linkedin_client_secret,
            "https://www.linkedin.com/oauth/v2/authorization",
            "https://www.linkedin.com/oauth/v2/accessToken",
            ["openid", "profile", "email", "w_member_social"],
        ),
        "tiktok": provider(
            "tiktok",
            settings.tiktok_client_id,
            settings.tiktok_client_secret,
            "https://www.tiktok.com/v2/auth/authorize",
            "https://open.tiktokapis.com/v2/oauth/token",
            ["user.info.basic", "video.upload"],
        ),
        "youtube": provider(
            "youtube",
            settings.google_client_id,
            settings.google_client_secret,
            "https://accounts.google.com/o/oauth2/v2/auth",
            "https://oauth2.googleapis.com/token",
            [
                "https://www.googleapis.com/auth/youtube.upload",
                "https://www.googleapis.com/auth/youtube.readonly",
            ],
        ),
        "pinterest": provider(
            "pinterest",
            settings.pinterest_app_id,
            settings.pinterest_app_secret,
            "https://www.pinterest.com/oauth",
            "https://api.pinterest.com/v5/oauth/token",
            ["boards:read", "pins:read", "pins:write"],
        ),
        # Bluesky uses app passwords, not OAuth
        "bluesky": ProviderConfig(
            name="bluesky",
            client_id="",
            client_secret="",
            authorization_url="",
            token_url="",
            redirect_uri="",
        ),
    }


def build_connectors(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, BaseConnector]:
    """One connector instance per platform identifier."""
    opts = {"transport": transport, "timeout": settings.http_timeout_seconds}
    return {
        "facebook": FacebookConnector(**opts),
        "instagram": InstagramConnector(**opts),
        "threads": InstagramConnector(platform="threads", **opts),
        "twitter": TwitterConnector(**opts),
        "reddit": RedditConnector(user_agent=settings.reddit_user_agent, **opts),
        "linkedin": LinkedInConnector(**opts),
        "tiktok": TikTokConnector(**opts),
        "youtube": YouTubeConnector(**opts),
        "pinterest": PinterestConnector(**opts),
        "bluesky": BlueskyConnector(**opts),
    }


class ProviderRegistry:
    """Read-only lookup of provider configs and connectors by platform."""

    def __init__(
        self,
        providers: Mapping[str, ProviderConfig],
        connectors: Mapping[str, BaseConnector],
    ):
        self._providers = MappingProxyType(dict(providers))
        self._connectors = MappingProxyType(dict(connectors))
        for name, cfg in self._providers.items():
            if cfg.is_configured:
                logger.info("Provider registered: %s", name)
            else:
                logger.warning(
                    "Provider %s skipped — not configured (missing client_id/secret)",
                    name,
                )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ProviderRegistry":
        return cls(
            build_provider_configs(settings),
            build_connectors(settings, transport=transport),
        )

    def lookup(self, platform: str) -> Optional[ProviderConfig]:
        """
        Return the config for ``platform``, or None when the identifier is
        unknown or the provider cannot be connected (no client credentials).
        """
        cfg = self._providers.get(platform)
        if cfg is None or not cfg.is_configured:
            return None
        return cfg

    def connector(self, platform: str) -> Optional[BaseConnector]:
        return self._connectors.get(platform)

    def list_providers(self) -> List[Dict[str, object]]:
        """Return info about every known platform, configured or not."""
        providers = []
        for platform in Platform:
            connector = self._connectors.get(platform.value)
            if connector is None:
                continue
            providers.append(
                {
                    "platform": platform.value,
                    "display_name": connector.display_name,
                    "configured": self.lookup(platform.value) is not None,
                    "supports_refresh": connector.supports_refresh,
                }
            )
        return providers

    def list_configured(self) -> List[str]:
        return [name for name, cfg in self._providers.items() if cfg.is_configured]
