"""
InstagramConnector — Instagram Business accounts via Facebook Login.

Instagram uses Facebook's OAuth system.  The account identity is resolved in
two hops: the user's first Facebook Page, then the Instagram Business account
linked to that page.  Each hop fails with its own error because each calls for
a different fix on the user's side.

Threads is served by this connector as well (same Graph API app).
"""

from __future__ import annotations

import logging

from connectors.base import BaseConnector, NormalizedProfile
from connectors.errors import NoLinkedInstagramAccountError, NoPagesFoundError
from connectors.facebook import GRAPH_API

logger = logging.getLogger(__name__)


class InstagramConnector(BaseConnector):
    """OAuth2 connector for Instagram (and Threads)."""

    def __init__(self, *, platform: str = "instagram", **kwargs):
        super().__init__(**kwargs)
        self._platform = platform

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def display_name(self) -> str:
        return "Threads" if self._platform == "threads" else "Instagram"

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        pages = await self._get_json(
            f"{GRAPH_API}/me/accounts",
            params={"access_token": access_token},
            what="Facebook pages",
        )
        page = next(iter(pages.get("data") or []), None)
        if not page:
            raise NoPagesFoundError(
                "No Facebook pages found. Instagram requires a connected Facebook Page."
            )

        page_token = page.get("access_token") or access_token
        linked = await self._get_json(
            f"{GRAPH_API}/{page['id']}",
            params={"fields": "instagram_business_account", "access_token": page_token},
            what="linked Instagram account",
        )
        ig_account_id = (linked.get("instagram_business_account") or {}).get("id")
        if not ig_account_id:
            raise NoLinkedInstagramAccountError(
                "No linked Instagram Business account on this Facebook Page"
            )

        account = await self._get_json(
            f"{GRAPH_API}/{ig_account_id}",
            params={
                "fields": "id,username,profile_picture_url",
                "access_token": page_token,
            },
            what="Instagram account details",
        )
        return self._profile(
            id=account.get("id") or ig_account_id,
            username=account.get("username"),
            profile_image=account.get("profile_picture_url"),
            extra={"page_id": page["id"]},
        )
