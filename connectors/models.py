"""
Connection records exchanged between the lifecycle manager and the stores.

Token fields always hold encryption envelopes, never plaintext.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


@dataclass
class Connection:
    id: str
    user_id: str
    platform: str
    access_token: str
    platform_user_id: str
    connected_at: datetime
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    platform_username: Optional[str] = None
    platform_profile_image: Optional[str] = None
    scopes: List[str] = field(default_factory=list)
    is_active: bool = True
    last_refreshed_at: Optional[datetime] = None

    def copy(self) -> "Connection":
        return replace(self, scopes=list(self.scopes))


@dataclass
class ConnectionData:
    """Fields written by ``ConnectionStore.upsert_active``."""

    user_id: str
    platform: str
    access_token: str
    platform_user_id: str
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    platform_username: Optional[str] = None
    platform_profile_image: Optional[str] = None
    scopes: List[str] = field(default_factory=list)


@dataclass
class TokenUpdate:
    """
    Fields written by ``ConnectionStore.update_tokens``.

    ``refresh_token`` and ``token_expires_at`` are left untouched when None.
    """

    access_token: str
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None


class ConnectionSummary(BaseModel):
    """Public projection of a connection; never carries tokens."""

    id: str
    platform: str
    platform_user_id: str
    platform_username: Optional[str] = None
    platform_profile_image: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    connected_at: datetime
    last_refreshed_at: Optional[datetime] = None
    token_expires_at: Optional[datetime] = None

    @classmethod
    def from_connection(cls, conn: Connection) -> "ConnectionSummary":
        return cls(
            id=conn.id,
            platform=conn.platform,
            platform_user_id=conn.platform_user_id,
            platform_username=conn.platform_username,
            platform_profile_image=conn.platform_profile_image,
            scopes=list(conn.scopes),
            connected_at=conn.connected_at,
            last_refreshed_at=conn.last_refreshed_at,
            token_expires_at=conn.token_expires_at,
        )
