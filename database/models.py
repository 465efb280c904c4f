"""
SQLAlchemy ORM models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class SocialConnection(Base):
    __tablename__ = "social_connections"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False)
    platform = Column(String(32), nullable=False)
    access_token = Column(Text, nullable=False)       # encryption envelope
    refresh_token = Column(Text)                      # encryption envelope
    token_expires_at = Column(DateTime(timezone=True))
    platform_user_id = Column(String(256), nullable=False)
    platform_username = Column(String(256))
    platform_profile_image = Column(Text)
    scopes = Column(JSON, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    connected_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    last_refreshed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_social_connections_user", "user_id"),
        # at most one active connection per (user, platform)
        Index(
            "uq_social_connections_active",
            "user_id",
            "platform",
            unique=True,
            postgresql_where=is_active.is_(True),
            sqlite_where=is_active.is_(True),
        ),
    )
