"""
Connection stores — durable per-(user, platform) connection records.

``ConnectionStore`` is the contract the lifecycle manager depends on.  Two
implementations ship here:

* ``InMemoryConnectionStore`` — process-local, for development and tests.
* ``SqlAlchemyConnectionStore`` — one transaction per operation against the
  ``social_connections`` table.

Each single operation is atomic.  Sequences that span awaits (check expiry →
refresh at the provider → write tokens) are serialized per key with
``store.lock(user_id, platform)``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from connectors.models import Connection, ConnectionData, TokenUpdate
from database.models import Base, SocialConnection

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionStore(ABC):
    """Abstract connection store keyed by (user_id, platform)."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        # entries vanish once no coroutine holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def lock(self, user_id: str, platform: str) -> AsyncIterator[None]:
        """Hold the per-(user, platform) lock for a read-modify-write sequence."""
        key = (user_id, platform)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        async with lock:
            yield

    @abstractmethod
    async def upsert_active(self, data: ConnectionData) -> Connection:
        """
        Update the active record for (user, platform) in place, or create one.

        ``id`` and ``connected_at`` survive an update; ``last_refreshed_at`` is
        always bumped.
        """
        ...

    @abstractmethod
    async def get_active(self, user_id: str, platform: str) -> Optional[Connection]:
        ...

    @abstractmethod
    async def list_active(self, user_id: str) -> List[Connection]:
        ...

    @abstractmethod
    async def update_tokens(
        self, user_id: str, platform: str, tokens: TokenUpdate
    ) -> Optional[Connection]:
        """Write refreshed tokens; returns None when nothing is active."""
        ...

    @abstractmethod
    async def deactivate(self, user_id: str, platform: str) -> bool:
        """Soft delete. Returns whether an active record existed."""
        ...

    @abstractmethod
    async def delete(self, user_id: str, platform: str) -> bool:
        """Hard delete. Returns whether a record existed."""
        ...


# ── In-memory ──────────────────────────────────────────────────────────


class InMemoryConnectionStore(ConnectionStore):
    """Dict-backed store; returns copies so callers never alias stored rows."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow):
        super().__init__(clock=clock)
        self._rows: Dict[str, Connection] = {}

    def _find_active(self, user_id: str, platform: str) -> Optional[Connection]:
        for conn in self._rows.values():
            if conn.user_id == user_id and conn.platform == platform and conn.is_active:
                return conn
        return None

    async def upsert_active(self, data: ConnectionData) -> Connection:
        now = self._clock()
        existing = self._find_active(data.user_id, data.platform)
        conn = Connection(
            id=existing.id if existing else str(uuid.uuid4()),
            user_id=data.user_id,
            platform=data.platform,
            access_token=data.access_token,
            refresh_token=data.refresh_token,
            token_expires_at=data.token_expires_at,
            platform_user_id=data.platform_user_id,
            platform_username=data.platform_username,
            platform_profile_image=data.platform_profile_image,
            scopes=list(data.scopes),
            is_active=True,
            connected_at=existing.connected_at if existing else now,
            last_refreshed_at=now,
        )
        self._rows[conn.id] = conn
        return conn.copy()

    async def get_active(self, user_id: str, platform: str) -> Optional[Connection]:
        conn = self._find_active(user_id, platform)
        return conn.copy() if conn else None

    async def list_active(self, user_id: str) -> List[Connection]:
        return [
            conn.copy()
            for conn in self._rows.values()
            if conn.user_id == user_id and conn.is_active
        ]

    async def update_tokens(
        self, user_id: str, platform: str, tokens: TokenUpdate
    ) -> Optional[Connection]:
        conn = self._find_active(user_id, platform)
        if not conn:
            return None
        conn.access_token = tokens.access_token
        if tokens.refresh_token:
            conn.refresh_token = tokens.refresh_token
        if tokens.token_expires_at:
            conn.token_expires_at = tokens.token_expires_at
        conn.last_refreshed_at = self._clock()
        return conn.copy()

    async def deactivate(self, user_id: str, platform: str) -> bool:
        conn = self._find_active(user_id, platform)
        if not conn:
            return False
        conn.is_active = False
        return True

    async def delete(self, user_id: str, platform: str) -> bool:
        conn = self._find_active(user_id, platform)
        if not conn:
            return False
        del self._rows[conn.id]
        return True


# ── SQLAlchemy ─────────────────────────────────────────────────────────


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_connection(row: SocialConnection) -> Connection:
    return Connection(
        id=row.id,
        user_id=row.user_id,
        platform=row.platform,
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        token_expires_at=_as_utc(row.token_expires_at),
        platform_user_id=row.platform_user_id,
        platform_username=row.platform_username,
        platform_profile_image=row.platform_profile_image,
        scopes=list(row.scopes or []),
        is_active=row.is_active,
        connected_at=_as_utc(row.connected_at),
        last_refreshed_at=_as_utc(row.last_refreshed_at),
    )


class SqlAlchemyConnectionStore(ConnectionStore):
    """Store backed by the ``social_connections`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        super().__init__(clock=clock)
        self._session_factory = session_factory

    async def create_tables(self) -> None:
        async with self._session_factory() as session, session.begin():
            conn = await session.connection()
            await conn.run_sync(Base.metadata.create_all)

    @staticmethod
    async def _select_active(
        session: AsyncSession, user_id: str, platform: str
    ) -> Optional[SocialConnection]:
        result = await session.execute(
            select(SocialConnection)
            .where(
                SocialConnection.user_id == user_id,
                SocialConnection.platform == platform,
                SocialConnection.is_active.is_(True),
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def upsert_active(self, data: ConnectionData) -> Connection:
        now = self._clock()
        async with self._session_factory() as session, session.begin():
            row = await self._select_active(session, data.user_id, data.platform)
            if row is None:
                row = SocialConnection(
                    id=str(uuid.uuid4()),
                    user_id=data.user_id,
                    platform=data.platform,
                    connected_at=now,
                )
                session.add(row)
                logger.info("Created %s connection for user %s", data.platform, data.user_id)
            else:
                logger.info("Updated %s connection for user %s", data.platform, data.user_id)
            row.access_token = data.access_token
            row.refresh_token = data.refresh_token
            row.token_expires_at = data.token_expires_at
            row.platform_user_id = data.platform_user_id
            row.platform_username = data.platform_username
            row.platform_profile_image = data.platform_profile_image
            row.scopes = list(data.scopes)
            row.is_active = True
            row.last_refreshed_at = now
            await session.flush()
            return _to_connection(row)

    async def get_active(self, user_id: str, platform: str) -> Optional[Connection]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SocialConnection).where(
                    SocialConnection.user_id == user_id,
                    SocialConnection.platform == platform,
                    SocialConnection.is_active.is_(True),
                )
            )
            row = result.scalar_one_or_none()
            return _to_connection(row) if row else None

    async def list_active(self, user_id: str) -> List[Connection]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SocialConnection).where(
                    SocialConnection.user_id == user_id,
                    SocialConnection.is_active.is_(True),
                )
            )
            return [_to_connection(row) for row in result.scalars().all()]

    async def update_tokens(
        self, user_id: str, platform: str, tokens: TokenUpdate
    ) -> Optional[Connection]:
        async with self._session_factory() as session, session.begin():
            row = await self._select_active(session, user_id, platform)
            if row is None:
                return None
            row.access_token = tokens.access_token
            if tokens.refresh_token:
                row.refresh_token = tokens.refresh_token
            if tokens.token_expires_at:
                row.token_expires_at = tokens.token_expires_at
            row.last_refreshed_at = self._clock()
            await session.flush()
            return _to_connection(row)

    async def deactivate(self, user_id: str, platform: str) -> bool:
        async with self._session_factory() as session, session.begin():
            row = await self._select_active(session, user_id, platform)
            if row is None:
                return False
            row.is_active = False
            return True

    async def delete(self, user_id: str, platform: str) -> bool:
        async with self._session_factory() as session, session.begin():
            row = await self._select_active(session, user_id, platform)
            if row is None:
                return False
            await session.execute(
                delete(SocialConnection).where(SocialConnection.id == row.id)
            )
            return True
