"""
Connection lifecycle — begin connect, handle callback, keep tokens fresh,
disconnect.

``ConnectionManager`` is the single interface that routes and any future
publishing code use.  It never branches on platform names: everything
platform-specific lives in the connectors from the ``ProviderRegistry``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from connectors.base import BaseConnector, ProviderConfig
from connectors.encryption import TokenCipher
from connectors.errors import (
    CallbackError,
    CallbackReason,
    ConnectorError,
    NotFoundError,
    RefreshTokenMissing,
    UnsupportedPlatform,
)
from connectors.models import Connection, ConnectionData, ConnectionSummary, TokenUpdate
from connectors.registry import ProviderRegistry
from connectors.state import StateSigner
from connectors.store import ConnectionStore

logger = logging.getLogger(__name__)

REFRESH_BUFFER = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionManager:
    """Orchestrates the OAuth connection state machine for every platform."""

    def __init__(
        self,
        registry: ProviderRegistry,
        store: ConnectionStore,
        cipher: TokenCipher,
        state_signer: StateSigner,
        *,
        refresh_buffer: timedelta = REFRESH_BUFFER,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.registry = registry
        self.store = store
        self.cipher = cipher
        self.state_signer = state_signer
        self.refresh_buffer = refresh_buffer
        self._clock = clock

    def _resolve(self, platform: str) -> Tuple[ProviderConfig, BaseConnector]:
        config = self.registry.lookup(platform)
        connector = self.registry.connector(platform)
        if config is None or connector is None:
            raise UnsupportedPlatform(platform)
        return config, connector

    # ── Disconnected → Pending ──────────────────────────────────────────

    def begin_connect(self, platform: str) -> Tuple[str, str]:
        """
        Start an authorization flow.

        Returns ``(authorization_url, state)``; the caller stores ``state`` in
        the ``oauth_state_{platform}`` cookie.
        """
        config, connector = self._resolve(platform)
        state = self.state_signer.issue(platform)
        url = connector.build_authorization_url(config, state)
        logger.info("OAuth flow started for %s", platform)
        return url, state

    # ── Pending → Active ────────────────────────────────────────────────

    async def handle_callback(
        self,
        user_id: str,
        platform: str,
        *,
        code: Optional[str],
        state: Optional[str],
        stored_state: Optional[str],
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> Connection:
        """
        Complete an authorization flow and persist the connection.

        Raises ``CallbackError`` for every failure; adapter and store errors
        are chained as ``__cause__``.
        """
        if error:
            logger.warning("OAuth error from %s: %s", platform, error)
            if state:
                self.state_signer.revoke(platform, state)
            raise CallbackError(
                CallbackReason.REMOTE_ERROR,
                error_description or "Authentication failed",
            )
        if not code or not state:
            if state:
                self.state_signer.revoke(platform, state)
            raise CallbackError(
                CallbackReason.MISSING_PARAMS,
                "Missing authorization code or state",
            )

        # single use from here on, whatever happens next
        self.state_signer.consume(platform, state, stored_state)

        try:
            config, connector = self._resolve(platform)
            tokens = await connector.exchange_code(config, code)
            profile = await connector.fetch_profile(tokens.access_token)

            expires_at = None
            if tokens.expires_in:
                expires_at = self._clock() + timedelta(seconds=tokens.expires_in)

            data = ConnectionData(
                user_id=user_id,
                platform=platform,
                access_token=self.cipher.encrypt(tokens.access_token),
                refresh_token=(
                    self.cipher.encrypt(tokens.refresh_token)
                    if tokens.refresh_token
                    else None
                ),
                token_expires_at=expires_at,
                platform_user_id=profile.id,
                platform_username=profile.username or profile.name,
                platform_profile_image=profile.profile_image,
                scopes=list(config.scopes),
            )
            async with self.store.lock(user_id, platform):
                conn = await self.store.upsert_active(data)
        except ConnectorError as exc:
            logger.error("OAuth callback failed for %s: %s", platform, exc.message)
            raise CallbackError(CallbackReason.CONNECTION_FAILED, exc.message) from exc

        logger.info(
            "OAuth connected: user=%s platform=%s account=%s",
            user_id,
            platform,
            conn.platform_username or conn.platform_user_id,
        )
        return conn

    # ── Active → Active (refreshed) ─────────────────────────────────────

    async def get_valid_access_token(self, user_id: str, platform: str) -> str:
        """
        Return a usable plaintext access token, refreshing it first when it
        expires within ``refresh_buffer``.

        Server-side only: the result must never be sent to a browser.
        """
        async with self.store.lock(user_id, platform):
            conn = await self.store.get_active(user_id, platform)
            if conn is None:
                raise NotFoundError(f"No active {platform} connection")

            if conn.token_expires_at is None:
                return self.cipher.decrypt(conn.access_token)

            remaining = conn.token_expires_at - self._clock()
            if remaining >= self.refresh_buffer:
                return self.cipher.decrypt(conn.access_token)

            if not conn.refresh_token:
                raise RefreshTokenMissing(platform)

            config, connector = self._resolve(platform)
            tokens = await connector.refresh(
                config, self.cipher.decrypt(conn.refresh_token)
            )
            expires_at = None
            if tokens.expires_in:
                expires_at = self._clock() + timedelta(seconds=tokens.expires_in)

            updated = await self.store.update_tokens(
                user_id,
                platform,
                TokenUpdate(
                    access_token=self.cipher.encrypt(tokens.access_token),
                    refresh_token=(
                        self.cipher.encrypt(tokens.refresh_token)
                        if tokens.refresh_token
                        else None
                    ),
                    token_expires_at=expires_at,
                ),
            )
            if updated is None:
                raise NotFoundError(f"No active {platform} connection")

            logger.info("Refreshed %s token for user %s", platform, user_id)
            return tokens.access_token

    # ── Active → Disconnected ───────────────────────────────────────────

    async def disconnect(self, user_id: str, platform: str) -> None:
        if not await self.store.deactivate(user_id, platform):
            raise NotFoundError("Connection not found")
        logger.info("Disconnected %s for user %s", platform, user_id)

    async def delete_connection(self, user_id: str, platform: str) -> None:
        if not await self.store.delete(user_id, platform):
            raise NotFoundError("Connection not found")
        logger.info("Deleted %s connection for user %s", platform, user_id)

    async def list_connections(self, user_id: str) -> List[ConnectionSummary]:
        """Return all active connections for a user (no tokens exposed)."""
        return [
            ConnectionSummary.from_connection(conn)
            for conn in await self.store.list_active(user_id)
        ]
