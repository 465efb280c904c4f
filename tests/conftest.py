"""
Shared fixtures: settings with every provider configured, a controllable
clock, a recording fake connector and a wired ``ConnectionManager``.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx
import pytest

from config.settings import Settings
from connectors.base import (
    BaseConnector,
    NormalizedProfile,
    OAuthTokens,
    Platform,
    ProviderConfig,
)
from connectors.encryption import TokenCipher
from connectors.errors import RefreshNotSupported
from connectors.lifecycle import ConnectionManager
from connectors.registry import ProviderRegistry, build_provider_configs
from connectors.state import StateSigner
from connectors.store import InMemoryConnectionStore

TEST_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
_REFRESHABLE = {"facebook", "twitter", "reddit", "linkedin"}


class FakeClock:
    """Callable clock returning an aware UTC datetime that tests can move."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def timestamp(self) -> float:
        return self.now.timestamp()


class FakeConnector(BaseConnector):
    """Connector that never touches the network and records every call."""

    def __init__(self, platform: str, *, supports_refresh: bool = True):
        super().__init__()
        self._platform = platform
        self.supports_refresh = supports_refresh
        self.exchange_calls: List[str] = []
        self.refresh_calls: List[str] = []
        self.profile_calls: List[str] = []
        self.tokens = OAuthTokens(
            access_token="access-1", refresh_token="refresh-1", expires_in=3600
        )
        self.refreshed = OAuthTokens(
            access_token="access-2", refresh_token=None, expires_in=3600
        )
        self.profile = NormalizedProfile(
            id="remote-42", username="jane", profile_image="https://img.test/j.png"
        )
        self.exchange_error: Optional[Exception] = None
        self.profile_error: Optional[Exception] = None

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def display_name(self) -> str:
        return self._platform.title()

    async def exchange_code(self, config: ProviderConfig, code: str) -> OAuthTokens:
        self.exchange_calls.append(code)
        if self.exchange_error:
            raise self.exchange_error
        return self.tokens

    async def refresh(self, config: ProviderConfig, refresh_token: str) -> OAuthTokens:
        if not self.supports_refresh:
            raise RefreshNotSupported(self.platform)
        self.refresh_calls.append(refresh_token)
        return self.refreshed

    async def fetch_profile(self, access_token: str) -> NormalizedProfile:
        self.profile_calls.append(access_token)
        if self.profile_error:
            raise self.profile_error
        return self.profile


class RecordingTransport(httpx.MockTransport):
    """``httpx.MockTransport`` that keeps every request it served."""

    def __init__(self, handler):
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="development",
        app_url="https://app.test",
        encryption_key=TEST_KEY,
        oauth_state_secret="state-secret",
        jwt_secret="jwt-secret",
        facebook_app_id="fb-id",
        facebook_app_secret="fb-secret",
        twitter_client_id="tw-id",
        twitter_client_secret="tw-secret",
        reddit_client_id="rd-id",
        reddit_client_secret="rd-secret",
        reddit_user_agent="TestAgent/1.0",
        linkedin_client_id="li-id",
        linkedin_client_secret="li-secret",
        tiktok_client_id="tt-id",
        tiktok_client_secret="tt-secret",
        google_client_id="g-id",
        google_client_secret="g-secret",
        pinterest_app_id="pin-id",
        pinterest_app_secret="pin-secret",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cipher() -> TokenCipher:
    return TokenCipher(TEST_KEY)


@pytest.fixture
def store(clock) -> InMemoryConnectionStore:
    return InMemoryConnectionStore(clock=clock)


@pytest.fixture
def fake_connectors() -> dict:
    return {
        p.value: FakeConnector(p.value, supports_refresh=p.value in _REFRESHABLE)
        for p in Platform
    }


@pytest.fixture
def registry(settings, fake_connectors) -> ProviderRegistry:
    return ProviderRegistry(build_provider_configs(settings), fake_connectors)


@pytest.fixture
def state_signer(clock) -> StateSigner:
    return StateSigner("state-secret", clock=clock.timestamp)


@pytest.fixture
def manager(registry, store, cipher, state_signer, clock) -> ConnectionManager:
    return ConnectionManager(registry, store, cipher, state_signer, clock=clock)
