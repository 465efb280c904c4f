"""
Tests for the platform connectors — outgoing request shape and profile
normalization, against ``httpx.MockTransport``.
"""

import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from connectors.errors import (
    NoLinkedInstagramAccountError,
    NoPagesFoundError,
    ProfileFetchError,
    RefreshNotSupported,
    TokenExchangeError,
    UnsupportedPlatform,
)
from connectors.registry import ProviderRegistry, build_provider_configs

from conftest import RecordingTransport

TOKEN_RESPONSE = {
    "access_token": "new-access",
    "refresh_token": "new-refresh",
    "expires_in": 3600,
    "token_type": "bearer",
}


def _form(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def _basic(request: httpx.Request) -> str:
    scheme, _, value = request.headers["Authorization"].partition(" ")
    assert scheme == "Basic"
    return base64.b64decode(value).decode()


def _registry(settings, handler) -> tuple:
    transport = RecordingTransport(handler)
    return ProviderRegistry.from_settings(settings, transport=transport), transport


def _json(payload, status=200):
    return httpx.Response(status, json=payload)


# ── Code exchange ──────────────────────────────────────────────────────────────


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_reddit_uses_basic_auth_and_user_agent(self, settings):
        registry, transport = _registry(settings, lambda r: _json(TOKEN_RESPONSE))
        cfg = registry.lookup("reddit")

        tokens = await registry.connector("reddit").exchange_code(cfg, "abc")

        assert tokens.access_token == "new-access"
        assert tokens.refresh_token == "new-refresh"
        assert tokens.expires_in == 3600

        (request,) = transport.requests
        assert request.method == "POST"
        assert str(request.url) == "https://www.reddit.com/api/v1/access_token"
        assert request.headers["User-Agent"] == "TestAgent/1.0"
        assert _basic(request) == "rd-id:rd-secret"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        form = _form(request)
        assert form == {
            "grant_type": "authorization_code",
            "code": "abc",
            "redirect_uri": "https://app.test/api/auth/reddit/callback",
        }
        assert "client_secret" not in form

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "platform, client_id, client_secret",
        [
            ("facebook", "fb-id", "fb-secret"),
            ("instagram", "fb-id", "fb-secret"),
            ("twitter", "tw-id", "tw-secret"),
            ("linkedin", "li-id", "li-secret"),
            ("tiktok", "tt-id", "tt-secret"),
            ("youtube", "g-id", "g-secret"),
            ("pinterest", "pin-id", "pin-secret"),
        ],
    )
    async def test_form_body_credentials(self, settings, platform, client_id, client_secret):
        registry, transport = _registry(settings, lambda r: _json(TOKEN_RESPONSE))
        cfg = registry.lookup(platform)

        await registry.connector(platform).exchange_code(cfg, "the-code")

        (request,) = transport.requests
        assert str(request.url) == cfg.token_url
        assert "Authorization" not in request.headers
        assert _form(request) == {
            "client_id": client_id,
            "client_secret": client_secret,
            "code": "the-code",
            "grant_type": "authorization_code",
            "redirect_uri": f"https://app.test/api/auth/{platform}/callback",
        }

    @pytest.mark.asyncio
    async def test_error_status_carries_remote_body(self, settings):
        registry, _ = _registry(
            settings, lambda r: httpx.Response(400, text='{"error":"invalid_grant"}')
        )
        with pytest.raises(TokenExchangeError) as exc_info:
            await registry.connector("linkedin").exchange_code(
                registry.lookup("linkedin"), "bad"
            )
        assert exc_info.value.status == 400
        assert "invalid_grant" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_transport_failure_is_wrapped(self, settings):
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        registry, _ = _registry(settings, boom)
        with pytest.raises(TokenExchangeError):
            await registry.connector("twitter").exchange_code(
                registry.lookup("twitter"), "code"
            )

    @pytest.mark.asyncio
    async def test_unreadable_token_response(self, settings):
        registry, _ = _registry(settings, lambda r: _json({"unexpected": True}))
        with pytest.raises(TokenExchangeError):
            await registry.connector("youtube").exchange_code(
                registry.lookup("youtube"), "code"
            )

    @pytest.mark.asyncio
    async def test_optional_fields_absent(self, settings):
        registry, _ = _registry(settings, lambda r: _json({"access_token": "only"}))
        tokens = await registry.connector("facebook").exchange_code(
            registry.lookup("facebook"), "code"
        )
        assert tokens.access_token == "only"
        assert tokens.refresh_token is None
        assert tokens.expires_in is None


# ── Refresh ────────────────────────────────────────────────────────────────────


class TestRefresh:
    @pytest.mark.asyncio
    async def test_reddit_refresh(self, settings):
        registry, transport = _registry(settings, lambda r: _json(TOKEN_RESPONSE))
        await registry.connector("reddit").refresh(registry.lookup("reddit"), "old-refresh")

        (request,) = transport.requests
        assert request.headers["User-Agent"] == "TestAgent/1.0"
        assert _basic(request) == "rd-id:rd-secret"
        assert _form(request) == {
            "grant_type": "refresh_token",
            "refresh_token": "old-refresh",
        }

    @pytest.mark.asyncio
    async def test_twitter_refresh_uses_basic_auth(self, settings):
        registry, transport = _registry(settings, lambda r: _json(TOKEN_RESPONSE))
        tokens = await registry.connector("twitter").refresh(
            registry.lookup("twitter"), "old-refresh"
        )

        assert tokens.refresh_token == "new-refresh"
        (request,) = transport.requests
        assert str(request.url) == "https://api.twitter.com/2/oauth2/token"
        assert _basic(request) == "tw-id:tw-secret"
        assert _form(request) == {
            "grant_type": "refresh_token",
            "refresh_token": "old-refresh",
        }

    @pytest.mark.asyncio
    async def test_linkedin_refresh_uses_form_credentials(self, settings):
        registry, transport = _registry(settings, lambda r: _json(TOKEN_RESPONSE))
        await registry.connector("linkedin").refresh(registry.lookup("linkedin"), "r1")

        (request,) = transport.requests
        assert _form(request) == {
            "grant_type": "refresh_token",
            "refresh_token": "r1",
            "client_id": "li-id",
            "client_secret": "li-secret",
        }

    @pytest.mark.asyncio
    async def test_facebook_re_exchanges_long_lived_token(self, settings):
        registry, transport = _registry(
            settings, lambda r: _json({"access_token": "long-lived", "expires_in": 5184000})
        )
        tokens = await registry.connector("facebook").refresh(
            registry.lookup("facebook"), "current"
        )

        assert tokens.access_token == "long-lived"
        (request,) = transport.requests
        assert request.method == "GET"
        assert request.url.params["grant_type"] == "fb_exchange_token"
        assert request.url.params["fb_exchange_token"] == "current"
        assert request.url.params["client_id"] == "fb-id"

    @pytest.mark.asyncio
    async def test_refresh_failure(self, settings):
        registry, _ = _registry(settings, lambda r: httpx.Response(401, text="revoked"))
        with pytest.raises(TokenExchangeError) as exc_info:
            await registry.connector("reddit").refresh(registry.lookup("reddit"), "r")
        assert exc_info.value.body == "revoked"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "platform", ["instagram", "threads", "tiktok", "youtube", "pinterest"]
    )
    async def test_unsupported_platforms(self, settings, platform):
        registry, transport = _registry(settings, lambda r: _json(TOKEN_RESPONSE))
        with pytest.raises(RefreshNotSupported):
            await registry.connector(platform).refresh(registry.lookup(platform), "r")
        assert transport.requests == []


# ── Profiles ───────────────────────────────────────────────────────────────────


class TestFetchProfile:
    @pytest.mark.asyncio
    async def test_reddit_profile(self, settings):
        registry, transport = _registry(
            settings,
            lambda r: _json({"id": "t2_abc", "name": "spez", "icon_img": "https://i.redd.it/x.png"}),
        )
        profile = await registry.connector("reddit").fetch_profile("tok")

        assert profile.id == "t2_abc"
        assert profile.username == "spez"
        assert profile.profile_image == "https://i.redd.it/x.png"
        (request,) = transport.requests
        assert str(request.url) == "https://oauth.reddit.com/api/v1/me"
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.headers["User-Agent"] == "TestAgent/1.0"

    @pytest.mark.asyncio
    async def test_reddit_falls_back_to_snoovatar(self, settings):
        registry, _ = _registry(
            settings, lambda r: _json({"id": "1", "name": "n", "icon_img": "", "snoovatar_img": "snoo.png"})
        )
        profile = await registry.connector("reddit").fetch_profile("tok")
        assert profile.profile_image == "snoo.png"

    @pytest.mark.asyncio
    async def test_twitter_profile(self, settings):
        registry, transport = _registry(
            settings,
            lambda r: _json(
                {"data": {"id": "99", "username": "jack", "name": "Jack", "profile_image_url": "p.jpg"}}
            ),
        )
        profile = await registry.connector("twitter").fetch_profile("tok")

        assert (profile.id, profile.username, profile.name) == ("99", "jack", "Jack")
        assert profile.profile_image == "p.jpg"
        (request,) = transport.requests
        assert request.url.params["user.fields"] == "profile_image_url"

    @pytest.mark.asyncio
    async def test_facebook_profile(self, settings):
        registry, transport = _registry(
            settings,
            lambda r: _json(
                {"id": "10", "name": "Mark", "email": "m@fb.test", "picture": {"data": {"url": "pic.jpg"}}}
            ),
        )
        profile = await registry.connector("facebook").fetch_profile("tok")

        assert profile.id == "10"
        assert profile.username is None
        assert profile.name == "Mark"
        assert profile.profile_image == "pic.jpg"
        (request,) = transport.requests
        assert request.url.params["access_token"] == "tok"

    @pytest.mark.asyncio
    async def test_linkedin_profile(self, settings):
        registry, _ = _registry(
            settings,
            lambda r: _json({"sub": "li-sub", "name": "Reid", "email": "r@li.test", "picture": "r.png"}),
        )
        profile = await registry.connector("linkedin").fetch_profile("tok")
        assert profile.id == "li-sub"
        assert profile.email == "r@li.test"

    @pytest.mark.asyncio
    async def test_tiktok_profile(self, settings):
        registry, _ = _registry(
            settings,
            lambda r: _json({"data": {"user": {"open_id": "oid", "display_name": "tt", "avatar_url": "a.png"}}}),
        )
        profile = await registry.connector("tiktok").fetch_profile("tok")
        assert (profile.id, profile.username, profile.profile_image) == ("oid", "tt", "a.png")

    @pytest.mark.asyncio
    async def test_youtube_profile(self, settings):
        registry, transport = _registry(
            settings,
            lambda r: _json(
                {
                    "items": [
                        {
                            "id": "UC123",
                            "snippet": {
                                "title": "My Channel",
                                "customUrl": "@mychannel",
                                "thumbnails": {"default": {"url": "t.jpg"}},
                            },
                        }
                    ]
                }
            ),
        )
        profile = await registry.connector("youtube").fetch_profile("tok")
        assert profile.id == "UC123"
        assert profile.username == "@mychannel"
        assert profile.profile_image == "t.jpg"
        assert transport.requests[0].url.params["mine"] == "true"

    @pytest.mark.asyncio
    async def test_youtube_without_channel(self, settings):
        registry, _ = _registry(settings, lambda r: _json({"items": []}))
        with pytest.raises(ProfileFetchError):
            await registry.connector("youtube").fetch_profile("tok")

    @pytest.mark.asyncio
    async def test_pinterest_profile(self, settings):
        registry, _ = _registry(
            settings, lambda r: _json({"username": "pinner", "profile_image": "pin.png"})
        )
        profile = await registry.connector("pinterest").fetch_profile("tok")
        assert profile.id == "pinner"
        assert profile.username == "pinner"

    @pytest.mark.asyncio
    async def test_missing_account_id(self, settings):
        registry, _ = _registry(settings, lambda r: _json({"data": {}}))
        with pytest.raises(ProfileFetchError):
            await registry.connector("twitter").fetch_profile("tok")

    @pytest.mark.asyncio
    async def test_profile_error_status(self, settings):
        registry, _ = _registry(settings, lambda r: httpx.Response(403, text="forbidden"))
        with pytest.raises(ProfileFetchError) as exc_info:
            await registry.connector("linkedin").fetch_profile("tok")
        assert exc_info.value.status == 403

    @pytest.mark.asyncio
    async def test_bluesky_is_unsupported(self, settings):
        registry, transport = _registry(settings, lambda r: _json({}))
        connector = registry.connector("bluesky")
        cfg = build_provider_configs(settings)["bluesky"]
        with pytest.raises(UnsupportedPlatform):
            connector.build_authorization_url(cfg, "s")
        with pytest.raises(UnsupportedPlatform):
            await connector.exchange_code(cfg, "c")
        with pytest.raises(UnsupportedPlatform):
            await connector.fetch_profile("tok")
        with pytest.raises(RefreshNotSupported):
            await connector.refresh(cfg, "r")
        assert transport.requests == []


class TestInstagramProfile:
    GRAPH = "https://graph.facebook.com/v18.0"

    def _handler(self, pages, linked=None, account=None):
        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path.endswith("/me/accounts"):
                return _json(pages)
            if path.endswith("/page-1"):
                return _json(linked or {})
            if path.endswith("/ig-7"):
                return _json(account or {})
            return httpx.Response(404)

        return handler

    @pytest.mark.asyncio
    async def test_two_hop_resolution(self, settings):
        registry, transport = _registry(
            settings,
            self._handler(
                {"data": [{"id": "page-1", "access_token": "page-token"}]},
                {"instagram_business_account": {"id": "ig-7"}},
                {"id": "ig-7", "username": "brand", "profile_picture_url": "ig.png"},
            ),
        )
        profile = await registry.connector("instagram").fetch_profile("user-token")

        assert profile.id == "ig-7"
        assert profile.username == "brand"
        assert profile.profile_image == "ig.png"
        assert [str(r.url.path) for r in transport.requests] == [
            "/v18.0/me/accounts",
            "/v18.0/page-1",
            "/v18.0/ig-7",
        ]
        assert transport.requests[0].url.params["access_token"] == "user-token"
        assert transport.requests[1].url.params["access_token"] == "page-token"

    @pytest.mark.asyncio
    async def test_no_pages_found(self, settings):
        registry, transport = _registry(settings, self._handler({"data": []}))
        with pytest.raises(NoPagesFoundError):
            await registry.connector("instagram").fetch_profile("user-token")
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_no_linked_instagram_account(self, settings):
        registry, _ = _registry(
            settings,
            self._handler({"data": [{"id": "page-1", "access_token": "pt"}]}, {"id": "page-1"}),
        )
        with pytest.raises(NoLinkedInstagramAccountError):
            await registry.connector("instagram").fetch_profile("user-token")

    @pytest.mark.asyncio
    async def test_threads_shares_the_flow(self, settings):
        registry, _ = _registry(settings, self._handler({"data": []}))
        with pytest.raises(NoPagesFoundError):
            await registry.connector("threads").fetch_profile("user-token")

    def test_distinct_error_codes(self):
        assert NoPagesFoundError("x").code != NoLinkedInstagramAccountError("x").code
        assert not isinstance(NoPagesFoundError("x"), TokenExchangeError)
