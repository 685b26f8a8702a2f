"""Tests for the request-scoped auth client."""

import asyncio

import httpx
import pytest
from jose import jwt

from app.auth.client import AuthBackendError, SupabaseAuthClient
from app.core.config import settings

ACCESS = settings.access_cookie_name
REFRESH = settings.refresh_cookie_name


def make_client(cookies: dict, handler) -> SupabaseAuthClient:
    return SupabaseAuthClient(cookies, transport=httpx.MockTransport(handler))


def no_network(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


class TestGetUser:
    def test_no_cookies_skips_backend(self):
        result = asyncio.run(make_client({}, no_network).get_user())
        assert result.user is None
        assert result.cookie_mutations == []

    def test_token_without_expiry_is_checked_with_backend(self):
        token = jwt.encode({"sub": "user-1"}, "k", algorithm="HS256")
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.url.path, request.headers["authorization"], request.headers["apikey"]))
            return httpx.Response(200, json={"id": "user-1", "email": None})

        result = asyncio.run(make_client({ACCESS: token}, handler).get_user())
        assert result.user.id == "user-1"
        assert result.cookie_mutations == []
        assert seen == [("/auth/v1/user", f"Bearer {token}", settings.supabase_anon_key)]

    def test_unexpected_status_raises(self):
        token = jwt.encode({"sub": "user-1"}, "k", algorithm="HS256")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        with pytest.raises(AuthBackendError):
            asyncio.run(make_client({ACCESS: token}, handler).get_user())

    def test_refresh_without_user_fetches_it(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/auth/v1/token":
                assert request.url.params["grant_type"] == "refresh_token"
                return httpx.Response(200, json={"access_token": "a2", "refresh_token": "r2"})
            assert request.headers["authorization"] == "Bearer a2"
            return httpx.Response(200, json={"id": "user-3"})

        result = asyncio.run(make_client({REFRESH: "r1"}, handler).get_user())
        assert result.user.id == "user-3"
        values = {m.name: m.value for m in result.cookie_mutations}
        assert values == {ACCESS: "a2", REFRESH: "r2"}
        assert all(m.max_age == settings.session_cookie_max_age for m in result.cookie_mutations)

    def test_rejected_refresh_clears_cookies(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "invalid_grant"})

        result = asyncio.run(make_client({REFRESH: "stale"}, handler).get_user())
        assert result.user is None
        assert {m.name for m in result.cookie_mutations} == {ACCESS, REFRESH}
        assert all(m.delete for m in result.cookie_mutations)

    def test_transport_failure_propagates(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(httpx.HTTPError):
            asyncio.run(make_client({REFRESH: "r1"}, handler).get_user())


class TestSignOut:
    def test_without_session_only_clears(self):
        mutations = asyncio.run(make_client({}, no_network).sign_out())
        assert all(m.delete for m in mutations)

    def test_server_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        with pytest.raises(AuthBackendError):
            asyncio.run(make_client({ACCESS: "a1"}, handler).sign_out())
