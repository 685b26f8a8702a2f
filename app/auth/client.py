"""Request-scoped client for the auth backend's session API.

The backend (Supabase auth / GoTrue) owns sessions. This client only reads
the access and refresh tokens from the request's cookies, asks the backend
who they belong to, and reports which cookies must change on the response
when the backend rotates the tokens.
"""
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

import httpx
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict
from starlette.requests import Request
from starlette.responses import Response

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class AuthBackendError(Exception):
    """Raised when the auth backend answers with an unexpected status."""


class AuthUser(BaseModel):
    """Identity of an authenticated user as reported by the auth backend."""
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None


@dataclass(frozen=True)
class CookieMutation:
    """A cookie change the caller must write onto the outgoing response."""
    name: str
    value: str = ""
    max_age: int | None = None
    delete: bool = False
    secure: bool = True

    def apply(self, response: Response) -> None:
        if self.delete:
            response.delete_cookie(
                self.name, path="/", secure=self.secure, httponly=True, samesite="lax"
            )
        else:
            response.set_cookie(
                self.name,
                self.value,
                max_age=self.max_age,
                path="/",
                secure=self.secure,
                httponly=True,
                samesite="lax",
            )


@dataclass
class AuthResult:
    """Outcome of resolving a session: the user (or None) and cookie changes."""
    user: AuthUser | None
    cookie_mutations: list[CookieMutation] = field(default_factory=list)


def apply_cookie_mutations(response: Response, mutations: list[CookieMutation]) -> None:
    for mutation in mutations:
        mutation.apply(response)


class SupabaseAuthClient:
    """Resolve and rotate one request's session against the auth backend."""

    def __init__(
        self,
        cookies: Mapping[str, str],
        settings: Settings = default_settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cookies = cookies
        self.settings = settings
        self._transport = transport

    @property
    def access_token(self) -> str | None:
        return self.cookies.get(self.settings.access_cookie_name) or None

    @property
    def refresh_token(self) -> str | None:
        return self.cookies.get(self.settings.refresh_cookie_name) or None

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.settings.supabase_url.rstrip('/')}/auth/v1",
            headers={"apikey": self.settings.supabase_anon_key},
            timeout=self.settings.auth_timeout_seconds,
            transport=self._transport,
        )

    async def get_user(self) -> AuthResult:
        """
        Resolve the user behind the request's session cookies.

        A live access token is checked with the backend. An expired,
        unreadable or rejected one is exchanged for a new token pair using
        the refresh token, and the new pair is returned as cookie mutations.
        A rejected refresh token clears both cookies.

        Raises httpx.HTTPError when the backend is unreachable and
        AuthBackendError on unexpected responses.
        """
        access_token = self.access_token
        refresh_token = self.refresh_token
        if not access_token and not refresh_token:
            return AuthResult(None)

        async with self._http() as http:
            if access_token and not self._is_expiring(access_token):
                user = await self._fetch_user(http, access_token)
                if user is not None:
                    return AuthResult(user)

            if not refresh_token:
                return AuthResult(None, self.clear_session())
            return await self._refresh(http, refresh_token)

    async def sign_out(self) -> list[CookieMutation]:
        """Revoke the session at the backend and return cookie deletions."""
        access_token = self.access_token
        if access_token:
            async with self._http() as http:
                response = await http.post(
                    "/logout", headers={"Authorization": f"Bearer {access_token}"}
                )
            if response.status_code not in (200, 204, 401, 403, 404):
                raise AuthBackendError(f"Logout failed with status {response.status_code}")
        return self.clear_session()

    def _is_expiring(self, access_token: str) -> bool:
        try:
            claims = jwt.get_unverified_claims(access_token)
        except JWTError:
            logger.debug("Access token cookie is not a readable JWT")
            return True
        expires_at = claims.get("exp")
        if not isinstance(expires_at, (int, float)):
            return False
        return expires_at - time.time() <= self.settings.session_refresh_margin_seconds

    async def _fetch_user(self, http: httpx.AsyncClient, access_token: str) -> AuthUser | None:
        response = await http.get("/user", headers={"Authorization": f"Bearer {access_token}"})
        if response.status_code == 200:
            return AuthUser.model_validate(response.json())
        if response.status_code in (401, 403):
            return None
        raise AuthBackendError(f"User lookup failed with status {response.status_code}")

    async def _refresh(self, http: httpx.AsyncClient, refresh_token: str) -> AuthResult:
        response = await http.post(
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        if response.status_code in (400, 401, 403):
            logger.info("Refresh token rejected, clearing session cookies")
            return AuthResult(None, self.clear_session())
        if response.status_code != 200:
            raise AuthBackendError(f"Token refresh failed with status {response.status_code}")

        data = response.json()
        new_access = data["access_token"]
        new_refresh = data["refresh_token"]
        user_data = data.get("user")
        if user_data:
            user = AuthUser.model_validate(user_data)
        else:
            user = await self._fetch_user(http, new_access)

        logger.debug("Session tokens rotated")
        return AuthResult(user, self._store_session(new_access, new_refresh))

    def _store_session(self, access_token: str, refresh_token: str) -> list[CookieMutation]:
        max_age = self.settings.session_cookie_max_age
        secure = self.settings.session_cookie_secure
        return [
            CookieMutation(self.settings.access_cookie_name, access_token, max_age, secure=secure),
            CookieMutation(self.settings.refresh_cookie_name, refresh_token, max_age, secure=secure),
        ]

    def clear_session(self) -> list[CookieMutation]:
        secure = self.settings.session_cookie_secure
        return [
            CookieMutation(self.settings.access_cookie_name, delete=True, secure=secure),
            CookieMutation(self.settings.refresh_cookie_name, delete=True, secure=secure),
        ]


AuthClientFactory = Callable[[Mapping[str, str]], SupabaseAuthClient]


def create_auth_client(cookies: Mapping[str, str]) -> SupabaseAuthClient:
    """Default factory: a fresh client bound to one request's cookies."""
    return SupabaseAuthClient(cookies)


def get_auth_client(request: Request) -> SupabaseAuthClient:
    """Build the auth client for this request using the app's configured factory."""
    factory: AuthClientFactory = getattr(
        request.app.state, "auth_client_factory", create_auth_client
    )
    return factory(request.cookies)
