"""Session guard middleware for protected areas of the site."""
import logging
from urllib.parse import urlencode

from fastapi import HTTPException, Request, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.auth.client import AuthResult, AuthUser, apply_cookie_mutations, get_auth_client
from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def is_protected(path: str, prefixes: list[str]) -> bool:
    """Check whether ``path`` lies under one of the protected prefixes."""
    for prefix in prefixes:
        base = prefix.rstrip("/")
        if path == base or path.startswith(base + "/"):
            return True
    return False


def login_redirect_url(login_path: str, path: str, query: str = "") -> str:
    """Build the login URL that sends the user back to ``path`` afterwards."""
    target = f"{path}?{query}" if query else path
    return f"{login_path}?{urlencode({'next': target}, safe='/')}"


async def resolve_session(request: Request) -> AuthResult:
    """Resolve the caller's session, treating every failure as no session."""
    try:
        return await get_auth_client(request).get_user()
    except Exception as e:
        logger.warning(f"Session resolution failed for {request.url.path}: {e}")
        return AuthResult(None)


class SessionGuard(BaseHTTPMiddleware):
    """
    Require a session on protected path prefixes.

    Anonymous callers are redirected to the login page with a ``next``
    parameter. Token rotation performed while resolving the session is
    written onto whichever response goes out, redirect or not.
    """

    def __init__(self, app, settings: Settings = default_settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not is_protected(path, self.settings.protected_prefixes):
            return await call_next(request)

        result = await resolve_session(request)
        if result.user is None:
            logger.info(f"No session for {path}, redirecting to login")
            response = RedirectResponse(
                login_redirect_url(self.settings.login_path, path, request.url.query),
                status_code=status.HTTP_302_FOUND,
            )
        else:
            request.state.user = result.user
            response = await call_next(request)

        apply_cookie_mutations(response, result.cookie_mutations)
        return response


def get_current_user(request: Request) -> AuthUser:
    """Dependency returning the user the guard resolved for this request."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
