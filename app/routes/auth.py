"""Session status, logout and signup routes."""
import logging

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse

from app.auth.client import AuthBackendError, apply_cookie_mutations, get_auth_client
from app.auth.guard import resolve_session
from app.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/auth/status")
async def auth_status(request: Request):
    """
    Check whether the caller has a session.

    Returns JSON with the authentication state and, when signed in, the
    user's ID and email. Rotated session cookies are sent back as well.
    """
    result = await resolve_session(request)
    user = result.user
    body = {
        "authenticated": user is not None,
        "user": user.model_dump() if user else None,
    }
    response = JSONResponse(body)
    apply_cookie_mutations(response, result.cookie_mutations)
    return response


@router.post("/auth/logout")
async def logout(request: Request):
    """
    Sign out.

    Revokes the session at the auth backend and clears the session cookies.
    The cookies are cleared even when the backend cannot be reached.
    """
    client = get_auth_client(request)
    try:
        mutations = await client.sign_out()
    except (httpx.HTTPError, AuthBackendError) as e:
        logger.warning(f"Logout could not reach auth backend: {e}")
        mutations = client.clear_session()

    response = RedirectResponse(settings.login_path, status_code=303)
    apply_cookie_mutations(response, mutations)
    return response


@router.api_route("/signup", methods=["GET", "POST"])
@router.api_route("/signup/{rest:path}", methods=["GET", "POST"])
async def signup(rest: str = ""):
    """Signup is invite-only: send prospective users to the access request form."""
    return RedirectResponse("/request-access")
