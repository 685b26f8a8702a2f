"""Role-based authorization rules.

Every permission is a ``(resource, action)`` pair mapped to the set of roles
allowed to perform it. Anything not listed is denied.
"""
import logging

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.database import get_session
from app.models import Profile
from app.models.profile import ROLE_PENDING

logger = logging.getLogger(__name__)

LEADERSHIP = frozenset({"CEO", "ADMIN"})
PIPELINE = LEADERSHIP | {"SALES", "OPS"}
INTERNAL = PIPELINE | {"STAFF", "MARKETING"}

RULES: dict[tuple[str, str], frozenset[str]] = {
    ("sales", "read"): LEADERSHIP | {"STAFF"},
    ("admin", "read"): LEADERSHIP,
    ("revenue", "read"): LEADERSHIP,
    ("opportunities", "create"): PIPELINE,
    ("opportunities", "update"): PIPELINE,
    ("contacts", "create"): PIPELINE,
    ("meetings", "create"): PIPELINE,
    ("tasks", "create"): PIPELINE,
    ("proposals", "create"): PIPELINE,
    ("discovery", "create"): PIPELINE,
    ("projects", "create"): LEADERSHIP | {"OPS"},
    ("activities", "create"): INTERNAL,
}


class AccessDenied(Exception):
    """Raised when the caller's role may not perform an action."""

    def __init__(self, role: str, resource: str, action: str):
        super().__init__(f"{role} may not {action} {resource}")
        self.role = role
        self.resource = resource
        self.action = action


def is_allowed(role: str | None, resource: str, action: str) -> bool:
    """Check whether ``role`` may perform ``action`` on ``resource``."""
    allowed = RULES.get((resource, action))
    if not allowed or not role:
        return False
    return role.upper() in allowed


def permissions_for(role: str | None) -> list[str]:
    """List the ``resource:action`` permissions granted to ``role``."""
    return sorted(
        f"{resource}:{action}"
        for (resource, action) in RULES
        if is_allowed(role, resource, action)
    )


def get_role(request: Request, session: Session = Depends(get_session)) -> str:
    """Dependency returning the current user's role, PENDING if unknown."""
    user = getattr(request.state, "user", None)
    if user is None:
        return ROLE_PENDING
    try:
        profile = session.get(Profile, user.id)
    except SQLAlchemyError:
        logger.exception(f"Profile lookup failed for user {user.id}")
        return ROLE_PENDING
    return (profile.role or ROLE_PENDING).upper() if profile else ROLE_PENDING


def require_access(resource: str, action: str):
    """Build a dependency that raises AccessDenied unless the role is allowed."""

    def dependency(role: str = Depends(get_role)) -> str:
        if not is_allowed(role, resource, action):
            logger.info(f"Denied {action} on {resource} for role {role}")
            raise AccessDenied(role, resource, action)
        return role

    return dependency
