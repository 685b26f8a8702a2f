"""Signed-in landing routes for the dashboard and admin areas.

All paths here sit under the session guard's protected prefixes, so a user
is always present on ``request.state``. Role checks go through the policy.
"""
from fastapi import APIRouter, Depends

from app.auth.client import AuthUser
from app.auth.guard import get_current_user
from app.core.policy import get_role, permissions_for, require_access

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard")
async def dashboard_home(
    user: AuthUser = Depends(get_current_user),
    role: str = Depends(get_role),
):
    """Return who is signed in, their role and what the role allows."""
    return {
        "user": user.model_dump(),
        "role": role,
        "permissions": permissions_for(role),
    }


@router.get("/dashboard/sales")
async def sales_home(role: str = Depends(require_access("sales", "read"))):
    """Sales area entry. Roles without access are sent back to /dashboard."""
    return {"area": "sales", "role": role}


@router.get("/dashboard/revenue")
async def revenue_home(role: str = Depends(require_access("revenue", "read"))):
    """Revenue view entry, leadership only."""
    return {"area": "revenue", "role": role}


@router.get("/admin")
async def admin_home(role: str = Depends(require_access("admin", "read"))):
    """Admin area entry, leadership only."""
    return {"area": "admin", "role": role}
