"""Inbound webhook routes for third-party integrations."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from app.core.config import settings
from app.core.database import get_session
from app.integrations.ycbm import (
    WebhookError,
    get_integration,
    parse_payload,
    upsert_meeting,
    verify_secret,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/integrations", tags=["integrations"])


@router.post("/ycbm/webhook/{account_id}")
async def ycbm_webhook(
    account_id: str,
    request: Request,
    session: Session = Depends(get_session),
):
    """
    Receive a YouCanBookMe booking notification for one tenant.

    Returns {"ok": true} once the meeting is stored. Rejections return
    {"error": ...} with 404 (integration not connected), 401 (bad secret),
    400 (bad payload) or 500 (storage failure, safe to retry).
    """
    try:
        integration = get_integration(session, account_id, settings.ycbm_provider)
        verify_secret(integration, request.headers.get(settings.ycbm_secret_header))
        payload = parse_payload(await request.body())
        upsert_meeting(session, account_id, payload)
    except WebhookError as e:
        logger.info(f"Rejected webhook for account {account_id}: {e.status_code} {e.message}")
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except Exception:
        logger.exception(f"Unexpected error handling webhook for account {account_id}")
        return JSONResponse({"error": "Server error"}, status_code=500)

    return {"ok": True}
