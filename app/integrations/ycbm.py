"""YouCanBookMe booking webhook ingestion.

Each tenant that connects YouCanBookMe gets its own webhook URL and shared
secret. A delivery is handled in four steps, each of which may reject it:

1. Look up the tenant's integration. Not connected -> 404.
2. Check the shared secret header against that integration. -> 401.
3. Validate the JSON body. -> 400.
4. Upsert the meeting keyed by the booking's external ID. -> 500 on failure.

The upsert is a single ``INSERT ... ON CONFLICT DO UPDATE`` so provider
retries and concurrent deliveries of the same booking converge on one row.
"""
import hmac
import logging
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.database import dialect_insert
from app.models import AccountIntegration, Meeting, MeetingStatus

logger = logging.getLogger(__name__)

CANCEL_EVENT = "booking_cancelled"


class WebhookError(Exception):
    """Base class for rejected deliveries. Carries the HTTP status to return."""
    status_code = 500
    message = "Server error"

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


class IntegrationNotConnected(WebhookError):
    status_code = 404
    message = "Integration not connected"


class WebhookUnauthorized(WebhookError):
    status_code = 401
    message = "Unauthorized"


class InvalidPayload(WebhookError):
    status_code = 400
    message = "Invalid payload"


class StorageFailure(WebhookError):
    status_code = 500
    message = "Server error"


class BookingPayload(BaseModel):
    """Body of a YouCanBookMe booking notification."""
    model_config = ConfigDict(extra="ignore")

    event: str | None = None
    external_id: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    start_iso: str | None = None
    end_iso: str | None = None


def get_integration(session: Session, account_id: str, provider: str) -> AccountIntegration:
    """Load the tenant's connected integration for ``provider``."""
    statement = (
        select(AccountIntegration)
        .where(AccountIntegration.account_id == account_id)
        .where(AccountIntegration.provider == provider)
    )
    try:
        integration = session.exec(statement).one_or_none()
    except SQLAlchemyError as e:
        logger.exception(f"Integration lookup failed for account {account_id}")
        raise StorageFailure() from e

    if integration is None or not integration.is_connected:
        raise IntegrationNotConnected()
    return integration


def verify_secret(integration: AccountIntegration, presented: str | None) -> None:
    """Compare the delivered secret with the tenant's stored secret."""
    if not presented or not hmac.compare_digest(
        presented.encode("utf-8"), integration.webhook_secret.encode("utf-8")
    ):
        raise WebhookUnauthorized()


def parse_payload(body: bytes) -> BookingPayload:
    """Validate the request body, requiring an external ID and a start time."""
    try:
        payload = BookingPayload.model_validate_json(body)
    except ValidationError as e:
        raise InvalidPayload() from e

    if not payload.external_id or not payload.start_iso:
        raise InvalidPayload("Missing data")
    return payload


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, normalized to UTC. Naive values are UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    except (ValueError, OverflowError) as e:
        raise InvalidPayload("Invalid timestamp") from e


def meeting_status(event: str | None) -> MeetingStatus:
    """Map a booking event name to the meeting status it implies."""
    if event == CANCEL_EVENT:
        return MeetingStatus.CANCELED
    return MeetingStatus.SCHEDULED


def upsert_meeting(session: Session, account_id: str, payload: BookingPayload) -> None:
    """Insert the booking as a meeting, or overwrite the row with the same external ID.

    A row owned by another account is left untouched.
    """
    now = datetime.now(UTC)
    values = {
        "external_id": payload.external_id,
        "account_id": account_id,
        "contact_name": payload.contact_name or None,
        "contact_email": payload.contact_email or None,
        "scheduled_at": parse_timestamp(payload.start_iso),
        "ends_at": parse_timestamp(payload.end_iso) if payload.end_iso else None,
        "status": meeting_status(payload.event).value,
        "source": settings.ycbm_provider,
        "updated_at": now,
    }

    insert = dialect_insert(session)
    statement = insert(Meeting).values(id=uuid4(), created_at=now, **values)
    statement = statement.on_conflict_do_update(
        index_elements=["external_id"],
        set_={key: statement.excluded[key] for key in values if key != "external_id"},
        where=Meeting.__table__.c.account_id == statement.excluded.account_id,
    )

    try:
        result = session.exec(statement)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Meeting upsert failed for booking {payload.external_id}")
        raise StorageFailure() from e

    if result.rowcount == 0:
        logger.warning(
            f"Ignored {settings.ycbm_provider} booking {payload.external_id} "
            f"for account {account_id}: owned by another account"
        )
        return

    logger.info(
        f"Recorded {settings.ycbm_provider} booking {payload.external_id} "
        f"for account {account_id} as {values['status']}"
    )
