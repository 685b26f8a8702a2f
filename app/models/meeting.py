"""Meeting model for scheduled calls with contacts.

Meetings are entered manually through the CRM or arrive from a scheduling
provider's webhook. Provider bookings carry an external identifier which is
the natural key for idempotent upserts: a redelivery or a cancellation of
the same booking updates the existing row instead of adding a new one.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.account import Account


class MeetingStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELED = "canceled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class Meeting(SQLModel, table=True):
    """A scheduled meeting.

    Attributes:
        id: Unique identifier (UUID).
        external_id: Booking ID assigned by the scheduling provider
            (unique). None for meetings created by hand.
        account_id: Tenant the meeting belongs to.
        contact_name: Name of the person who booked, if known.
        contact_email: Email of the person who booked, if known.
        scheduled_at: Start of the meeting.
        ends_at: End of the meeting, when the provider sends one.
        status: One of the MeetingStatus values.
        source: "manual" or the provider name.
        created_at: When the row was first written.
        updated_at: When the row was last written.
        account: Reference to the owning Account.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    external_id: str | None = Field(default=None, index=True, unique=True)
    account_id: str | None = Field(default=None, foreign_key="account.id", index=True)
    contact_name: str | None = None
    contact_email: str | None = None
    scheduled_at: datetime
    ends_at: datetime | None = None
    status: str = Field(default=MeetingStatus.SCHEDULED.value)
    source: str = Field(default="manual")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationship
    account: Optional["Account"] = Relationship(back_populates="meetings")
