"""Per-tenant integration credentials.

Each row connects one account to one external provider and stores the
shared secret that provider must present on every webhook delivery. Rows
are created by an administrator; the webhook endpoint only reads them.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.account import Account

STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "disconnected"


class AccountIntegration(SQLModel, table=True):
    """A tenant's credential for an external provider.

    Attributes:
        id: Unique identifier (UUID).
        account_id: Tenant this credential belongs to.
        provider: Provider name, e.g. "youcanbookme".
        webhook_secret: Shared secret expected on inbound webhooks.
        status: "connected" or "disconnected". Only connected
            integrations accept webhooks.
        created_at: When the integration was set up.
        account: Reference to the owning Account.
    """
    __table_args__ = (UniqueConstraint("account_id", "provider"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_id: str = Field(foreign_key="account.id", index=True)
    provider: str
    webhook_secret: str
    status: str = Field(default=STATUS_CONNECTED)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationship
    account: Optional["Account"] = Relationship(back_populates="integrations")

    @property
    def is_connected(self) -> bool:
        return self.status == STATUS_CONNECTED
